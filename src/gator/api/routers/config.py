"""
Config router: export and replace the hub configuration.

Endpoints:
    GET  /config     Current configuration (live document, definitions, nodes, mqtt)
    POST /config     Validate, persist, then replace model/transformations/nodes

The bus mappings of a running hub never change; a new ``mqtt`` section is
persisted and used on the next start.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Request

from gator.api.deps import HubDep, SettingsDep
from gator.api.schemas.common import StatusResponse
from gator.api.utils import read_json_body
from gator.core.config import build_definitions, parse_config, save_config
from gator.core.logging import get_logger

router = APIRouter(prefix="/config")

logger = get_logger(__name__)


@router.get("")
async def read_config(hub: HubDep) -> dict[str, Any]:
    config = await asyncio.to_thread(hub.export_config)
    return config.to_wire()


@router.post("", response_model=StatusResponse)
async def replace_config(request: Request, hub: HubDep, settings: SettingsDep) -> StatusResponse:
    payload = await read_json_body(request, settings.max_body_bytes)
    config = parse_config(payload, source="request body")
    build_definitions(config)

    await asyncio.to_thread(save_config, config, settings.config_path)
    await hub.replace_config(config)
    logger.info("config_replaced_via_api", path=settings.config_path)
    return StatusResponse()
