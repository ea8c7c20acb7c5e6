"""
Model router: read resolved values, write raw values.

Endpoints:
    GET  /model              Whole document with transformations applied
    GET  /model/{path}       Resolved subtree or scalar at ``path``
    POST /model              Replace the whole document (JSON object only)
    POST /model/{path}       Write a raw value at ``path``

Reads run transformations (and may evaluate scripts); writes store the raw
value, apply a transformation defined at exactly that path, and publish to
the bus. Bus publish failures come back as ``warnings``; the write stands.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Request

from gator.api.deps import HubDep, SettingsDep
from gator.api.schemas.common import StatusResponse
from gator.api.utils import collect_warnings, path_tokens, read_json_body

router = APIRouter(prefix="/model")


@router.get("")
async def read_root(hub: HubDep) -> Any:
    """Return the whole document with every transformation overlaid."""
    return await asyncio.to_thread(hub.read, ())


@router.get("/{path:path}")
async def read_path(path: str, hub: HubDep) -> Any:
    """Return the resolved value at ``path``.

    Example:
        GET /model/sales/total

        Response:
        410000
    """
    return await asyncio.to_thread(hub.read, path_tokens(path))


@router.post("", response_model=StatusResponse)
async def write_root(request: Request, hub: HubDep, settings: SettingsDep) -> StatusResponse:
    value = await read_json_body(request, settings.max_body_bytes)
    report = await hub.write((), value)
    return StatusResponse(warnings=collect_warnings([report]))


@router.post("/{path:path}", response_model=StatusResponse)
async def write_path(path: str, request: Request, hub: HubDep, settings: SettingsDep) -> StatusResponse:
    """Write the JSON body at ``path``.

    Example:
        POST /model/sales/north
        Content-Type: application/json

        120000

        Response:
        {"status": "success", "warnings": []}
    """
    value = await read_json_body(request, settings.max_body_bytes)
    report = await hub.write(path_tokens(path), value)
    return StatusResponse(warnings=collect_warnings([report]))
