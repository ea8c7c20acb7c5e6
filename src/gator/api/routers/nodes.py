"""
Node router: write one value to every path of a node alias.

Endpoints:
    POST /node/{alias}      Fan the JSON body out to the alias's paths

The alias is a single path token. A failing target stops the fan-out; the
targets written before it stay written and are listed in the problem
document's ``errors``.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from gator.api.deps import HubDep, SettingsDep
from gator.api.schemas.common import StatusResponse
from gator.api.utils import collect_warnings, path_tokens, read_json_body
from gator.core.errors import InvalidPayloadError

router = APIRouter(prefix="/node")


@router.post("/{alias:path}", response_model=StatusResponse)
async def write_node(alias: str, request: Request, hub: HubDep, settings: SettingsDep) -> StatusResponse:
    tokens = path_tokens(alias)
    if len(tokens) != 1:
        raise InvalidPayloadError(f"node path must be a single alias, got '{alias}'")

    value = await read_json_body(request, settings.max_body_bytes)
    reports = await hub.fan_out(tokens[0], value)
    return StatusResponse(warnings=collect_warnings(reports))
