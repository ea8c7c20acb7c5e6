"""Health router: liveness plus bus state, for container healthchecks."""

from __future__ import annotations

from fastapi import APIRouter

from gator import __version__
from gator.api.deps import HubDep
from gator.api.schemas.common import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(hub: HubDep) -> HealthResponse:
    return HealthResponse(
        status="ok" if hub.bus_available else "degraded",
        version=__version__,
        bus=hub.bus_state,
        transformations=len(hub.model.transformations),
        nodes=len(hub.nodes.aliases),
    )
