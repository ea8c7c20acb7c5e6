"""
FastAPI dependency injection: settings singleton and the running hub.

Usage in routers::

    from gator.api.deps import HubDep, SettingsDep

    @router.get("/things")
    async def read_things(hub: HubDep, settings: SettingsDep):
        ...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from gator.core.hub import Hub
from gator.core.settings import GatorSettings

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> GatorSettings:
    """Cached settings, loaded once per process."""
    return GatorSettings()


# ── Hub (built by the lifespan) ──────────────────────────────────────────


def get_hub(request: Request) -> Hub:
    hub = getattr(request.app.state, "hub", None)
    if hub is None:
        raise RuntimeError("hub is not initialised; the application lifespan has not run")
    return hub


# ── Convenience type aliases ─────────────────────────────────────────────

SettingsDep = Annotated[GatorSettings, Depends(get_settings)]
HubDep = Annotated[Hub, Depends(get_hub)]
