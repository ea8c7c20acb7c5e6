"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers, and the lifespan
that owns the hub into a single ``FastAPI`` instance.

Lifespan:
    startup   configure logging → load configuration (URL, file, or the
              default ``config.json``) → build the hub → connect the bus
    shutdown  disconnect the bus

Tests inject a ready-made hub with ``create_app(settings, hub=hub)``; the
lifespan then only starts and stops it.

Tags:
    gator, api, app-factory, composition-root, FastAPI
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from gator import __version__
from gator.api.deps import get_settings
from gator.api.middleware.errors import (
    gator_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from gator.api.middleware.request_id import RequestIDMiddleware
from gator.api.middleware.timing import TimingMiddleware
from gator.core.errors import GatorError
from gator.core.hub import Hub
from gator.core.settings import GatorSettings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build, start and stop the hub."""
    from gator.core.config import load_config
    from gator.core.logging import configure_logging, get_logger

    settings: GatorSettings = app.state.settings
    configure_logging(
        level="DEBUG" if settings.debug else settings.log_level,
        json_format=settings.json_logs,
        service="gator",
    )
    log = get_logger("gator.api")
    log.info("gator_api_starting", version=app.version)

    hub: Hub | None = app.state.hub
    if hub is None:
        config = await asyncio.to_thread(
            load_config,
            settings.config_file_path,
            settings.config_file_url,
        )
        hub = Hub.from_config(config, settings=settings)
        app.state.hub = hub

    await hub.start()
    log.info("gator_api_ready", bus=hub.bus_state)
    try:
        yield
    finally:
        await hub.stop()
        log.info("gator_api_shutting_down")


def create_app(
    settings: GatorSettings | None = None,
    *,
    hub: Hub | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : GatorSettings | None
        Override settings (useful for testing). When ``None`` the cached
        singleton from :func:`get_settings` is used.
    hub : Hub | None
        Pre-built hub. When ``None`` the lifespan loads the configuration
        and builds one.
    """

    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.hub = hub

    # Override DI so endpoints use the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(GatorError, gator_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from gator.api.routers import config, health, model, nodes

    app.include_router(health.router, tags=["health"])
    app.include_router(model.router, tags=["model"])
    app.include_router(nodes.router, tags=["nodes"])
    app.include_router(config.router, tags=["config"])

    return app
