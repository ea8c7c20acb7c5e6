"""
CLI: ``gator serve``, start the HTTP API and the bus bridge.
"""

from __future__ import annotations

import os

import typer
import uvicorn

from gator.cli.utils import console


def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address (default: GATOR_HOST or 0.0.0.0)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default: GATOR_PORT or 8080)"),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Configuration file (sets GATOR_CONFIG_FILE_PATH)"
    ),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the gator REST API server."""
    from gator.core.settings import GatorSettings

    if config_file:
        os.environ["GATOR_CONFIG_FILE_PATH"] = config_file
    settings = GatorSettings()
    host = host or settings.host
    port = port or settings.port

    console.print(f"[bold green]Starting gator[/bold green] on {host}:{port}")
    uvicorn.run(
        "gator.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )
