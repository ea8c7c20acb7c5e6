"""
Root Typer application for the gator CLI.

Sub-commands import the heavy parts (FastAPI, V8) only when invoked.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="gator",
    help="gator: path-addressed data hub with scripted transformations and an MQTT bridge.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from gator import __version__

        typer.echo(f"gator {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """gator CLI: serve the hub, validate configuration, read values offline."""


# ── Sub-command registration ─────────────────────────────────────────────

from gator.cli.config import app as config_app  # noqa: E402
from gator.cli.model import app as model_app  # noqa: E402
from gator.cli.serve import serve  # noqa: E402

app.command("serve", help="Start the API server.")(serve)
app.add_typer(config_app, name="config", help="Configuration management.")
app.add_typer(model_app, name="model", help="Offline model reads.")
