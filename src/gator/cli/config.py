"""
CLI: ``gator config``, configuration inspection.
"""

from __future__ import annotations

import typer

from gator.cli.utils import console, fail, print_json, print_rows
from gator.core.errors import GatorError

app = typer.Typer(no_args_is_help=True)


@app.command("validate")
def validate_config(
    file: str = typer.Argument(..., help="Configuration file to validate"),
) -> None:
    """Validate a configuration file and summarise what it defines."""
    from gator.bus import mappings_from_config
    from gator.core.config import build_definitions, load_config

    try:
        config = load_config(path=file)
        definitions = build_definitions(config)
    except GatorError as exc:
        fail(exc)

    console.print(f"[bold green]Valid[/bold green] configuration: {file}")
    print_rows(
        [
            ("Model keys", str(len(config.model))),
            ("Transformations", str(len(definitions))),
            ("Nodes", str(len(config.nodes))),
            ("Bus broker", config.mqtt.broker if config.mqtt else "-"),
        ],
        ["Section", "Value"],
    )

    mappings = mappings_from_config(config.mqtt)
    if mappings:
        print_rows(
            [
                (m.key or "/", m.topic, m.publish_type.name.lower(), str(m.qos), str(m.retain))
                for m in mappings
            ],
            ["Prefix", "Topic", "Direction", "QoS", "Retain"],
            title="Bus mappings",
        )


@app.command("show")
def show_config(
    file: str = typer.Argument(..., help="Configuration file to print"),
) -> None:
    """Print a configuration file as normalised JSON."""
    from gator.core.config import load_config

    try:
        config = load_config(path=file)
    except GatorError as exc:
        fail(exc)
    print_json(config.to_wire())
