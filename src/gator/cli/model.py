"""
CLI: ``gator model``, offline reads against a configuration file.

No server and no bus are involved: the model is built from the file and
transformations are evaluated with the embedded JavaScript engine.
"""

from __future__ import annotations

import typer

from gator.cli.utils import fail, print_json
from gator.core.errors import GatorError

app = typer.Typer(no_args_is_help=True)


@app.command("get")
def get_value(
    path: str = typer.Argument("", help="Slash-separated path (empty for the whole document)"),
    config_file: str = typer.Option("config.json", "--config", "-c", help="Configuration file"),
    raw: bool = typer.Option(False, "--raw", help="Skip transformations"),
    timeout_ms: int = typer.Option(1000, "--timeout-ms", help="Script evaluation timeout"),
) -> None:
    """Print the value at PATH as JSON."""
    from gator.core.config import build_definitions, load_config
    from gator.core.model import Model
    from gator.core.paths import split_path
    from gator.core.scripting import JavaScriptEvaluator
    from gator.core.tree import TreeStore

    tokens = split_path(path)
    try:
        config = load_config(path=config_file)
        definitions = build_definitions(config)
        if raw:
            value = TreeStore(config.model).get(tokens)
        else:
            model = Model(
                config.model,
                definitions,
                evaluator=JavaScriptEvaluator(timeout_ms=timeout_ms),
            )
            value = model.read_resolved(tokens)
    except GatorError as exc:
        fail(exc)
    print_json(value)
