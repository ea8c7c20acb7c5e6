"""
CLI utility helpers: consoles, JSON output and error exits.
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gator.core.errors import GatorError

console = Console()
err_console = Console(stderr=True)


def print_json(value: Any) -> None:
    """Print any JSON value (scalars included) highlighted."""
    console.print_json(json.dumps(value))


def fail(error: GatorError) -> NoReturn:
    """Report a ``GatorError`` on stderr and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red] ({error.code}): {escape(error.message)}")
    raise typer.Exit(code=1)


def print_rows(rows: list[tuple[str, ...]], columns: list[str], *, title: str = "") -> None:
    """Render rows as a Rich table."""
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for column in columns:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*row)
    console.print(table)
