"""Command-line interface for gator (typer + rich).

Entry point: ``gator`` → :data:`gator.cli.app.app`.
"""
