"""Typer CLI for vibeports - Main entry point."""

import typer

from . import __version__
from .commands import (
    allocate,
    auto_app,
    claim,
    delete,
    find,
    get,
    list_cmd,
    mcp,
    migrate_status,
    purpose_app,
    reserved_app,
)
from .console import setup_logging

app = typer.Typer(
    name="vibeports",
    help="Allocate, query and delete unique ports by (project, branch, purpose, name).",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"vibeports version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Local port registry for development environments."""
    setup_logging()


# Register all commands
app.command()(allocate)
app.command()(claim)
app.command()(get)
app.command()(delete)
app.command(name="list")(list_cmd)
app.command()(find)
app.command(name="migrate-status")(migrate_status)
app.command()(mcp)
app.add_typer(purpose_app)
app.add_typer(reserved_app)
app.add_typer(auto_app)


def main() -> None:
    """Main entry point."""
    app()
