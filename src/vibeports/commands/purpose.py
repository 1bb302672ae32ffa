"""Purpose commands - manage port ranges per purpose."""

import typer
from rich.table import Table

from ..ranges import (
    BUILTIN_RANGES,
    delete_purpose_range,
    list_purpose_ranges,
    normalize_purpose,
    parse_range,
    resolve_range,
    set_purpose_range,
)
from .common import cli_errors, console, db_option, emit_json, json_option, open_registry, success, warning

purpose_app = typer.Typer(name="purpose", help="Manage purpose port ranges", no_args_is_help=True)


@purpose_app.command("set")
def set_range(
    purpose: str = typer.Argument(..., help="Purpose name"),
    port_range: str = typer.Argument(..., metavar="START-END", help="Inclusive port range"),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Set or override the range for a purpose.

    Examples:
        vibeports purpose set worker 9100-9199
        vibeports purpose set frontend 5100-5199
    """
    with cli_errors(json):
        start, end = parse_range(port_range)
        with open_registry(db) as registry, registry.db.transaction() as conn:
            result = set_purpose_range(conn, purpose, start, end)

    if json:
        emit_json({"purpose": result.purpose, "start": result.start, "end": result.end})
    else:
        success(f"Set range for {result.purpose}: {result.start}-{result.end}")


@purpose_app.command("get")
def get_range(
    purpose: str = typer.Argument(..., help="Purpose name"),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Show the effective range for a purpose (custom or built-in)."""
    with cli_errors(json), open_registry(db) as registry:
        result = resolve_range(registry.db.conn, normalize_purpose(purpose))

    if json:
        emit_json(
            {"purpose": result.purpose, "start": result.start, "end": result.end, "source": result.source}
        )
    else:
        console.print(f"{result.purpose}: {result.start}-{result.end} [dim]({result.source})[/dim]")


@purpose_app.command("list")
def list_ranges(
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """List custom purpose ranges alongside the built-in defaults."""
    with cli_errors(json), open_registry(db) as registry:
        ranges = list_purpose_ranges(registry.db.conn)

    if json:
        emit_json(
            {
                "items": [
                    {"purpose": r.purpose, "start": r.start, "end": r.end, "updated_at": r.updated_at}
                    for r in ranges
                ]
            }
        )
        return

    table = Table(title="Purpose Ranges")
    table.add_column("Purpose", style="green")
    table.add_column("Start", style="yellow")
    table.add_column("End", style="yellow")
    table.add_column("Source", style="dim")

    custom = {r.purpose for r in ranges}
    for r in ranges:
        table.add_row(r.purpose, str(r.start), str(r.end), "custom")
    for name, (start, end) in BUILTIN_RANGES.items():
        if name not in custom:
            table.add_row(name, str(start), str(end), "builtin")

    console.print(table)


@purpose_app.command("delete")
def delete_range(
    purpose: str = typer.Argument(..., help="Purpose name"),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Delete a custom range; built-in purposes revert to their default."""
    with cli_errors(json), open_registry(db) as registry, registry.db.transaction() as conn:
        deleted = delete_purpose_range(conn, purpose)

    if json:
        emit_json({"deleted": deleted})
    elif deleted:
        success(f"Deleted range for {normalize_purpose(purpose)}")
    else:
        warning(f"No custom range for {normalize_purpose(purpose)}")
