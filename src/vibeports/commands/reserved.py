"""Reserved commands - manage ports the allocator must skip."""

import typer
from rich.table import Table

from ..reserved import list_reserved, reserve, unreserve
from .common import cli_errors, console, db_option, emit_json, json_option, open_registry, success, warning

reserved_app = typer.Typer(name="reserved", help="Manage reserved ports", no_args_is_help=True)


@reserved_app.command("add")
def add(
    port: int = typer.Argument(..., help="Port to reserve"),
    reason: str | None = typer.Option(None, "--reason", "-r", help="Why the port is reserved"),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Reserve a port so it is never allocated.

    Examples:
        vibeports reserved add 8080 --reason "corporate proxy"
    """
    with cli_errors(json), open_registry(db) as registry, registry.db.transaction() as conn:
        reserve(conn, port, reason)

    if json:
        emit_json({"ok": True, "port": port})
    else:
        success(f"Reserved {port}")


@reserved_app.command("remove")
def remove(
    port: int = typer.Argument(..., help="Port to unreserve"),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Remove a reservation."""
    with cli_errors(json), open_registry(db) as registry, registry.db.transaction() as conn:
        deleted = unreserve(conn, port)

    if json:
        emit_json({"deleted": deleted, "port": port})
    elif deleted:
        success(f"Unreserved {port}")
    else:
        warning(f"Port {port} was not reserved")


@reserved_app.command("list")
def list_ports(
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """List reserved ports."""
    with cli_errors(json), open_registry(db) as registry:
        entries = list_reserved(registry.db.conn)

    if json:
        emit_json(
            {
                "items": [
                    {"port": e.port, "reason": e.reason, "created_at": e.created_at}
                    for e in entries
                ]
            }
        )
        return

    table = Table(title="Reserved Ports")
    table.add_column("Port", style="yellow")
    table.add_column("Reason", style="green")
    table.add_column("Created", style="dim")
    for e in entries:
        table.add_row(str(e.port), e.reason or "-", e.created_at)
    console.print(table)
