"""List command - show bindings."""

import typer
from rich.table import Table

from ..registry import Binding
from ..system import SystemScanner
from .common import cli_errors, console, db_label, db_option, emit_json, json_option, open_registry, purpose_option


def list_cmd(
    project: str | None = typer.Option(None, "--project", "-p", help="Filter by project"),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Filter by branch"),
    purpose: str | None = purpose_option(required=False),
    name: str | None = typer.Option(None, "--name", "-n", help="Filter by name"),
    live: bool = typer.Option(False, "--live", help="Check if ports are actually listening"),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """List bindings, optionally filtered.

    Examples:
        vibeports list
        vibeports list -p shop --live
        vibeports list -u backend --json
    """
    with cli_errors(json), open_registry(db) as registry:
        bindings = registry.list(project=project, branch=branch, purpose=purpose, name=name)

    if json:
        emit_json(
            {
                "db": db_label(db),
                "count": len(bindings),
                "items": [b.to_dict() for b in bindings],
            }
        )
        return

    render_bindings(bindings, live=live, footer=f"Total: {len(bindings)}  DB: {db_label(db)}")


def render_bindings(bindings: list[Binding], live: bool = False, footer: str | None = None) -> None:
    """Print bindings as a rich table."""
    if not bindings:
        console.print("[yellow]No bindings found.[/yellow]")
        return

    scanner = SystemScanner() if live else None

    table = Table(title="Port Bindings")
    table.add_column("Project", style="cyan")
    table.add_column("Branch", style="blue")
    table.add_column("Purpose", style="green")
    table.add_column("Name", style="green")
    table.add_column("Port", style="yellow")
    table.add_column("Claimed")
    if live:
        table.add_column("Status", style="magenta")
    table.add_column("Created", style="dim")
    table.add_column("Updated", style="dim")

    for binding in bindings:
        row = [
            binding.project,
            binding.branch,
            binding.purpose,
            binding.name,
            str(binding.port),
            "yes" if binding.claimed else "-",
        ]
        if scanner is not None:
            row.append("○ free" if scanner.is_port_free(binding.port) else "● LISTEN")
        row.extend([binding.created_at, binding.updated_at])
        table.add_row(*row)

    console.print(table)
    if footer:
        console.print(f"[dim]{footer}[/dim]")
