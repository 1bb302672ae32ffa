"""Delete command - remove bindings by key, port or port range."""

import typer

from ..errors import InvalidArgumentError, NotFoundError
from ..ranges import parse_range
from .common import (
    cli_errors,
    console,
    db_label,
    db_option,
    emit_json,
    fail,
    json_option,
    name_option,
    open_registry,
    purpose_option,
    success,
)


def delete(
    project: str | None = typer.Option(None, "--project", "-p", help="Project name"),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Branch name"),
    purpose: str | None = purpose_option(required=False),
    name: str = name_option(),
    port: int | None = typer.Option(None, "--port", "-P", help="Delete the binding holding PORT"),
    port_range: str | None = typer.Option(
        None, "--range", "-R", help="Delete all bindings with a port in START-END"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm deleting multiple bindings"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Preview without deleting"),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Delete bindings.

    Examples:
        vibeports delete -p shop -b main -u frontend
        vibeports delete --port 3005
        vibeports delete --range 3000-3010 --dry-run
        vibeports delete --range 3000-3010 --yes
    """
    with cli_errors(json):
        if port is not None and port_range is not None:
            raise InvalidArgumentError("Provide either --port or --range, not both.")

        with open_registry(db) as registry:
            if port_range is not None:
                start, end = parse_range(port_range)
                matches = registry.list_by_port_range(start, end)
                if not matches:
                    raise NotFoundError(f"No bindings in range {start}-{end}")
                if dry_run:
                    _preview(json, [m.to_dict() for m in matches], db)
                    return
                if len(matches) > 1 and not yes:
                    fail(
                        f"Matched {len(matches)} bindings. Re-run with --yes to proceed, "
                        "or use --dry-run to preview.",
                        as_json=json,
                        code="confirmation_required",
                    )
                result = registry.delete_by_range(start, end)
                if json:
                    emit_json({"count": result.count, "ports": result.ports, "db": db_label(db)})
                else:
                    success(f"Deleted {result.count} binding(s): {', '.join(map(str, result.ports))}")
                return

            if port is not None:
                binding = registry.get_by_port(port)
                if binding is None:
                    raise NotFoundError(f"No binding holds port {port}")
                items = [binding.to_dict()]
                if not dry_run:
                    registry.delete_by_port(port)
            else:
                if not (project and branch and purpose):
                    raise InvalidArgumentError(
                        "Provide --project, --branch and --purpose, or --port, or --range"
                    )
                binding = registry.get_binding(project, branch, purpose, name)
                if binding is None:
                    raise NotFoundError("Not found")
                items = [binding.to_dict()]
                if not dry_run:
                    registry.delete(project, branch, purpose, name)

    if dry_run:
        _preview(json, items, db)
    elif json:
        emit_json({"deleted": True, **items[0], "db": db_label(db)})
    else:
        item = items[0]
        success(
            f"Deleted {item['project']}/{item['branch']}/{item['purpose']}/{item['name']} "
            f"(port {item['port']})"
        )


def _preview(as_json: bool, items: list[dict], db: str | None) -> None:
    if as_json:
        emit_json({"dry_run": True, "matched": len(items), "items": items, "db": db_label(db)})
        return
    console.print(f"[yellow]Would delete {len(items)} binding(s):[/yellow]")
    for item in items:
        console.print(
            f"  - {item['project']}/{item['branch']}/{item['purpose']}/{item['name']} ({item['port']})"
        )
