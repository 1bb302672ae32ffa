"""Auto commands - derive project and branch from git, then act."""

from typing import Any

import typer

from ..context import derive_git_keys
from ..errors import InvalidArgumentError, NotFoundError, ReclaimFailedError
from ..ranges import parse_range, validate_port
from ..registry import Binding, BindingKey, Registry
from .common import (
    cli_errors,
    console,
    db_label,
    db_option,
    emit_json,
    fail,
    get_claimer,
    json_option,
    name_option,
    open_registry,
    output,
    purpose_option,
)
from .list import render_bindings

auto_app = typer.Typer(
    name="auto",
    help="Use git to derive project and branch, then run subcommands",
    no_args_is_help=True,
)


@auto_app.command("keys")
def keys() -> None:
    """Print keys derived from git (project, branch, slug, slug_pg) as JSON."""
    emit_json(derive_git_keys().to_dict())


@auto_app.command("claim")
def claim(
    purpose: str = purpose_option(),
    name: str = name_option(),
    savage: bool = typer.Option(
        False, "--savage", "-S", help="Kill current listeners on an existing binding's port"
    ),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Claim a port for the current git project/branch.

    Examples:
        PORT=$(vibeports auto claim -u frontend)
        vibeports auto claim -u backend -n api --savage
    """
    git = derive_git_keys()
    with cli_errors(json), open_registry(db) as registry:
        key = BindingKey.create(git.project, git.branch, purpose, name)
        port = get_claimer(registry).claim(*key.as_params(), savage=savage)

    output(
        json,
        {
            "project": key.project,
            "branch": key.branch,
            "purpose": key.purpose,
            "name": key.name,
            "port": port,
            "savage": savage,
            "db": db_label(db),
        },
    )


@auto_app.command("get")
def get(
    purpose: str = purpose_option(),
    name: str = name_option(),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Get the port for the current git project/branch."""
    git = derive_git_keys()
    with cli_errors(json), open_registry(db) as registry:
        key = BindingKey.create(git.project, git.branch, purpose, name)
        port = registry.get(*key.as_params())

    output(
        json,
        {
            "project": key.project,
            "branch": key.branch,
            "purpose": key.purpose,
            "name": key.name,
            "port": port,
            "db": db_label(db),
        },
    )


@auto_app.command("list")
def list_cmd(
    purpose: str | None = purpose_option(required=False),
    name: str | None = typer.Option(None, "--name", "-n", help="Filter by name"),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """List bindings for the current git project/branch."""
    git = derive_git_keys()
    with cli_errors(json), open_registry(db) as registry:
        bindings = registry.list(project=git.project, branch=git.branch, purpose=purpose, name=name)

    if json:
        emit_json(
            {
                "db": db_label(db),
                "count": len(bindings),
                "items": [b.to_dict() for b in bindings],
                "project": git.project,
                "branch": git.branch,
            }
        )
        return

    render_bindings(
        bindings,
        footer=(
            f"Total: {len(bindings)}  DB: {db_label(db)} "
            f"(project={git.project}, branch={git.branch})"
        ),
    )


@auto_app.command("delete")
def delete(
    purpose: str | None = purpose_option(required=False),
    name: str = name_option(),
    all_: bool = typer.Option(
        False, "--all", "-A", help="Delete all bindings of the project/branch (optionally by purpose)"
    ),
    kill: bool = typer.Option(False, "--kill", "-K", help="Kill listeners before deleting"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm deleting multiple bindings"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Preview without killing or deleting"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete even if the port cannot be freed"),
    port: int | None = typer.Option(None, "--port", "-P", help="Delete by port (ignores git keys)"),
    port_range: str | None = typer.Option(
        None, "--range", "-R", help="Delete by port range START-END (ignores git keys)"
    ),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Delete bindings for the current git project/branch.

    A binding whose port is still in use is skipped unless --kill frees it
    or --force deletes the record anyway.

    Examples:
        vibeports auto delete -u backend -n api
        vibeports auto delete --all --kill --yes
        vibeports auto delete --range 3000-3099 --dry-run
    """
    git = derive_git_keys()
    with cli_errors(json), open_registry(db) as registry:
        matches = _match(registry, git.project, git.branch, purpose, name, all_, port, port_range)

        if not matches:
            if json:
                emit_json({"matched": 0, "deleted": 0, "items": [], "db": db_label(db)})
                raise typer.Exit(1)
            fail("No matching bindings")

        if len(matches) > 1 and not yes and not dry_run:
            fail(
                f"Matched {len(matches)} bindings. Re-run with --yes to proceed, "
                "or use --dry-run to preview.",
                as_json=json,
                code="confirmation_required",
            )

        results = [
            _delete_one(registry, binding, kill=kill, force=force, dry_run=dry_run)
            for binding in matches
        ]

    deleted = sum(1 for r in results if r["deleted"])
    if json:
        emit_json({"matched": len(matches), "deleted": deleted, "items": results, "db": db_label(db)})
        return

    for r in results:
        head = f"{r['project']}/{r['branch']}/{r['purpose']}/{r['name']} port={r['port']}"
        killed = r.get("killed_pids") or []
        if r["deleted"]:
            suffix = f" (killed: {','.join(map(str, killed))})" if killed else ""
            console.print(f"{head} -> [green]deleted[/green]{suffix}")
        else:
            console.print(f"{head} -> [yellow]skipped[/yellow] ({r['reason']})")
    console.print(f"\nDeleted {deleted} of {len(matches)} matching bindings.")


def _match(
    registry: Registry,
    project: str,
    branch: str,
    purpose: str | None,
    name: str,
    all_: bool,
    port: int | None,
    port_range: str | None,
) -> list[Binding]:
    if port is not None and port_range is not None:
        raise InvalidArgumentError("Provide either --port or --range, not both.")
    if port_range is not None:
        start, end = parse_range(port_range)
        return registry.list_by_port_range(start, end)
    if port is not None:
        binding = registry.get_by_port(validate_port(port))
        if binding is None:
            raise NotFoundError(f"No binding holds port {port}")
        return [binding]
    if all_:
        return registry.list(project=project, branch=branch, purpose=purpose)
    if not purpose:
        raise InvalidArgumentError("Provide --purpose or use --all for batch delete")
    binding = registry.get_binding(project, branch, purpose, name)
    if binding is None:
        raise NotFoundError("Not found")
    return [binding]


def _delete_one(
    registry: Registry, binding: Binding, kill: bool, force: bool, dry_run: bool
) -> dict[str, Any]:
    item: dict[str, Any] = {
        "project": binding.project,
        "branch": binding.branch,
        "purpose": binding.purpose,
        "name": binding.name,
        "port": binding.port,
        "killed_pids": [],
        "deleted": False,
    }
    scanner = registry.system

    if dry_run:
        if kill:
            item["killed_pids"] = sorted(scanner.find_owning_pids(binding.port))
        item["reason"] = "dry-run"
        return item

    if kill:
        try:
            item["killed_pids"] = sorted(scanner.reclaim(binding.port).terminated)
        except ReclaimFailedError as e:
            if not force:
                item["reason"] = f"kill failed: {e}"
                return item
            item["reason"] = f"kill failed but forcing delete: {e}"
    elif not force and not scanner.is_port_free(binding.port):
        item["reason"] = "port occupied; use --kill or --force to delete record anyway"
        return item

    if registry.delete_by_port(binding.port):
        item["deleted"] = True
    else:
        item["reason"] = "not found (already deleted?)"
    return item
