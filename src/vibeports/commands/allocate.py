"""Allocate command - bind a port to a project/branch/purpose/name."""

import typer

from .common import cli_errors, db_label, db_option, json_option, name_option, open_registry, output, purpose_option


def allocate(
    project: str = typer.Option(..., "--project", "-p", help="Project name"),
    branch: str = typer.Option(..., "--branch", "-b", help="Branch name"),
    purpose: str = purpose_option(),
    name: str = name_option(),
    fail_if_exists: bool = typer.Option(
        False, "--fail-if-exists", help="Fail instead of returning an existing binding"
    ),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Allocate a port (idempotent).

    Examples:
        vibeports allocate -p shop -b main -u frontend
        vibeports allocate -p shop -b main -u backend -n api --json
    """
    with cli_errors(json), open_registry(db) as registry:
        port = registry.allocate(project, branch, purpose, name, fail_if_exists=fail_if_exists)
        key = registry.get_binding(project, branch, purpose, name).key

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
