"""Claim command - allocate a port that is also free on this host."""

import typer

from .common import (
    cli_errors,
    db_label,
    db_option,
    get_claimer,
    json_option,
    name_option,
    open_registry,
    output,
    purpose_option,
)


def claim(
    project: str = typer.Option(..., "--project", "-p", help="Project name"),
    branch: str = typer.Option(..., "--branch", "-b", help="Branch name"),
    purpose: str = purpose_option(),
    name: str = name_option(),
    savage: bool = typer.Option(
        False,
        "--savage",
        "-S",
        help="Kill current listeners on an existing binding's port",
    ),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Claim a port, skipping ports already in use on this host.

    With --savage, an existing binding whose port is occupied gets its
    listeners terminated and is marked claimed.

    Examples:
        vibeports claim -p shop -b main -u backend -n api
        vibeports claim -p shop -b main -u backend -n api --savage
    """
    with cli_errors(json), open_registry(db) as registry:
        port = get_claimer(registry).claim(project, branch, purpose, name, savage=savage)
        key = registry.get_binding(project, branch, purpose, name).key

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
