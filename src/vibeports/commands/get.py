"""Get command - retrieve the port bound to a key."""

import typer

from ..errors import NotFoundError
from .common import cli_errors, db_label, db_option, json_option, name_option, open_registry, output, purpose_option


def get(
    project: str = typer.Option(..., "--project", "-p", help="Project name"),
    branch: str = typer.Option(..., "--branch", "-b", help="Branch name"),
    purpose: str = purpose_option(),
    name: str = name_option(),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Get the port for a key. Exits 1 if nothing is bound.

    Examples:
        vibeports get -p shop -b main -u frontend
        PORT=$(vibeports get -p shop -b main -u backend -n api)
    """
    with cli_errors(json), open_registry(db) as registry:
        binding = registry.get_binding(project, branch, purpose, name)
        if binding is None:
            raise NotFoundError("Not found")

    payload = binding.to_dict()
    payload["db"] = db_label(db)
    output(json, payload)
