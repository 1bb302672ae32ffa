"""Find command - look up a port that is free on this host."""

import typer

from ..ranges import parse_range
from .common import cli_errors, db_label, db_option, json_option, open_registry, output


def find(
    port_range: str = typer.Argument(..., metavar="START-END", help="Port range to scan"),
    include_registered: bool = typer.Option(
        False, "--include-registered", help="Also consider ports held by bindings"
    ),
    include_reserved: bool = typer.Option(
        False, "--include-reserved", help="Also consider reserved ports"
    ),
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Find the first free port in a range without recording it.

    Examples:
        vibeports find 3100-3110
        vibeports find 9000-9100 --include-registered
    """
    with cli_errors(json):
        start, end = parse_range(port_range)
        with open_registry(db) as registry:
            port = registry.find_free_port(
                start,
                end,
                include_registered=include_registered,
                include_reserved=include_reserved,
            )

    output(json, {"start": start, "end": end, "port": port, "db": db_label(db)})
