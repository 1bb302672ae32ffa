"""Migrate-status command - show registry and code schema versions."""

from .common import cli_errors, console, db_label, db_option, emit_json, json_option, open_registry


def migrate_status(
    db: str | None = db_option(),
    json: bool = json_option(),
) -> None:
    """Show schema versions (opening the registry applies pending migrations).

    Examples:
        vibeports migrate-status
    """
    with cli_errors(json), open_registry(db) as registry:
        status = registry.db.schema_status()

    if json:
        emit_json(
            {"code_version": status.code_version, "db_version": status.db_version, "db": db_label(db)}
        )
    else:
        console.print(f"code schema: [green]{status.code_version}[/green]")
        console.print(f"db schema:   [green]{status.db_version}[/green]")
        console.print(f"db:          {db_label(db)}")
