"""Common utilities for CLI commands."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer

from ..claim import Claimer
from ..config import resolve_db_path
from ..console import console, debug, emit_json, emit_plain, error, success, warning
from ..db import Database
from ..errors import VibePortsError
from ..registry import Registry

__all__ = [
    "console",
    "debug",
    "success",
    "warning",
    "error",
    "emit_json",
    "emit_plain",
    "db_option",
    "json_option",
    "purpose_option",
    "name_option",
    "db_label",
    "open_registry",
    "get_claimer",
    "cli_errors",
    "output",
    "fail",
]


def db_option() -> Any:
    return typer.Option(
        None,
        "--db",
        "-D",
        help="Path to registry file (default: $VIBEPORTS_DB or user data dir)",
    )


def json_option() -> Any:
    return typer.Option(False, "--json", "-j", help="Output JSON")


def purpose_option(required: bool = True) -> Any:
    if required:
        return typer.Option(..., "--purpose", "-u", help="Purpose, e.g. frontend or backend")
    return typer.Option(None, "--purpose", "-u", help="Filter by purpose")


def name_option(default: str | None = "default") -> Any:
    return typer.Option(default, "--name", "-n", help="Component/service name")


def db_label(db_path: str | None) -> str:
    """Path shown in output for the registry in use."""
    return str(resolve_db_path(db_path))


@contextmanager
def open_registry(db_path: str | None) -> Iterator[Registry]:
    """Open the registry for the duration of one command."""
    with Database(db_path) as db:
        debug(f"Using registry {db.db_path}")
        yield Registry(db)


def get_claimer(registry: Registry) -> Claimer:
    return Claimer(registry)


def fail(message: str, as_json: bool = False, code: str = "error") -> None:
    """Report an error and exit non-zero.

    Raises:
        typer.Exit: Always, with exit code 1
    """
    if as_json:
        emit_json({"error": {"code": code, "message": message}})
    else:
        error(message)
    raise typer.Exit(1)


@contextmanager
def cli_errors(as_json: bool = False) -> Iterator[None]:
    """Turn registry errors into a one-line message and exit code 1."""
    try:
        yield
    except VibePortsError as e:
        fail(str(e), as_json=as_json, code=e.code)


def output(as_json: bool, payload: dict[str, Any], plain: Any = None) -> None:
    """Print a command result.

    Args:
        as_json: Print the whole payload as JSON
        payload: Structured result
        plain: Value printed in text mode (defaults to payload["port"])
    """
    if as_json:
        emit_json(payload)
    else:
        emit_plain(payload.get("port") if plain is None else plain)
