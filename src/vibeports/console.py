"""Console utilities for the vibeports CLI."""

import json
import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from .config import is_debug_enabled

# Shared console instances
console = Console()
error_console = Console(stderr=True)

# Debug mode - enabled by VIBEPORTS_DEBUG environment variable
DEBUG = is_debug_enabled()


def setup_logging(debug: bool = DEBUG) -> None:
    """Route core log records to stderr through rich.

    Only warnings are shown unless debug mode is on.

    Args:
        debug: Show DEBUG records
    """
    logger = logging.getLogger("vibeports")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=error_console, show_path=False, show_time=debug)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)


def debug(message: str, **kwargs: Any) -> None:
    """Print debug message if DEBUG mode is enabled.

    Args:
        message: Message to print
        **kwargs: Additional arguments for console.print
    """
    if DEBUG:
        error_console.print(f"[dim][DEBUG][/dim] {message}", **kwargs)


def success(message: str, **kwargs: Any) -> None:
    """Print success message in green."""
    console.print(f"[green]{message}[/green]", **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print warning message in yellow to stderr."""
    error_console.print(f"[yellow]{message}[/yellow]", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print error message in red to stderr.

    Args:
        message: Message to print
        **kwargs: Additional arguments for console.print
    """
    error_console.print(f"[red]Error:[/red] {message}", **kwargs)


def emit_json(payload: Any) -> None:
    """Write a payload as one line of JSON to stdout."""
    print(json.dumps(payload, default=str))


def emit_plain(value: Any) -> None:
    """Write a bare value to stdout, without markup, for scripts."""
    print(value)
