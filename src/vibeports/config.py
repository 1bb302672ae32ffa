"""Configuration management for vibeports."""

import os
from pathlib import Path

import platformdirs

DB_ENV_VARS = ("VIBEPORTS_DB", "KVPORT_DB")  # KVPORT_DB is the legacy name
BUSY_TIMEOUT_ENV_VAR = "VIBEPORTS_BUSY_TIMEOUT_MS"
DEBUG_ENV_VAR = "VIBEPORTS_DEBUG"

DEFAULT_BUSY_TIMEOUT_MS = 2000
DEFAULT_COMMAND_TIMEOUT = 1.2
KILL_COMMAND_TIMEOUT = 2.0
DEFAULT_RECLAIM_WAIT_MS = 2000


def get_data_dir() -> Path:
    """Get the data directory for vibeports.

    Returns:
        Path to data directory (not created)
    """
    return Path(platformdirs.user_data_dir("vibeports", "vibeports"))


def get_default_db_path() -> Path:
    """Get the default registry file path.

    Returns:
        Path to the registry file under the user data directory
    """
    return get_data_dir() / "vibeports.sqlite3"


def resolve_db_path(explicit: str | Path | None = None) -> Path:
    """Resolve the registry file location.

    Order: explicit argument, ``VIBEPORTS_DB``, ``KVPORT_DB``, default.

    Args:
        explicit: Path given by the caller, if any

    Returns:
        Absolute path to the registry file
    """
    if explicit is not None and str(explicit).strip():
        return Path(explicit).expanduser().resolve()
    for var in DB_ENV_VARS:
        value = os.getenv(var, "").strip()
        if value:
            return Path(value).expanduser().resolve()
    return get_default_db_path()


def get_busy_timeout_ms() -> int:
    """Get the SQLite busy timeout in milliseconds.

    Returns:
        Value of ``VIBEPORTS_BUSY_TIMEOUT_MS`` if it is a non-negative integer,
        otherwise the default
    """
    raw = os.getenv(BUSY_TIMEOUT_ENV_VAR, "").strip()
    if raw.isdigit():
        return int(raw)
    return DEFAULT_BUSY_TIMEOUT_MS


def is_debug_enabled() -> bool:
    """Check whether debug output was requested via the environment."""
    return os.getenv(DEBUG_ENV_VAR, "").lower() in ("1", "true", "yes")
