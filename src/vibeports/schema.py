"""Registry schema and forward-only migrations.

A registry file is always brought up to ``CODE_SCHEMA_VERSION`` when it is
opened. Fresh files get the full baseline in one step. Existing files are
stepped forward one version at a time; each step runs in its own write
transaction together with the version stamp, so a step is either fully
applied and recorded or not applied at all.

Files written before version tracking existed carry no ``meta`` row. Their
version is inferred once from the shape of the ``bindings`` table and
stamped; after that the stored number is the only source of truth.
"""

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass

from .errors import UnsupportedSchemaError

logger = logging.getLogger(__name__)

CODE_SCHEMA_VERSION = 5

_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

META_TABLE = "CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT)"

BINDINGS_TABLE = f"""
CREATE TABLE IF NOT EXISTS bindings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project TEXT NOT NULL,
    branch TEXT NOT NULL,
    purpose TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT 'default',
    port INTEGER NOT NULL CHECK (port BETWEEN 1 AND 65535),
    claimed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT ({_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({_NOW}),
    CHECK (length(trim(project)) > 0),
    CHECK (length(trim(branch)) > 0),
    CHECK (length(trim(purpose)) > 0)
)
"""

UNIQUE_KEY_INDEX = (
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_bindings_unique_combo "
    "ON bindings(project, branch, purpose, name)"
)

UNIQUE_PORT_INDEX = (
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_bindings_port_unique ON bindings(port)"
)

UPDATED_AT_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS trg_bindings_updated_at
AFTER UPDATE ON bindings
FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
BEGIN
    UPDATE bindings SET updated_at = {_NOW} WHERE id = NEW.id;
END
"""

PURPOSE_RANGES_TABLE = f"""
CREATE TABLE IF NOT EXISTS purpose_ranges (
    purpose TEXT PRIMARY KEY,
    start INTEGER NOT NULL,
    end INTEGER NOT NULL,
    is_custom INTEGER NOT NULL DEFAULT 1,
    updated_at TEXT NOT NULL DEFAULT ({_NOW}),
    CHECK (start >= 1 AND start <= 65535),
    CHECK (end >= 1 AND end <= 65535)
)
"""

RESERVED_PORTS_TABLE = f"""
CREATE TABLE IF NOT EXISTS reserved_ports (
    port INTEGER PRIMARY KEY,
    reason TEXT,
    created_at TEXT NOT NULL DEFAULT ({_NOW}),
    CHECK (port >= 1 AND port <= 65535)
)
"""

# Well-known ports, seeded in two batches matching the versions that
# introduced them.
RESERVED_SEED_V3: tuple[tuple[int, str], ...] = (
    (22, "ssh"),
    (80, "http"),
    (443, "https"),
)

RESERVED_SEED_V4: tuple[tuple[int, str], ...] = (
    (3306, "mysql"),
    (5432, "postgres"),
    (6379, "redis"),
    (27017, "mongodb"),
    (9200, "elasticsearch"),
    (5601, "kibana"),
    (11211, "memcached"),
    (9092, "kafka"),
    (5672, "rabbitmq"),
    (15672, "rabbitmq-mgmt"),
)

# Structural statements of the current layout. All are guarded so they can
# be re-run against a registry of any supported version.
BASELINE_SCHEMA: tuple[str, ...] = (
    META_TABLE,
    BINDINGS_TABLE,
    UNIQUE_KEY_INDEX,
    UNIQUE_PORT_INDEX,
    UPDATED_AT_TRIGGER,
    PURPOSE_RANGES_TABLE,
    RESERVED_PORTS_TABLE,
)


@dataclass
class SchemaStatus:
    """Schema version of the code and of an open registry file."""

    code_version: int
    db_version: int | None


def _table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    return row is not None


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    return any(row[1] == column for row in conn.execute(f"PRAGMA table_info('{table}')"))


def _seed_reserved(conn: sqlite3.Connection, seed: tuple[tuple[int, str], ...]) -> None:
    conn.executemany(
        "INSERT OR IGNORE INTO reserved_ports(port, reason) VALUES (?, ?)", seed
    )


def get_db_version(conn: sqlite3.Connection) -> int | None:
    """Read the stored schema version.

    Args:
        conn: Open registry connection

    Returns:
        Stored version, or None if there is no meta table, no row, or the
        value is not an integer
    """
    if not _table_exists(conn, "meta"):
        return None
    row = conn.execute("SELECT value FROM meta WHERE key='schema_version'").fetchone()
    if row is None:
        return None
    try:
        return int(str(row[0]))
    except ValueError:
        return None


def set_db_version(conn: sqlite3.Connection, version: int) -> None:
    """Stamp the schema version, creating the meta table if needed."""
    conn.execute(META_TABLE)
    conn.execute(
        """
        INSERT INTO meta(key, value) VALUES ('schema_version', ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """,
        (str(version),),
    )


def infer_legacy_version(conn: sqlite3.Connection) -> int:
    """Infer the version of a registry that predates version tracking.

    Version 1 had no ``name`` column; version 2 introduced it.
    """
    return 2 if _column_exists(conn, "bindings", "name") else 1


def _add_name_column(conn: sqlite3.Connection) -> None:
    if not _column_exists(conn, "bindings", "name"):
        conn.execute("ALTER TABLE bindings ADD COLUMN name TEXT NOT NULL DEFAULT 'default'")
    conn.execute("DROP INDEX IF EXISTS idx_bindings_unique_combo")
    conn.execute(UNIQUE_KEY_INDEX)


def _add_purpose_and_reserved_tables(conn: sqlite3.Connection) -> None:
    conn.execute(PURPOSE_RANGES_TABLE)
    conn.execute(RESERVED_PORTS_TABLE)
    _seed_reserved(conn, RESERVED_SEED_V3)


def _seed_more_reserved(conn: sqlite3.Connection) -> None:
    _seed_reserved(conn, RESERVED_SEED_V4)


def _add_claimed_column(conn: sqlite3.Connection) -> None:
    if not _column_exists(conn, "bindings", "claimed"):
        conn.execute("ALTER TABLE bindings ADD COLUMN claimed INTEGER NOT NULL DEFAULT 0")


# from-version -> step that produces from-version + 1
MIGRATIONS: dict[int, Callable[[sqlite3.Connection], None]] = {
    1: _add_name_column,
    2: _add_purpose_and_reserved_tables,
    3: _seed_more_reserved,
    4: _add_claimed_column,
}


def _begin(conn: sqlite3.Connection) -> None:
    conn.execute("BEGIN IMMEDIATE")


def _create_baseline(conn: sqlite3.Connection) -> None:
    _begin(conn)
    try:
        # Another process may have created the registry while we waited.
        if not _table_exists(conn, "bindings"):
            for statement in BASELINE_SCHEMA:
                conn.execute(statement)
            _seed_reserved(conn, RESERVED_SEED_V3)
            _seed_reserved(conn, RESERVED_SEED_V4)
            set_db_version(conn, CODE_SCHEMA_VERSION)
            logger.debug("Created registry schema at version %d", CODE_SCHEMA_VERSION)
        conn.execute("COMMIT")
    except BaseException:
        conn.execute("ROLLBACK")
        raise


def _current_version(conn: sqlite3.Connection) -> int:
    version = get_db_version(conn)
    if version is None:
        version = infer_legacy_version(conn)
        set_db_version(conn, version)
        logger.debug("Inferred legacy schema version %d", version)
    return version


def _apply_step(conn: sqlite3.Connection) -> int:
    """Apply the next pending step and return the resulting version."""
    _begin(conn)
    try:
        version = _current_version(conn)
        if version > CODE_SCHEMA_VERSION:
            raise UnsupportedSchemaError(
                f"Database schema version {version} is newer than supported "
                f"{CODE_SCHEMA_VERSION}. Please upgrade vibeports."
            )
        if version < CODE_SCHEMA_VERSION:
            MIGRATIONS[version](conn)
            version += 1
            set_db_version(conn, version)
            logger.debug("Migrated registry schema to version %d", version)
        conn.execute("COMMIT")
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    return version


def _ensure_structure(conn: sqlite3.Connection) -> None:
    _begin(conn)
    try:
        for statement in BASELINE_SCHEMA:
            conn.execute(statement)
        conn.execute("COMMIT")
    except BaseException:
        conn.execute("ROLLBACK")
        raise


def migrate(conn: sqlite3.Connection) -> int:
    """Bring an open registry up to ``CODE_SCHEMA_VERSION``.

    The connection must be in autocommit mode (``isolation_level=None``).

    Args:
        conn: Open registry connection

    Returns:
        The schema version after migration

    Raises:
        UnsupportedSchemaError: If the file was written by a newer version
    """
    if not _table_exists(conn, "bindings"):
        _create_baseline(conn)

    version = _apply_step(conn)
    while version < CODE_SCHEMA_VERSION:
        version = _apply_step(conn)

    # Structural pass: indexes and triggers that older layouts never had.
    _ensure_structure(conn)
    return version


def schema_status(conn: sqlite3.Connection) -> SchemaStatus:
    """Report the code and registry schema versions."""
    return SchemaStatus(code_version=CODE_SCHEMA_VERSION, db_version=get_db_version(conn))
