"""Tests for schema creation and migrations."""

import sqlite3

import pytest

from vibeports.db import Database
from vibeports.errors import UnsupportedSchemaError
from vibeports.registry import Registry
from vibeports.schema import CODE_SCHEMA_VERSION, get_db_version

V1_SCHEMA = """
CREATE TABLE bindings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project TEXT NOT NULL,
    branch TEXT NOT NULL,
    purpose TEXT NOT NULL,
    port INTEGER NOT NULL CHECK (port BETWEEN 1 AND 65535),
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
    CHECK (length(trim(project)) > 0),
    CHECK (length(trim(branch)) > 0),
    CHECK (length(trim(purpose)) > 0)
);
CREATE UNIQUE INDEX idx_bindings_unique_combo ON bindings(project, branch, purpose);
CREATE UNIQUE INDEX idx_bindings_port_unique ON bindings(port);
INSERT INTO bindings(project, branch, purpose, port, created_at, updated_at)
VALUES ('projM', 'feat-m', 'backend', 8123, '2024-01-01T00:00:00.000Z', '2024-01-01T00:00:00.000Z');
"""


def _columns(conn, table):
    return {row[1] for row in conn.execute(f"PRAGMA table_info('{table}')")}


def _tables(conn):
    return {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}


def _write_legacy(path, script):
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(script)
        conn.commit()
    finally:
        conn.close()


def test_fresh_registry_gets_current_schema(mock_db):
    """Test a new registry file is created at the current version."""
    conn = mock_db.conn
    assert {"bindings", "meta", "purpose_ranges", "reserved_ports"} <= _tables(conn)
    assert {"name", "claimed"} <= _columns(conn, "bindings")
    assert get_db_version(conn) == CODE_SCHEMA_VERSION
    assert mock_db.schema_version == CODE_SCHEMA_VERSION


def test_fresh_registry_seeds_reserved_ports(mock_db):
    """Test both batches of well-known ports are reserved."""
    ports = {row[0] for row in mock_db.conn.execute("SELECT port FROM reserved_ports")}
    assert {22, 80, 443} <= ports
    assert {3306, 5432, 6379, 27017, 9200, 5601, 11211, 9092, 5672, 15672} <= ports


def test_parent_directories_are_created(db_path):
    """Test opening a registry creates missing parent directories."""
    assert not db_path.parent.exists()
    with Database(db_path):
        pass
    assert db_path.exists()


def test_wal_journal_mode(mock_db):
    """Test the registry uses write-ahead logging."""
    mode = mock_db.conn.execute("PRAGMA journal_mode").fetchone()[0]
    assert mode.lower() == "wal"


def test_migrate_from_v1_layout(db_path):
    """Test a pre-versioning registry is migrated without losing data."""
    _write_legacy(db_path, V1_SCHEMA)

    with Database(db_path) as db:
        conn = db.conn
        assert get_db_version(conn) == CODE_SCHEMA_VERSION
        assert {"name", "claimed"} <= _columns(conn, "bindings")
        assert {"purpose_ranges", "reserved_ports"} <= _tables(conn)

        reserved = {row[0] for row in conn.execute("SELECT port FROM reserved_ports")}
        assert {22, 80, 443, 5432, 15672} <= reserved

        row = conn.execute("SELECT * FROM bindings").fetchone()
        assert row["project"] == "projM"
        assert row["branch"] == "feat-m"
        assert row["purpose"] == "backend"
        assert row["name"] == "default"
        assert row["port"] == 8123
        assert row["claimed"] == 0
        assert row["created_at"] == "2024-01-01T00:00:00.000Z"
        assert row["updated_at"] == "2024-01-01T00:00:00.000Z"


def test_migrated_v1_accepts_named_components(db_path, fake_scanner):
    """Test the rebuilt unique index allows several names per tuple."""
    _write_legacy(db_path, V1_SCHEMA)

    with Database(db_path) as db:
        registry = Registry(db, fake_scanner)
        new_port = registry.allocate("projM", "feat-m", "backend", name="api")

        assert 8000 <= new_port <= 8999
        assert new_port != 8123
        assert registry.get("projM", "feat-m", "backend") == 8123
        names = sorted(b.name for b in registry.list(project="projM"))
        assert names == ["api", "default"]


def test_unversioned_registry_with_name_column_is_v2(db_path):
    """Test structural inference picks version 2 when name exists."""
    script = V1_SCHEMA.replace(
        "purpose TEXT NOT NULL,", "purpose TEXT NOT NULL,\n    name TEXT NOT NULL DEFAULT 'default',", 1
    )
    _write_legacy(db_path, script)

    with Database(db_path) as db:
        assert get_db_version(db.conn) == CODE_SCHEMA_VERSION
        assert "claimed" in _columns(db.conn, "bindings")
        assert db.conn.execute("SELECT COUNT(*) FROM reserved_ports").fetchone()[0] > 0


def test_versioned_registry_steps_forward(db_path):
    """Test a registry stamped at version 4 only gains the claimed column."""
    with Database(db_path) as db:
        db.conn.execute("UPDATE meta SET value = '4' WHERE key = 'schema_version'")
        db.conn.execute("DELETE FROM reserved_ports WHERE port = 5432")

    with Database(db_path) as db:
        assert get_db_version(db.conn) == CODE_SCHEMA_VERSION
        # the v3->v4 seed step was not replayed
        assert db.conn.execute("SELECT 1 FROM reserved_ports WHERE port = 5432").fetchone() is None


def test_newer_schema_is_rejected(db_path):
    """Test opening a registry written by a newer version fails."""
    with Database(db_path) as db:
        db.conn.execute(
            "UPDATE meta SET value = ? WHERE key = 'schema_version'",
            (str(CODE_SCHEMA_VERSION + 1),),
        )

    with pytest.raises(UnsupportedSchemaError):
        Database(db_path)


def test_reopen_is_idempotent(db_path, fake_scanner):
    """Test opening a current registry repeatedly changes nothing."""
    with Database(db_path) as db:
        port = Registry(db, fake_scanner).allocate("p", "b", "frontend")

    with Database(db_path) as db:
        assert get_db_version(db.conn) == CODE_SCHEMA_VERSION
        assert Registry(db, fake_scanner).get("p", "b", "frontend") == port


def test_unreserved_seed_stays_removed(db_path):
    """Test the structural pass on open does not re-seed reservations."""
    with Database(db_path) as db:
        db.conn.execute("DELETE FROM reserved_ports WHERE port = 22")

    with Database(db_path) as db:
        assert db.conn.execute("SELECT 1 FROM reserved_ports WHERE port = 22").fetchone() is None


def test_schema_status(mock_db):
    """Test schema status reports both versions."""
    status = mock_db.schema_status()
    assert status.code_version == CODE_SCHEMA_VERSION
    assert status.db_version == CODE_SCHEMA_VERSION
