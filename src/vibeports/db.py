"""Database layer for vibeports - SQLite-backed port registry file."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType

from .config import get_busy_timeout_ms, resolve_db_path
from .schema import SchemaStatus, migrate, schema_status

logger = logging.getLogger(__name__)


class Database:
    """Open handle on a registry file.

    The handle owns one connection for its lifetime. Opening it migrates the
    file to the current schema before any other statement runs. Concurrency
    between processes is left to SQLite: WAL journaling plus a busy timeout
    so that competing writers wait briefly instead of failing.
    """

    def __init__(self, db_path: str | Path | None = None, busy_timeout_ms: int | None = None) -> None:
        """Open (and create, if needed) the registry file.

        Args:
            db_path: Path to the SQLite file. If None, resolved from the
                environment or the default location.
            busy_timeout_ms: Lock wait in milliseconds. If None, read from
                the environment.

        Raises:
            UnsupportedSchemaError: If the file was written by a newer version
        """
        self.db_path = resolve_db_path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        self.busy_timeout_ms = (
            get_busy_timeout_ms() if busy_timeout_ms is None else busy_timeout_ms
        )

        self.conn = self._connect()
        try:
            self.schema_version = migrate(self.conn)
        except BaseException:
            self.conn.close()
            raise
        logger.debug("Opened registry %s (schema v%d)", self.db_path, self.schema_version)

    def _connect(self) -> sqlite3.Connection:
        """Create the connection and apply the per-connection pragmas."""
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside a write transaction.

        ``BEGIN IMMEDIATE`` takes the write lock up front, so concurrent
        writers queue on the busy timeout rather than failing at commit.
        The transaction is rolled back if the block raises.

        Yields:
            The underlying connection
        """
        self.conn.execute("BEGIN IMMEDIATE")
        try:
            yield self.conn
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        self.conn.execute("COMMIT")

    def schema_status(self) -> SchemaStatus:
        """Report the code and file schema versions."""
        return schema_status(self.conn)

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
