"""Binding registry: allocation and bookkeeping of ports per workload."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any

from .db import Database
from .errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NoFreePortError,
    NotFoundError,
    RangeExhaustedError,
)
from .ranges import normalize_purpose, normalize_range, resolve_range, validate_port
from .reserved import reserved_ports
from .system import SystemScanner

logger = logging.getLogger(__name__)

DEFAULT_NAME = "default"

_BINDING_COLUMNS = "project, branch, purpose, name, port, claimed, created_at, updated_at"


@dataclass(frozen=True)
class BindingKey:
    """Identity of a workload: (project, branch, purpose, name)."""

    project: str
    branch: str
    purpose: str
    name: str = DEFAULT_NAME

    @classmethod
    def create(
        cls, project: str, branch: str, purpose: str, name: str | None = DEFAULT_NAME
    ) -> "BindingKey":
        """Build a key from raw input.

        Project and branch are trimmed and must not be empty, the purpose is
        normalized, and an empty name falls back to ``"default"``.

        Raises:
            InvalidArgumentError: If project, branch or purpose is empty
        """
        project = (project or "").strip()
        branch = (branch or "").strip()
        if not project:
            raise InvalidArgumentError("project is required")
        if not branch:
            raise InvalidArgumentError("branch is required")
        return cls(
            project=project,
            branch=branch,
            purpose=normalize_purpose(purpose),
            name=(name or "").strip() or DEFAULT_NAME,
        )

    def as_params(self) -> tuple[str, str, str, str]:
        return (self.project, self.branch, self.purpose, self.name)


@dataclass
class Binding:
    """A registry row mapping a key to a port."""

    project: str
    branch: str
    purpose: str
    name: str
    port: int
    claimed: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Binding":
        return cls(
            project=row["project"],
            branch=row["branch"],
            purpose=row["purpose"],
            name=row["name"],
            port=row["port"],
            claimed=bool(row["claimed"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @property
    def key(self) -> BindingKey:
        return BindingKey(self.project, self.branch, self.purpose, self.name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project,
            "branch": self.branch,
            "purpose": self.purpose,
            "name": self.name,
            "port": self.port,
            "claimed": self.claimed,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class RangeDeleteResult:
    """Result of deleting every binding in a port range."""

    count: int
    ports: list[int] = field(default_factory=list)


class Registry:
    """Allocate and manage port bindings in a registry file."""

    def __init__(self, db: Database, scanner: SystemScanner | None = None) -> None:
        """Initialize registry.

        Args:
            db: Open registry handle
            scanner: OS prober used by find_free_port. Defaults to SystemScanner.
        """
        self.db = db
        self.system = scanner or SystemScanner()

    def allocate(
        self,
        project: str,
        branch: str,
        purpose: str,
        name: str = DEFAULT_NAME,
        fail_if_exists: bool = False,
    ) -> int:
        """Allocate a port for a key.

        Strategy:
        1. If the key is already bound → return its port (or fail with
           fail_if_exists)
        2. Otherwise → insert the first unreserved port of the purpose range
           that the registry accepts

        The whole scan runs in one write transaction, so concurrent callers
        for the same key end up with a single binding.

        Args:
            project: Project name
            branch: Branch name
            purpose: Purpose name (e.g., "frontend", "backend")
            name: Component name within the purpose
            fail_if_exists: Raise instead of returning an existing binding

        Returns:
            The bound port number

        Raises:
            AlreadyExistsError: If fail_if_exists and the key is bound
            NoRangeConfiguredError: If the purpose has no range
            RangeExhaustedError: If no port in the range is available
        """
        key = BindingKey.create(project, branch, purpose, name)

        with self.db.transaction() as conn:
            existing = self._select_port(conn, key)
            if existing is not None:
                if fail_if_exists:
                    raise AlreadyExistsError(
                        f"Binding already exists for {_describe(key)} on port {existing}",
                        port=existing,
                    )
                return existing

            port_range = resolve_range(conn, key.purpose)
            reserved = reserved_ports(conn)

            for port in range(port_range.start, port_range.end + 1):
                if port in reserved:
                    continue
                try:
                    self._insert(conn, key, port)
                    logger.debug("Allocated port %d for %s", port, _describe(key))
                    return port
                except sqlite3.IntegrityError:
                    now = self._select_port(conn, key)
                    if now is not None:
                        return now
                    continue

            raise RangeExhaustedError(
                f"No available port in range {port_range.start}-{port_range.end} "
                f"for purpose '{key.purpose}'"
            )

    def try_insert(self, key: BindingKey, port: int, claimed: bool = False) -> int | None:
        """Bind a key to one specific port, if both are still available.

        This is the atomic step retried by scanning callers: one short write
        transaction that either finds the key already bound, inserts it, or
        reports that the port was taken.

        Args:
            key: Normalized binding key
            port: Candidate port
            claimed: Claimed flag of a new row; when set, a binding that
                another caller created first is marked claimed as well

        Returns:
            The port the key is bound to, or None if the port was taken
        """
        with self.db.transaction() as conn:
            bound = self._select_port(conn, key)
            if bound is None:
                try:
                    self._insert(conn, key, port, claimed)
                    logger.debug("Bound port %d to %s", port, _describe(key))
                    return port
                except sqlite3.IntegrityError:
                    bound = self._select_port(conn, key)
            if bound is not None and claimed:
                self._set_claimed(conn, key)
            return bound

    def get(self, project: str, branch: str, purpose: str, name: str = DEFAULT_NAME) -> int:
        """Get the port bound to a key.

        Raises:
            NotFoundError: If the key has no binding
        """
        binding = self.get_binding(project, branch, purpose, name)
        if binding is None:
            raise NotFoundError("Not found")
        return binding.port

    def get_binding(
        self, project: str, branch: str, purpose: str, name: str = DEFAULT_NAME
    ) -> Binding | None:
        """Get the full binding for a key, or None."""
        key = BindingKey.create(project, branch, purpose, name)
        row = self.db.conn.execute(
            f"""
            SELECT {_BINDING_COLUMNS} FROM bindings
            WHERE project = ? AND branch = ? AND purpose = ? AND name = ?
            """,
            key.as_params(),
        ).fetchone()
        return Binding.from_row(row) if row else None

    def get_by_port(self, port: int) -> Binding | None:
        """Get the binding that holds a port, or None."""
        port = validate_port(port)
        row = self.db.conn.execute(
            f"SELECT {_BINDING_COLUMNS} FROM bindings WHERE port = ?", (port,)
        ).fetchone()
        return Binding.from_row(row) if row else None

    def delete(self, project: str, branch: str, purpose: str, name: str = DEFAULT_NAME) -> bool:
        """Delete the binding for a key.

        Returns:
            True if deleted, False if not found
        """
        key = BindingKey.create(project, branch, purpose, name)
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM bindings WHERE project = ? AND branch = ? AND purpose = ? AND name = ?",
                key.as_params(),
            )
        return cursor.rowcount > 0

    def delete_by_port(self, port: int) -> bool:
        """Delete the binding holding a port.

        Returns:
            True if deleted, False if not found
        """
        port = validate_port(port)
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM bindings WHERE port = ?", (port,))
        return cursor.rowcount > 0

    def delete_by_range(self, start: int, end: int) -> RangeDeleteResult:
        """Delete every binding whose port lies in an inclusive range.

        Endpoints may be given in either order.

        Returns:
            RangeDeleteResult with the count and the removed ports, ascending
        """
        start, end = normalize_range(start, end)
        with self.db.transaction() as conn:
            ports = [
                row["port"]
                for row in conn.execute(
                    "SELECT port FROM bindings WHERE port BETWEEN ? AND ? ORDER BY port",
                    (start, end),
                )
            ]
            conn.execute("DELETE FROM bindings WHERE port BETWEEN ? AND ?", (start, end))
        return RangeDeleteResult(count=len(ports), ports=ports)

    def list(
        self,
        project: str | None = None,
        branch: str | None = None,
        purpose: str | None = None,
        name: str | None = None,
    ) -> list[Binding]:
        """List bindings, optionally filtered.

        Returns:
            Bindings ordered by (project, branch, purpose, name)
        """
        clauses: list[str] = []
        params: list[str] = []
        filters = {
            "project": project,
            "branch": branch,
            "purpose": normalize_purpose(purpose) if purpose else None,
            "name": name,
        }
        for column, value in filters.items():
            if value is not None and value.strip():
                clauses.append(f"{column} = ?")
                params.append(value.strip())

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = self.db.conn.execute(
            f"""
            SELECT {_BINDING_COLUMNS} FROM bindings
            {where}
            ORDER BY project, branch, purpose, name
            """,
            params,
        )
        return [Binding.from_row(row) for row in cursor.fetchall()]

    def list_by_port_range(self, start: int, end: int) -> list[Binding]:
        """List bindings whose port lies in an inclusive range, by port."""
        start, end = normalize_range(start, end)
        cursor = self.db.conn.execute(
            f"SELECT {_BINDING_COLUMNS} FROM bindings WHERE port BETWEEN ? AND ? ORDER BY port",
            (start, end),
        )
        return [Binding.from_row(row) for row in cursor.fetchall()]

    def get_all_registered_ports(self) -> set[int]:
        """Get the set of ports held by any binding."""
        return {row["port"] for row in self.db.conn.execute("SELECT port FROM bindings")}

    def get_reserved_ports(self) -> set[int]:
        """Get the set of reserved ports."""
        return reserved_ports(self.db.conn)

    def mark_claimed(self, key: BindingKey) -> bool:
        """Set the claimed flag on a binding.

        Returns:
            True if an unclaimed binding was marked
        """
        with self.db.transaction() as conn:
            return self._set_claimed(conn, key)

    def find_free_port(
        self,
        start: int,
        end: int,
        include_registered: bool = False,
        include_reserved: bool = False,
    ) -> int:
        """Find the first port in a range that is free at the OS level.

        Registered and reserved ports are skipped unless included. Nothing is
        recorded, so the port may be taken by someone else before it is used.

        Returns:
            The first free port, ascending

        Raises:
            NoFreePortError: If no candidate is free
        """
        start, end = normalize_range(start, end)
        skip: set[int] = set()
        if not include_registered:
            skip |= self.get_all_registered_ports()
        if not include_reserved:
            skip |= self.get_reserved_ports()

        for port in range(start, end + 1):
            if port in skip:
                continue
            if self.system.is_port_free(port):
                return port

        raise NoFreePortError(f"No free port found in range {start}-{end}")

    def _select_port(self, conn: sqlite3.Connection, key: BindingKey) -> int | None:
        row = conn.execute(
            "SELECT port FROM bindings WHERE project = ? AND branch = ? AND purpose = ? AND name = ?",
            key.as_params(),
        ).fetchone()
        return row["port"] if row else None

    def _set_claimed(self, conn: sqlite3.Connection, key: BindingKey) -> bool:
        cursor = conn.execute(
            """
            UPDATE bindings SET claimed = 1
            WHERE project = ? AND branch = ? AND purpose = ? AND name = ? AND claimed = 0
            """,
            key.as_params(),
        )
        return cursor.rowcount > 0

    def _insert(
        self, conn: sqlite3.Connection, key: BindingKey, port: int, claimed: bool = False
    ) -> None:
        conn.execute(
            """
            INSERT INTO bindings (project, branch, purpose, name, port, claimed)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (*key.as_params(), port, 1 if claimed else 0),
        )


def _describe(key: BindingKey) -> str:
    return f"{key.project}/{key.branch}/{key.purpose}/{key.name}"
