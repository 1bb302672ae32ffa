"""Reserved ports the allocator must never hand out."""

import sqlite3
from dataclasses import dataclass

from .ranges import validate_port


@dataclass
class ReservedPort:
    """A reserved port entry."""

    port: int
    reason: str | None
    created_at: str


def is_reserved(conn: sqlite3.Connection, port: int) -> bool:
    """Check whether a port is reserved."""
    row = conn.execute("SELECT 1 FROM reserved_ports WHERE port = ?", (port,)).fetchone()
    return row is not None


def reserved_ports(conn: sqlite3.Connection) -> set[int]:
    """Get the set of all reserved port numbers."""
    return {row[0] for row in conn.execute("SELECT port FROM reserved_ports")}


def reserve(conn: sqlite3.Connection, port: int, reason: str | None = None) -> None:
    """Reserve a port. Reserving an already reserved port is a no-op.

    Bindings that already hold the port keep it.
    """
    port = validate_port(port)
    conn.execute(
        "INSERT OR IGNORE INTO reserved_ports(port, reason) VALUES (?, ?)",
        (port, reason.strip() if reason and reason.strip() else None),
    )


def unreserve(conn: sqlite3.Connection, port: int) -> int:
    """Remove a reservation.

    Returns:
        Number of rows deleted (0 or 1)
    """
    port = validate_port(port)
    return conn.execute("DELETE FROM reserved_ports WHERE port = ?", (port,)).rowcount


def list_reserved(conn: sqlite3.Connection) -> list[ReservedPort]:
    """List reservations ordered by port."""
    cursor = conn.execute("SELECT port, reason, created_at FROM reserved_ports ORDER BY port")
    return [
        ReservedPort(port=row["port"], reason=row["reason"], created_at=row["created_at"])
        for row in cursor.fetchall()
    ]
