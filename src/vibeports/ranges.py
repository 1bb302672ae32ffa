"""Purpose port ranges: built-in defaults and custom overrides."""

import sqlite3
from dataclasses import dataclass

from .errors import InvalidArgumentError, NoRangeConfiguredError

MIN_PORT = 1
MAX_PORT = 65535

BUILTIN_RANGES: dict[str, tuple[int, int]] = {
    "frontend": (3000, 3999),
    "backend": (8000, 8999),
}


@dataclass
class PurposeRange:
    """Inclusive port range for a purpose."""

    purpose: str
    start: int
    end: int
    source: str = "custom"  # "custom" or "builtin"
    updated_at: str | None = None

    def __contains__(self, port: int) -> bool:
        return self.start <= port <= self.end


def normalize_purpose(purpose: str | None) -> str:
    """Return the canonical (trimmed, lowercase) purpose name.

    Raises:
        InvalidArgumentError: If the purpose is empty
    """
    value = (purpose or "").strip().lower()
    if not value:
        raise InvalidArgumentError("purpose is required")
    return value


def validate_port(port: object, label: str = "port") -> int:
    """Check that a value is an integral port number in [1, 65535].

    Args:
        port: Value to check (ints, or strings of digits)
        label: Name used in the error message

    Returns:
        The port as an int

    Raises:
        InvalidArgumentError: If the value is not an integer in range
    """
    if isinstance(port, bool):
        raise InvalidArgumentError(f"Invalid {label}: {port!r}")
    if isinstance(port, float) and port.is_integer():
        port = int(port)
    if isinstance(port, str) and port.strip().isdigit():
        port = int(port.strip())
    if not isinstance(port, int) or not MIN_PORT <= port <= MAX_PORT:
        raise InvalidArgumentError(f"Invalid {label}: {port!r} (expected {MIN_PORT}-{MAX_PORT})")
    return port


def normalize_range(start: object, end: object) -> tuple[int, int]:
    """Validate both endpoints and return them in ascending order."""
    low = validate_port(start, "range start")
    high = validate_port(end, "range end")
    return (low, high) if low <= high else (high, low)


def parse_range(value: str) -> tuple[int, int]:
    """Parse ``START-END`` into an ordered pair of ports.

    Raises:
        InvalidArgumentError: If the text is not two ports joined by ``-``
    """
    parts = value.strip().split("-")
    if len(parts) != 2 or not all(p.strip().isdigit() for p in parts):
        raise InvalidArgumentError(f"Invalid range {value!r}. Use START-END")
    return normalize_range(parts[0], parts[1])


def resolve_range(conn: sqlite3.Connection, purpose: str) -> PurposeRange:
    """Resolve the effective range for a purpose.

    A custom row wins over the built-in default; purposes without either
    must be configured explicitly before use.

    Args:
        conn: Open registry connection
        purpose: Canonical purpose name

    Returns:
        The effective PurposeRange

    Raises:
        NoRangeConfiguredError: If the purpose has no range
    """
    row = conn.execute(
        "SELECT purpose, start, end, updated_at FROM purpose_ranges WHERE purpose = ?",
        (purpose,),
    ).fetchone()
    if row is not None:
        return PurposeRange(
            purpose=row["purpose"],
            start=row["start"],
            end=row["end"],
            source="custom",
            updated_at=row["updated_at"],
        )
    if purpose in BUILTIN_RANGES:
        start, end = BUILTIN_RANGES[purpose]
        return PurposeRange(purpose=purpose, start=start, end=end, source="builtin")
    raise NoRangeConfiguredError(
        f"No range configured for purpose '{purpose}'. "
        f"Define one with: vibeports purpose set {purpose} START-END"
    )


def set_purpose_range(conn: sqlite3.Connection, purpose: str, start: int, end: int) -> PurposeRange:
    """Create or overwrite a custom range for a purpose.

    Endpoints are swapped if given in descending order.
    """
    purpose = normalize_purpose(purpose)
    start, end = normalize_range(start, end)
    conn.execute(
        """
        INSERT INTO purpose_ranges(purpose, start, end, is_custom) VALUES (?, ?, ?, 1)
        ON CONFLICT(purpose) DO UPDATE SET
            start = excluded.start,
            end = excluded.end,
            is_custom = 1,
            updated_at = strftime('%Y-%m-%dT%H:%M:%fZ','now')
        """,
        (purpose, start, end),
    )
    return resolve_range(conn, purpose)


def list_purpose_ranges(conn: sqlite3.Connection) -> list[PurposeRange]:
    """List all custom ranges, ordered by purpose."""
    cursor = conn.execute(
        "SELECT purpose, start, end, updated_at FROM purpose_ranges ORDER BY purpose"
    )
    return [
        PurposeRange(
            purpose=row["purpose"],
            start=row["start"],
            end=row["end"],
            source="custom",
            updated_at=row["updated_at"],
        )
        for row in cursor.fetchall()
    ]


def delete_purpose_range(conn: sqlite3.Connection, purpose: str) -> int:
    """Delete a custom range; built-in purposes fall back to their default.

    Returns:
        Number of rows deleted (0 or 1)
    """
    cursor = conn.execute(
        "DELETE FROM purpose_ranges WHERE purpose = ?", (normalize_purpose(purpose),)
    )
    return cursor.rowcount
