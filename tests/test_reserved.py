"""Tests for reserved ports."""

import pytest

from vibeports.errors import InvalidArgumentError
from vibeports.reserved import is_reserved, list_reserved, reserve, reserved_ports, unreserve


def test_reserve_and_unreserve(mock_db):
    """Test reservations can be added and removed."""
    conn = mock_db.conn
    assert not is_reserved(conn, 8000)

    reserve(conn, 8000, "local proxy")
    assert is_reserved(conn, 8000)
    assert 8000 in reserved_ports(conn)

    assert unreserve(conn, 8000) == 1
    assert not is_reserved(conn, 8000)


def test_reserve_is_idempotent(mock_db):
    """Test reserving twice keeps the first reason."""
    conn = mock_db.conn
    reserve(conn, 8000, "first")
    reserve(conn, 8000, "second")

    entry = next(e for e in list_reserved(conn) if e.port == 8000)
    assert entry.reason == "first"


def test_unreserve_missing_port(mock_db):
    """Test unreserving a port that was never reserved is a no-op."""
    assert unreserve(mock_db.conn, 8001) == 0


def test_list_reserved_is_sorted(mock_db):
    """Test reservations are listed by port."""
    ports = [e.port for e in list_reserved(mock_db.conn)]
    assert ports == sorted(ports)
    assert 22 in ports


def test_reserve_rejects_invalid_port(mock_db):
    """Test out-of-range ports cannot be reserved."""
    with pytest.raises(InvalidArgumentError):
        reserve(mock_db.conn, 70000)
