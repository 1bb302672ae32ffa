"""Named registry actions for automation clients.

Each action opens the registry, performs one core call, closes it, and
returns a JSON-serializable dict. Errors propagate as VibePortsError
subclasses; adapters decide how to report them.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from .claim import Claimer
from .db import Database
from .ranges import (
    delete_purpose_range,
    list_purpose_ranges,
    normalize_purpose,
    resolve_range,
    set_purpose_range,
)
from .registry import DEFAULT_NAME, BindingKey, Registry
from .reserved import list_reserved, reserve, unreserve
from .system import SystemScanner

DbPath = str | Path | None


class Actions:
    """Stateless translation of named actions into registry calls."""

    def __init__(self, db_path: DbPath = None, scanner: SystemScanner | None = None) -> None:
        """Initialize actions.

        Args:
            db_path: Registry file; resolved per call when None
            scanner: OS prober shared by claim/find actions
        """
        self.db_path = db_path
        self.scanner = scanner

    def _open(self) -> Database:
        return Database(self.db_path)

    def allocate(
        self,
        project: str,
        branch: str,
        purpose: str,
        name: str = DEFAULT_NAME,
        fail_if_exists: bool = False,
    ) -> dict[str, Any]:
        key = BindingKey.create(project, branch, purpose, name)
        with self._open() as db:
            port = Registry(db, self.scanner).allocate(
                key.project, key.branch, key.purpose, key.name, fail_if_exists=fail_if_exists
            )
        return _key_payload(key, port=port)

    def claim(
        self,
        project: str,
        branch: str,
        purpose: str,
        name: str = DEFAULT_NAME,
        savage: bool = False,
    ) -> dict[str, Any]:
        key = BindingKey.create(project, branch, purpose, name)
        with self._open() as db:
            port = Claimer(Registry(db, self.scanner)).claim(
                key.project, key.branch, key.purpose, key.name, savage=savage
            )
        return _key_payload(key, port=port)

    def get(self, project: str, branch: str, purpose: str, name: str = DEFAULT_NAME) -> dict[str, Any]:
        key = BindingKey.create(project, branch, purpose, name)
        with self._open() as db:
            port = Registry(db).get(key.project, key.branch, key.purpose, key.name)
        return _key_payload(key, port=port)

    def delete_by_key(
        self, project: str, branch: str, purpose: str, name: str = DEFAULT_NAME
    ) -> dict[str, Any]:
        key = BindingKey.create(project, branch, purpose, name)
        with self._open() as db:
            deleted = Registry(db).delete(key.project, key.branch, key.purpose, key.name)
        return {"deleted": deleted}

    def delete_by_port(self, port: int) -> dict[str, Any]:
        with self._open() as db:
            return {"deleted": Registry(db).delete_by_port(port)}

    def delete_by_range(self, start: int, end: int) -> dict[str, Any]:
        with self._open() as db:
            result = Registry(db).delete_by_range(start, end)
        return {"count": result.count, "ports": result.ports}

    def list(
        self,
        project: str | None = None,
        branch: str | None = None,
        purpose: str | None = None,
        name: str | None = None,
    ) -> dict[str, Any]:
        with self._open() as db:
            bindings = Registry(db).list(project=project, branch=branch, purpose=purpose, name=name)
        return {"items": [b.to_dict() for b in bindings]}

    def find(
        self,
        start: int,
        end: int,
        include_registered: bool = False,
        include_reserved: bool = False,
    ) -> dict[str, Any]:
        with self._open() as db:
            port = Registry(db, self.scanner).find_free_port(
                start, end, include_registered=include_registered, include_reserved=include_reserved
            )
        return {"port": port}

    def migrate_status(self) -> dict[str, Any]:
        with self._open() as db:
            status = db.schema_status()
        return {"code_version": status.code_version, "db_version": status.db_version}

    def purpose_set(self, purpose: str, start: int, end: int) -> dict[str, Any]:
        with self._open() as db, db.transaction() as conn:
            result = set_purpose_range(conn, purpose, start, end)
        return {"purpose": result.purpose, "start": result.start, "end": result.end}

    def purpose_get(self, purpose: str) -> dict[str, Any]:
        with self._open() as db:
            result = resolve_range(db.conn, normalize_purpose(purpose))
        return {
            "purpose": result.purpose,
            "start": result.start,
            "end": result.end,
            "source": result.source,
        }

    def purpose_list(self) -> dict[str, Any]:
        with self._open() as db:
            ranges = list_purpose_ranges(db.conn)
        return {
            "items": [
                {"purpose": r.purpose, "start": r.start, "end": r.end, "updated_at": r.updated_at}
                for r in ranges
            ]
        }

    def purpose_delete(self, purpose: str) -> dict[str, Any]:
        with self._open() as db, db.transaction() as conn:
            return {"deleted": delete_purpose_range(conn, purpose)}

    def reserved_add(self, port: int, reason: str | None = None) -> dict[str, Any]:
        with self._open() as db, db.transaction() as conn:
            reserve(conn, port, reason)
        return {"ok": True}

    def reserved_remove(self, port: int) -> dict[str, Any]:
        with self._open() as db, db.transaction() as conn:
            return {"deleted": unreserve(conn, port)}

    def reserved_list(self) -> dict[str, Any]:
        with self._open() as db:
            entries = list_reserved(db.conn)
        return {
            "items": [
                {"port": e.port, "reason": e.reason, "created_at": e.created_at} for e in entries
            ]
        }

    def named(self) -> dict[str, Callable[..., dict[str, Any]]]:
        """Map public action names to their implementations."""
        return {
            "ports.allocate": self.allocate,
            "ports.claim": self.claim,
            "ports.get": self.get,
            "ports.deleteByKey": self.delete_by_key,
            "ports.deleteByPort": self.delete_by_port,
            "ports.deleteByRange": self.delete_by_range,
            "ports.list": self.list,
            "ports.find": self.find,
            "ports.migrate.status": self.migrate_status,
            "ports.purpose.set": self.purpose_set,
            "ports.purpose.get": self.purpose_get,
            "ports.purpose.list": self.purpose_list,
            "ports.purpose.delete": self.purpose_delete,
            "ports.reserved.add": self.reserved_add,
            "ports.reserved.remove": self.reserved_remove,
            "ports.reserved.list": self.reserved_list,
        }


def _key_payload(key: BindingKey, **extra: Any) -> dict[str, Any]:
    return {
        "project": key.project,
        "branch": key.branch,
        "purpose": key.purpose,
        "name": key.name,
        **extra,
    }
