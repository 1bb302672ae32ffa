"""Claim logic: allocation backed by OS-level port availability."""

import logging

from .config import DEFAULT_RECLAIM_WAIT_MS
from .errors import RangeExhaustedError
from .ranges import resolve_range
from .registry import DEFAULT_NAME, BindingKey, Registry

logger = logging.getLogger(__name__)


class Claimer:
    """Claim ports that are both registered and actually free on this host."""

    def __init__(self, registry: Registry, reclaim_wait_ms: int = DEFAULT_RECLAIM_WAIT_MS) -> None:
        """Initialize claimer.

        Args:
            registry: Binding registry; its scanner is used for OS probing
            reclaim_wait_ms: Grace period for savage reclaims
        """
        self.registry = registry
        self.system = registry.system
        self.reclaim_wait_ms = reclaim_wait_ms

    def claim(
        self,
        project: str,
        branch: str,
        purpose: str,
        name: str = DEFAULT_NAME,
        savage: bool = False,
    ) -> int:
        """Claim a port for a key.

        Strategy:
        1. Key not bound → scan the purpose range ascending, skipping
           registered, reserved and OS-occupied ports, and bind the first
           candidate that inserts cleanly (claimed if savage)
        2. Key bound, not savage → return the port untouched
        3. Key bound, savage → free the port if something listens on it,
           then mark the binding claimed

        The OS probe and the insert are separate steps; a candidate taken in
        between makes the insert fail and the scan moves on.

        Args:
            project: Project name
            branch: Branch name
            purpose: Purpose name
            name: Component name
            savage: Kill listeners on an existing binding's port

        Returns:
            The bound port number

        Raises:
            NoRangeConfiguredError: If the purpose has no range
            RangeExhaustedError: If no candidate could be bound
            ReclaimFailedError: If a savage reclaim could not free the port
        """
        key = BindingKey.create(project, branch, purpose, name)

        existing = self.registry.get_binding(key.project, key.branch, key.purpose, key.name)
        if existing is not None:
            if not savage:
                return existing.port
            return self._reclaim_existing(key, existing.port)

        return self._claim_new(key, savage)

    def _reclaim_existing(self, key: BindingKey, port: int) -> int:
        if not self.system.is_port_free(port):
            result = self.system.reclaim(port, wait_ms=self.reclaim_wait_ms)
            logger.debug("Reclaimed port %d (terminated %s)", port, sorted(result.terminated))
        self.registry.mark_claimed(key)
        return port

    def _claim_new(self, key: BindingKey, savage: bool) -> int:
        port_range = resolve_range(self.registry.db.conn, key.purpose)
        reserved = self.registry.get_reserved_ports()
        registered = self.registry.get_all_registered_ports()

        for port in range(port_range.start, port_range.end + 1):
            if port in reserved or port in registered:
                continue
            if not self.system.is_port_free(port):
                continue
            bound = self.registry.try_insert(key, port, claimed=savage)
            if bound is not None:
                return bound

        raise RangeExhaustedError(
            f"No available port in range {port_range.start}-{port_range.end} "
            f"for purpose '{key.purpose}'"
        )
