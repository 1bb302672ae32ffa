"""OS-level port probing and reclaiming for vibeports."""

import logging
import os
import re
import signal
import socket
import subprocess
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import DEFAULT_COMMAND_TIMEOUT, DEFAULT_RECLAIM_WAIT_MS, KILL_COMMAND_TIMEOUT
from .errors import ExternalToolUnavailableError, ReclaimFailedError

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.12


@dataclass
class ReclaimResult:
    """Outcome of a reclaim attempt."""

    port: int
    terminated: set[int] = field(default_factory=set)
    forced: bool = False


class SystemScanner:
    """Probe ports and the processes listening on them."""

    def __init__(
        self,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        """Initialize scanner.

        Args:
            command_timeout: Timeout in seconds for each external command
            poll_interval: Delay in seconds between free-checks while reclaiming
        """
        self.command_timeout = command_timeout
        self.poll_interval = poll_interval

    def is_port_free(self, port: int, host: str = "127.0.0.1") -> bool:
        """Test if a port can be bound and listened on.

        ``SO_REUSEADDR`` lets the bind succeed over TIME_WAIT leftovers of a
        closed server while a live listener still makes it fail. Windows
        gives that option port-stealing semantics, so there the socket is
        opened with ``SO_EXCLUSIVEADDRUSE`` instead.

        Args:
            port: Port number to test
            host: Interface to bind

        Returns:
            True if port is free, False otherwise
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                if hasattr(socket, "SO_EXCLUSIVEADDRUSE"):
                    s.setsockopt(socket.SOL_SOCKET, socket.SO_EXCLUSIVEADDRUSE, 1)
                else:
                    s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                s.bind((host, port))
                s.listen(1)
                return True
        except OSError:
            return False

    def find_owning_pids(self, port: int) -> set[int]:
        """Find processes listening on a port.

        Tries platform tools in order and returns the first non-empty answer:

        1. lsof (macOS/Linux)
        2. fuser (Linux)
        3. ss (Linux)
        4. netstat (Windows)

        Args:
            port: Port number

        Returns:
            Set of process ids, empty if nothing was found or no tool works
        """
        for provider in self._pid_providers():
            try:
                pids = provider(port)
            except ExternalToolUnavailableError as e:
                logger.debug("%s", e)
                continue
            if pids:
                return pids
        return set()

    def reclaim(self, port: int, wait_ms: int = DEFAULT_RECLAIM_WAIT_MS) -> ReclaimResult:
        """Terminate the processes listening on a port.

        Sends a graceful termination, waits up to ``wait_ms`` for the port to
        free up, then escalates to a forced kill. Processes that restart or
        rebind during the wait are not accounted for, so success only means
        the port was free at the final check.

        Args:
            port: Port number
            wait_ms: Grace period in milliseconds before forcing

        Returns:
            ReclaimResult with the pids that were signalled

        Raises:
            ReclaimFailedError: If the port is still occupied afterwards
        """
        result = ReclaimResult(port=port)
        pids = self.find_owning_pids(port)
        if not pids:
            if self.is_port_free(port):
                return result
            raise ReclaimFailedError(
                f"Port {port} is occupied but no owning process could be found"
            )

        logger.debug("Terminating pids %s on port %d", sorted(pids), port)
        self._terminate(pids, force=False)
        result.terminated = set(pids)

        deadline = time.monotonic() + wait_ms / 1000
        while time.monotonic() < deadline:
            if self.is_port_free(port):
                break
            time.sleep(self.poll_interval)

        if not self.is_port_free(port):
            logger.debug("Port %d still occupied, forcing pids %s", port, sorted(pids))
            self._terminate(pids, force=True)
            result.forced = True

        if not self.is_port_free(port):
            raise ReclaimFailedError(f"Failed to free port {port}")
        return result

    def _pid_providers(self) -> list[Callable[[int], set[int]]]:
        if sys.platform == "win32":
            return [self._pids_netstat]
        return [self._pids_lsof, self._pids_fuser, self._pids_ss]

    def _run(self, args: list[str], timeout: float | None = None) -> subprocess.CompletedProcess[str]:
        """Run an external command.

        Raises:
            ExternalToolUnavailableError: If the tool is missing or times out
        """
        try:
            return subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=timeout or self.command_timeout,
            )
        except (subprocess.SubprocessError, OSError) as e:
            raise ExternalToolUnavailableError(f"{args[0]} unavailable: {e}") from e

    def _pids_lsof(self, port: int) -> set[int]:
        """Find listeners using lsof (macOS/Linux)."""
        result = self._run(["lsof", "-t", f"-iTCP:{port}", "-sTCP:LISTEN"])
        if result.returncode != 0:
            return set()
        return {int(s) for s in result.stdout.split() if s.isdigit()}

    def _pids_fuser(self, port: int) -> set[int]:
        """Find listeners using fuser (Linux)."""
        result = self._run(["fuser", "-n", "tcp", str(port)])
        if result.returncode != 0:
            return set()
        # Format on stdout: " 1234 5678" (the "8080/tcp:" prefix goes to stderr)
        return {int(s) for s in re.findall(r"\d+", result.stdout)}

    def _pids_ss(self, port: int) -> set[int]:
        """Find listeners using ss (Linux)."""
        result = self._run(["ss", "-lntpH"])
        if result.returncode != 0:
            return set()
        pids: set[int] = set()
        for line in result.stdout.splitlines():
            # Format: LISTEN 0 511 127.0.0.1:3000 0.0.0.0:* users:(("node",pid=1234,fd=20))
            if re.search(rf":{port}\s", line):
                pids.update(int(p) for p in re.findall(r"pid=(\d+)", line))
        return pids

    def _pids_netstat(self, port: int) -> set[int]:
        """Find listeners using netstat (Windows)."""
        result = self._run(["netstat", "-ano", "-p", "TCP"])
        if result.returncode != 0:
            return set()
        pids: set[int] = set()
        for line in result.stdout.splitlines():
            # Format: TCP 0.0.0.0:3000 0.0.0.0:0 LISTENING 1234
            parts = line.split()
            if len(parts) >= 5 and parts[1].endswith(f":{port}") and parts[-1].isdigit():
                pids.add(int(parts[-1]))
        return pids

    def _terminate(self, pids: set[int], force: bool) -> None:
        if sys.platform == "win32":
            for pid in pids:
                try:
                    self._run(["taskkill", "/PID", str(pid), "/T", "/F"], timeout=KILL_COMMAND_TIMEOUT)
                except ExternalToolUnavailableError as e:
                    logger.debug("%s", e)
            return

        sig = signal.SIGKILL if force else signal.SIGTERM
        for pid in pids:
            try:
                os.kill(pid, sig)
            except ProcessLookupError:
                pass
            except PermissionError:
                logger.warning("Not permitted to signal pid %d", pid)
