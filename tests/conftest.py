"""Test fixtures and configuration."""

import subprocess
import tempfile
from pathlib import Path

import pytest

from vibeports.db import Database
from vibeports.registry import Registry
from vibeports.system import ReclaimResult


class FakeScanner:
    """Stand-in for SystemScanner with a fixed set of occupied ports."""

    def __init__(self, occupied=(), owners=None):
        self.occupied = set(occupied)
        self.owners = owners if owners is not None else {4242}
        self.probed = []
        self.reclaimed = []
        self.reclaim_error = None

    def is_port_free(self, port, host="127.0.0.1"):
        self.probed.append(port)
        return port not in self.occupied

    def find_owning_pids(self, port):
        return set(self.owners) if port in self.occupied else set()

    def reclaim(self, port, wait_ms=2000):
        self.reclaimed.append(port)
        if self.reclaim_error is not None:
            raise self.reclaim_error
        self.occupied.discard(port)
        return ReclaimResult(port=port, terminated=set(self.owners))


@pytest.fixture
def temp_dir():
    """Temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(temp_dir):
    """Path to a registry file that does not exist yet."""
    return temp_dir / "registry" / "test.sqlite3"


@pytest.fixture
def mock_db(db_path):
    """Open registry handle for tests."""
    db = Database(db_path)
    yield db
    db.close()


@pytest.fixture
def fake_scanner():
    """Scanner that reports every port free until told otherwise."""
    return FakeScanner()


@pytest.fixture
def registry(mock_db, fake_scanner):
    """Registry backed by a temporary file and a fake scanner."""
    return Registry(mock_db, fake_scanner)


@pytest.fixture
def mock_git_repo(temp_dir):
    """Create a mock git repository on branch feat/x with an origin remote."""
    repo_dir = temp_dir / "repo"
    repo_dir.mkdir()

    subprocess.run(["git", "init"], cwd=repo_dir, capture_output=True, check=True)
    subprocess.run(
        ["git", "remote", "add", "origin", "https://example.com/acme/my_repo.git"],
        cwd=repo_dir,
        capture_output=True,
        check=True,
    )
    subprocess.run(
        ["git", "config", "user.email", "test@example.com"],
        cwd=repo_dir,
        capture_output=True,
        check=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Test User"],
        cwd=repo_dir,
        capture_output=True,
        check=True,
    )
    (repo_dir / "README.md").write_text("# Test")
    subprocess.run(["git", "add", "."], cwd=repo_dir, capture_output=True, check=True)
    subprocess.run(
        ["git", "commit", "-m", "Initial commit"],
        cwd=repo_dir,
        capture_output=True,
        check=True,
    )
    subprocess.run(
        ["git", "checkout", "-b", "feat/x"],
        cwd=repo_dir,
        capture_output=True,
        check=True,
    )

    return repo_dir
