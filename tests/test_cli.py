"""Tests for the typer CLI."""

import json

import pytest
from typer.testing import CliRunner

from vibeports.cli import app

runner = CliRunner()


@pytest.fixture
def cli(db_path):
    """Invoke the CLI against a temporary registry."""

    def invoke(*args):
        return runner.invoke(app, [*args, "--db", str(db_path)])

    return invoke


def _json(result):
    return json.loads(result.stdout.strip().splitlines()[-1])


def test_version():
    """Test --version prints the version."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "vibeports version" in result.stdout


def test_allocate_and_get(cli):
    """Test allocate prints the port and get returns it."""
    result = cli("allocate", "-p", "proj1", "-b", "feat-x", "-u", "frontend")
    assert result.exit_code == 0
    assert result.stdout.strip() == "3000"

    result = cli("get", "-p", "proj1", "-b", "feat-x", "-u", "frontend", "--json")
    assert result.exit_code == 0
    payload = _json(result)
    assert payload["port"] == 3000
    assert payload["name"] == "default"
    assert payload["claimed"] is False


def test_allocate_json(cli, db_path):
    """Test JSON output carries the normalized key and registry path."""
    result = cli("allocate", "-p", "proj1", "-b", "same", "-u", "Backend", "-n", "api", "--json")
    assert result.exit_code == 0
    payload = _json(result)
    assert payload["purpose"] == "backend"
    assert payload["name"] == "api"
    assert 8000 <= payload["port"] <= 8999
    assert payload["db"] == str(db_path.resolve())


def test_allocate_fail_if_exists(cli):
    """Test --fail-if-exists exits non-zero on a second call."""
    cli("allocate", "-p", "proj1", "-b", "main", "-u", "frontend")
    result = cli("allocate", "-p", "proj1", "-b", "main", "-u", "frontend", "--fail-if-exists")
    assert result.exit_code == 1


def test_get_missing(cli):
    """Test get exits 1 when nothing is bound."""
    result = cli("get", "-p", "proj1", "-b", "main", "-u", "frontend", "--json")
    assert result.exit_code == 1
    assert _json(result)["error"]["code"] == "not_found"


def test_unknown_purpose_needs_range(cli):
    """Test allocating a novel purpose fails until its range is set."""
    result = cli("allocate", "-p", "proj1", "-b", "main", "-u", "worker")
    assert result.exit_code == 1

    assert cli("purpose", "set", "worker", "9199-9100").exit_code == 0
    result = cli("allocate", "-p", "proj1", "-b", "main", "-u", "worker")
    assert result.exit_code == 0
    assert result.stdout.strip() == "9100"

    result = cli("purpose", "get", "worker", "--json")
    assert _json(result) == {"purpose": "worker", "start": 9100, "end": 9199, "source": "custom"}


def test_reserved_commands(cli):
    """Test reserving a port makes the allocator skip it."""
    assert cli("reserved", "add", "3000", "--reason", "dev proxy").exit_code == 0

    result = cli("reserved", "list", "--json")
    entries = {e["port"]: e["reason"] for e in _json(result)["items"]}
    assert entries[3000] == "dev proxy"

    result = cli("allocate", "-p", "proj1", "-b", "main", "-u", "frontend")
    assert result.stdout.strip() == "3001"

    assert cli("reserved", "remove", "3000").exit_code == 0


def test_delete_by_range_needs_confirmation(cli):
    """Test deleting several bindings by range requires --yes."""
    cli("allocate", "-p", "proj1", "-b", "main", "-u", "frontend")
    cli("allocate", "-p", "proj2", "-b", "main", "-u", "frontend")

    result = cli("delete", "--range", "3000-3010")
    assert result.exit_code == 1

    result = cli("delete", "--range", "3000-3010", "--dry-run", "--json")
    assert result.exit_code == 0
    assert _json(result)["matched"] == 2

    result = cli("delete", "--range", "3010-3000", "--yes", "--json")
    assert result.exit_code == 0
    payload = _json(result)
    assert payload["count"] == 2
    assert payload["ports"] == [3000, 3001]

    result = cli("list", "--json")
    assert _json(result)["count"] == 0


def test_delete_port_and_range_conflict(cli):
    """Test --port and --range cannot be combined."""
    result = cli("delete", "--port", "3000", "--range", "3000-3010")
    assert result.exit_code == 1


def test_delete_by_key_and_port(cli):
    """Test deleting by key and by port."""
    cli("allocate", "-p", "proj1", "-b", "main", "-u", "frontend")
    cli("allocate", "-p", "proj1", "-b", "main", "-u", "backend")

    assert cli("delete", "-p", "proj1", "-b", "main", "-u", "frontend").exit_code == 0
    assert cli("delete", "--port", "8000").exit_code == 0
    assert cli("delete", "--port", "8000").exit_code == 1
    assert _json(cli("list", "--json"))["count"] == 0


def test_list_table(cli):
    """Test the table view shows bindings."""
    cli("allocate", "-p", "proj1", "-b", "main", "-u", "frontend")
    result = cli("list")
    assert result.exit_code == 0
    assert "proj1" in result.stdout
    assert "3000" in result.stdout


def test_find(cli):
    """Test find prints a port inside the range."""
    result = cli("find", "3100-3110", "--json")
    assert result.exit_code == 0
    assert 3100 <= _json(result)["port"] <= 3110


def test_migrate_status(cli):
    """Test migrate-status reports matching versions."""
    result = cli("migrate-status", "--json")
    payload = _json(result)
    assert payload["code_version"] == payload["db_version"]


def test_auto_keys(mock_git_repo, monkeypatch):
    """Test auto keys prints git-derived keys."""
    monkeypatch.chdir(mock_git_repo)
    result = runner.invoke(app, ["auto", "keys"])
    assert result.exit_code == 0
    payload = _json(result)
    assert payload["project"] == "my_repo"
    assert payload["branch"] == "feat/x"


def test_auto_claim_get_delete(cli, mock_git_repo, monkeypatch):
    """Test the auto commands act on git-derived keys."""
    monkeypatch.chdir(mock_git_repo)

    result = cli("auto", "claim", "-u", "backend", "-n", "auto")
    assert result.exit_code == 0
    port = int(result.stdout.strip())
    assert 8000 <= port <= 8999

    result = cli("auto", "get", "-u", "backend", "-n", "auto")
    assert int(result.stdout.strip()) == port

    result = cli("auto", "list", "--json")
    payload = _json(result)
    assert payload["count"] == 1
    assert payload["items"][0]["project"] == "my_repo"

    result = cli("auto", "delete", "-u", "backend", "-n", "auto", "--yes", "--json")
    assert result.exit_code == 0
    assert _json(result)["deleted"] == 1


def test_auto_claim_normalizes_name(cli, mock_git_repo, monkeypatch):
    """Test auto claim and get report the stored key, not the raw input."""
    monkeypatch.chdir(mock_git_repo)

    result = cli("auto", "claim", "-u", " Backend ", "-n", "", "--json")
    assert result.exit_code == 0
    payload = _json(result)
    assert payload["purpose"] == "backend"
    assert payload["name"] == "default"

    result = cli("auto", "get", "-u", "backend", "-n", "  ", "--json")
    assert result.exit_code == 0
    assert _json(result)["name"] == "default"
    assert _json(result)["port"] == payload["port"]
