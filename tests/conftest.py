"""Shared test fixtures."""

from __future__ import annotations

import json
import socket
import threading
from pathlib import Path

import pytest
from click.testing import CliRunner

SEED_USERS = [
    {"username": "alice", "password": "wonderland"},
    {"username": "bob", "password": "builder"},
]


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Return the path of a fresh document seeded with two users and no tasks."""
    path = tmp_path / "db.json"
    path.write_text(json.dumps({"tasks": [], "users": SEED_USERS}, indent=2) + "\n")
    return path


@pytest.fixture()
def store(db_path: Path):
    """Return a DocumentStore over the seeded document."""
    from teamtasks.storage.document import DocumentStore

    return DocumentStore(db_path, lock_timeout=5)


def _make_task(task_id: int = 1700000000000, **overrides) -> dict:
    task = {
        "id": task_id,
        "author": "alice",
        "text": "buy milk",
        "completed": False,
        "createdAt": "2023-11-14T22:13:20.000Z",
        "updatedAt": "2023-11-14T22:13:20.000Z",
    }
    task.update(overrides)
    return task


@pytest.fixture()
def make_task():
    """Factory fixture: build a task payload the way the dashboard sends it.

    Usage::

        task = make_task(42, text="walk the dog")
    """
    return _make_task


def _get_free_port() -> int:
    """Find an available TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _start_server(db: Path, variant: str):
    from teamtasks.server import create_server

    port = _get_free_port()
    host = "127.0.0.1"
    server = create_server(db, host, port, variant=variant, lock_timeout=5)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server, f"http://{host}:{port}"


@pytest.fixture(params=["explicit", "generic"])
def any_server(request, db_path: Path):
    """Run each backend variant in turn; yield (base_url, db_path, variant)."""
    server, base_url = _start_server(db_path, request.param)
    yield base_url, db_path, request.param
    server.shutdown()
    server.server_close()


@pytest.fixture()
def explicit_server(db_path: Path):
    """Start the hand-written backend; yield (base_url, db_path)."""
    server, base_url = _start_server(db_path, "explicit")
    yield base_url, db_path
    server.shutdown()
    server.server_close()


@pytest.fixture()
def generic_server(db_path: Path):
    """Start the collection router backend; yield (base_url, db_path)."""
    server, base_url = _start_server(db_path, "generic")
    yield base_url, db_path
    server.shutdown()
    server.server_close()


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def invoke(cli_runner: CliRunner, explicit_server):
    """Return a helper that invokes CLI commands against a live backend as alice.

    Usage::

        result = invoke("tasks", "add", "Buy milk")
    """
    from teamtasks.cli.main import cli

    base_url, _db = explicit_server
    env = {
        "TEAMTASKS_URL": base_url,
        "TEAMTASKS_USERNAME": "alice",
        "TEAMTASKS_PASSWORD": "wonderland",
    }

    def _invoke(*args: str, **kwargs):
        extra_env = kwargs.pop("env", {})
        return cli_runner.invoke(cli, list(args), env={**env, **extra_env}, **kwargs)

    return _invoke


@pytest.fixture()
def invoke_json(invoke):
    """Like invoke, but appends --json and parses the response.

    Returns (parsed_dict, exit_code) tuple.
    """

    def _invoke_json(*args: str, **kwargs) -> tuple[dict, int]:
        result = invoke(*args, "--json", **kwargs)
        parsed = json.loads(result.stdout)
        return parsed, result.exit_code

    return _invoke_json


@pytest.fixture(autouse=True)
def _reset_id_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test with a fresh identifier high-water mark."""
    from teamtasks.core import ids

    monkeypatch.setattr(ids, "_last_id", 0)
