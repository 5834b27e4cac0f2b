"""Dashboard-specific fixtures."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone

import pytest

from teamtasks.client.api import NotFoundError, TransportError
from teamtasks.dashboard.state import Dashboard

START = datetime(2025, 1, 10, 10, 0, tzinfo=timezone.utc)


class FakeAPI:
    """In-memory stand-in for TaskAPI that records every call.

    Set ``fail_on`` to a method name (``"get_tasks"``, ``"create_task"``,
    ``"update_task"``, ``"delete_task"``) to make that call raise.
    """

    def __init__(self, tasks: list[dict] | None = None) -> None:
        self.tasks = copy.deepcopy(tasks or [])
        self.calls: list[tuple] = []
        self.fail_on: str | None = None

    def _enter(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if self.fail_on == name:
            raise TransportError(f"{name} failed: connection refused")

    def get_tasks(self) -> list[dict]:
        self._enter("get_tasks")
        return copy.deepcopy(self.tasks)

    def create_task(self, task: dict) -> dict:
        self._enter("create_task", task)
        self.tasks.append(copy.deepcopy(task))
        return task

    def update_task(self, task_id, task: dict) -> dict:
        self._enter("update_task", task_id, task)
        for index, existing in enumerate(self.tasks):
            if str(existing["id"]) == str(task_id):
                self.tasks[index] = copy.deepcopy(task)
                return task
        raise NotFoundError(404, {"ok": False, "message": "Task not found"}, "HTTP 404")

    def delete_task(self, task_id) -> None:
        self._enter("delete_task", task_id)
        self.tasks = [t for t in self.tasks if str(t["id"]) != str(task_id)]


class Clock:
    """Manually advanced clock; each call returns the current instant."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _seed(task_id: int, author: str, text: str, *, completed: bool = False) -> dict:
    stamp = "2025-01-09T08:30:00.000Z"
    return {
        "id": task_id,
        "author": author,
        "text": text,
        "completed": completed,
        "createdAt": stamp,
        "updatedAt": stamp,
    }


@pytest.fixture()
def seed_tasks() -> list[dict]:
    return [
        _seed(3, "alice", "Buy milk"),
        _seed(2, "bob", "Fix the bike", completed=True),
        _seed(1, "alice", "Call Bob"),
    ]


@pytest.fixture()
def fake_api(seed_tasks) -> FakeAPI:
    return FakeAPI(seed_tasks)


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def make_dashboard(fake_api: FakeAPI, clock: Clock):
    """Factory fixture: build a Dashboard for *username* over ``fake_api``.

    Deletes are confirmed unless *confirm* is passed.

    Usage::

        dash = make_dashboard("bob", confirm=lambda _msg: False)
    """

    def _make(username: str = "alice", *, load: bool = True, **kwargs) -> Dashboard:
        kwargs.setdefault("confirm", lambda _msg: True)
        dash = Dashboard(fake_api, {"username": username, "password": "pw"}, clock=clock, **kwargs)
        if load:
            dash.load()
        return dash

    return _make
