"""HTTP client for the task backend.

Works against either backend variant: responses wrapped as
``{"ok": true, "task": ...}`` are unwrapped so callers always get the
bare task.
"""

from __future__ import annotations

import json
import logging
import socket
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from teamtasks.core.config import DEFAULT_API_URL, TaskRecord, UserRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10  # seconds


class APIError(Exception):
    """Base class for every failure talking to the backend."""


class TransportError(APIError):
    """The request never produced an HTTP response (refused, timed out, ...)."""


class HTTPStatusError(APIError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status: int, body: Any, message: str | None = None) -> None:
        super().__init__(message or f"HTTP {status}")
        self.status = status
        self.body = body


class NotFoundError(HTTPStatusError):
    """The backend answered 404."""


class InvalidCredentials(APIError):
    """No stored user matches the given username and password."""


def _unwrap_task(payload: Any) -> Any:
    if isinstance(payload, dict) and payload.get("ok") is True and "task" in payload:
        return payload["task"]
    return payload


def _error_message(status: int, body: Any) -> str:
    if isinstance(body, dict):
        if isinstance(body.get("error"), dict) and body["error"].get("message"):
            return f"HTTP {status}: {body['error']['message']}"
        if body.get("message"):
            return f"HTTP {status}: {body['message']}"
    return f"HTTP {status}"


class TaskAPI:
    """Thin wrapper over the ``/tasks`` and ``/users`` resources."""

    def __init__(self, base_url: str = DEFAULT_API_URL, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"TaskAPI({self.base_url!r})"

    # ---------------------------------------------------------------
    # Transport
    # ---------------------------------------------------------------

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        data = None
        headers = {"Accept": "application/json"}
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = Request(url, data=data, headers=headers, method=method)
        logger.debug("%s %s", method, url)
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except HTTPError as exc:
            raw_error = exc.read()
            try:
                body = json.loads(raw_error) if raw_error else None
            except json.JSONDecodeError:
                body = raw_error.decode("utf-8", errors="replace")
            error_cls = NotFoundError if exc.code == 404 else HTTPStatusError
            raise error_cls(exc.code, body, _error_message(exc.code, body)) from None
        except (URLError, socket.timeout, ConnectionError) as exc:
            reason = getattr(exc, "reason", exc)
            raise TransportError(f"{method} {url} failed: {reason}") from exc

        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise TransportError(f"{method} {url} returned invalid JSON") from exc

    # ---------------------------------------------------------------
    # Tasks
    # ---------------------------------------------------------------

    def get_tasks(self) -> list[TaskRecord]:
        tasks = self._request("GET", "/tasks")
        return tasks if isinstance(tasks, list) else []

    def create_task(self, task: TaskRecord) -> TaskRecord:
        return _unwrap_task(self._request("POST", "/tasks", task))

    def update_task(self, task_id: object, task: TaskRecord) -> TaskRecord:
        return _unwrap_task(self._request("PUT", f"/tasks/{quote(str(task_id), safe='')}", task))

    def delete_task(self, task_id: object) -> None:
        self._request("DELETE", f"/tasks/{quote(str(task_id), safe='')}")

    # ---------------------------------------------------------------
    # Users
    # ---------------------------------------------------------------

    def find_users(self, username: str, password: str) -> list[UserRecord]:
        query = urlencode({"username": username, "password": password})
        users = self._request("GET", f"/users?{query}")
        return users if isinstance(users, list) else []

    def login(self, username: str, password: str) -> UserRecord:
        """Return the stored user for these credentials.

        Raises:
            InvalidCredentials: If the lookup comes back empty.
        """
        users = self.find_users(username, password)
        if not users:
            raise InvalidCredentials("Invalid username or password")
        return users[0]
