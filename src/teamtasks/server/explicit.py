"""Hand-written backend: explicit handlers for ``/tasks`` and ``/users``."""

from __future__ import annotations

import logging

from teamtasks.core.ids import coerce_id
from teamtasks.server.base import BODY_ERROR, TaskServerHandler, first_param
from teamtasks.storage.document import TaskNotFound

logger = logging.getLogger(__name__)


class ExplicitHandler(TaskServerHandler):
    """Routes:

    * ``GET /tasks`` -> array of tasks
    * ``POST /tasks`` -> ``{"ok": true, "task": ...}`` (201)
    * ``PUT /tasks/<id>`` -> ``{"ok": true, "task": ...}`` or 404
    * ``DELETE /tasks/<id>`` -> ``{"ok": true}``
    * ``GET /users?username=&password=`` -> array of 0 or 1 user
    """

    variant = "explicit"

    def route(self, method: str, segments: list[str], query: dict[str, list[str]]) -> None:
        if segments == ["tasks"]:
            if method == "GET":
                self._handle_list_tasks()
                return
            if method == "POST":
                self._handle_create_task()
                return
        elif len(segments) == 2 and segments[0] == "tasks":
            if method == "PUT":
                self._handle_replace_task(segments[1])
                return
            if method == "DELETE":
                self._handle_delete_task(segments[1])
                return
        elif segments == ["users"] and method == "GET":
            self._handle_find_user(query)
            return

        path = "/" + "/".join(segments)
        self._send_json(404, {"ok": False, "message": f"Not found: {method} {path}"})

    # ---------------------------------------------------------------
    # Tasks
    # ---------------------------------------------------------------

    def _handle_list_tasks(self) -> None:
        self._send_json(200, self.store.list_tasks())

    def _handle_create_task(self) -> None:
        body = self._read_request_body()
        if body is BODY_ERROR:
            return
        task = self.store.create_task(body)
        self._send_json(201, {"ok": True, "task": task})

    def _handle_replace_task(self, raw_id: str) -> None:
        body = self._read_object_body()
        if body is None:
            return
        try:
            task = self.store.replace_task(coerce_id(raw_id), body)
        except TaskNotFound:
            logger.info("update for unknown task %s", raw_id)
            self._send_json(404, {"ok": False, "message": "Task not found"})
            return
        self._send_json(200, {"ok": True, "task": task})

    def _handle_delete_task(self, raw_id: str) -> None:
        self.store.delete_task(coerce_id(raw_id))
        self._send_json(200, {"ok": True})

    # ---------------------------------------------------------------
    # Users
    # ---------------------------------------------------------------

    def _handle_find_user(self, query: dict[str, list[str]]) -> None:
        username = first_param(query, "username")
        password = first_param(query, "password")
        user = self.store.find_user(username or "", password or "")
        self._send_json(200, [user] if user is not None else [])
