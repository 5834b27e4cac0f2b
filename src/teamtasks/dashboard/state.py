"""Dashboard state machine.

The dashboard loads the shared task list once, then applies every change
through the API.  Local state is touched only after the backend has
acknowledged a call, so a failed request never needs to be rolled back.

States:

* ``loading``: initial; stays here if the first fetch fails.
* ``ready``: tasks loaded.  At most one task is in editing mode at a time
  (``editing_id``); every other task is viewed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import NamedTuple

from teamtasks.client.api import APIError, TaskAPI
from teamtasks.core.config import TaskRecord, UserRecord
from teamtasks.core.ids import same_id
from teamtasks.core.tasks import (
    TaskValidationError,
    can_modify,
    compute_stats,
    edited,
    filter_tasks,
    new_task,
    toggled,
    utc_now,
)

logger = logging.getLogger(__name__)

LOADING = "loading"
READY = "ready"

VIEWING = "viewing"
EDITING = "editing"

DELETE_PROMPT = "Are you sure you want to delete this task?"


class Notification(NamedTuple):
    level: str  # "success" or "error"
    message: str


def _decline(message: str) -> bool:  # noqa: ARG001
    return False


class Dashboard:
    """Local view of the team task list for one signed-in user.

    *confirm* is asked before every delete.  Without one, deletes are
    declined.
    """

    def __init__(
        self,
        api: TaskAPI,
        user: UserRecord,
        *,
        confirm: Callable[[str], bool] = _decline,
        on_notify: Callable[[Notification], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.api = api
        self.user = user
        self.username: str = user.get("username", "")
        self.confirm = confirm
        self.on_notify = on_notify
        self.clock = clock

        self.status = LOADING
        self.tasks: list[TaskRecord] = []
        self.search_term = ""
        self.editing_id: object | None = None
        self.edit_text = ""
        self.notifications: list[Notification] = []

    # ---------------------------------------------------------------
    # Notifications
    # ---------------------------------------------------------------

    def _notify(self, level: str, message: str) -> None:
        note = Notification(level, message)
        self.notifications.append(note)
        if self.on_notify is not None:
            self.on_notify(note)

    def _success(self, message: str) -> None:
        self._notify("success", message)

    def _failure(self, message: str, exc: Exception | None = None) -> None:
        if exc is not None:
            logger.error("%s: %s", message, exc)
        self._notify("error", message)

    # ---------------------------------------------------------------
    # Lookups
    # ---------------------------------------------------------------

    def find_task(self, task_id: object) -> TaskRecord | None:
        for task in self.tasks:
            if same_id(task.get("id"), task_id):
                return task
        return None

    def _owned_task(self, task_id: object) -> TaskRecord | None:
        task = self.find_task(task_id)
        if task is None:
            self._failure(f"Task {task_id} not found")
            return None
        if not can_modify(task, self.username):
            self._failure("Only the author can change this task")
            return None
        return task

    def _replace_local(self, updated: TaskRecord) -> None:
        self.tasks = [updated if same_id(t.get("id"), updated.get("id")) else t for t in self.tasks]

    def mode_of(self, task_id: object) -> str:
        if self.editing_id is not None and same_id(self.editing_id, task_id):
            return EDITING
        return VIEWING

    # ---------------------------------------------------------------
    # Derived views
    # ---------------------------------------------------------------

    @property
    def visible_tasks(self) -> list[TaskRecord]:
        """Tasks matching the current search term, in list order."""
        return filter_tasks(self.tasks, self.search_term)

    @property
    def stats(self) -> dict[str, int]:
        return compute_stats(self.tasks, self.username)

    def set_search(self, term: str) -> list[TaskRecord]:
        self.search_term = term or ""
        return self.visible_tasks

    # ---------------------------------------------------------------
    # Transitions
    # ---------------------------------------------------------------

    def load(self) -> bool:
        """Fetch the task list.  Returns ``True`` once the dashboard is ready."""
        try:
            tasks = self.api.get_tasks()
        except APIError as exc:
            self._failure("Could not load tasks", exc)
            return False
        self.tasks = [t for t in tasks if isinstance(t, dict)]
        skipped = len(tasks) - len(self.tasks)
        if skipped:
            logger.warning("ignored %d task entries that are not objects", skipped)
        self.status = READY
        return True

    def add_task(self, text: str) -> TaskRecord | None:
        """Create a task from *text*; blank text is ignored."""
        if not text or not text.strip():
            return None
        task = new_task(self.username, text, self.clock())
        try:
            self.api.create_task(task)
        except APIError as exc:
            self._failure("Could not create the task", exc)
            return None
        self.tasks = [task, *self.tasks]
        self._success("Task created")
        return task

    def toggle_task(self, task_id: object) -> TaskRecord | None:
        """Flip a task between completed and pending."""
        task = self._owned_task(task_id)
        if task is None:
            return None
        updated = toggled(task, self.clock())
        try:
            self.api.update_task(task["id"], updated)
        except APIError as exc:
            self._failure("Could not update the task", exc)
            return None
        self._replace_local(updated)
        self._success("Task completed" if updated["completed"] else "Task marked as pending")
        return updated

    def delete_task(self, task_id: object) -> bool:
        """Delete a task after the user confirms."""
        task = self._owned_task(task_id)
        if task is None:
            return False
        if not self.confirm(DELETE_PROMPT):
            return False
        try:
            self.api.delete_task(task["id"])
        except APIError as exc:
            self._failure("Could not delete the task", exc)
            return False
        self.tasks = [t for t in self.tasks if not same_id(t.get("id"), task["id"])]
        if self.editing_id is not None and same_id(self.editing_id, task["id"]):
            self.cancel_edit()
        self._success("Task deleted")
        return True

    def start_edit(self, task_id: object) -> bool:
        """Enter editing mode for one task, replacing any edit in progress."""
        task = self._owned_task(task_id)
        if task is None:
            return False
        self.editing_id = task["id"]
        self.edit_text = task.get("text", "")
        return True

    def set_edit_text(self, text: str) -> None:
        self.edit_text = text

    def cancel_edit(self) -> None:
        self.editing_id = None
        self.edit_text = ""

    def save_edit(self, task_id: object | None = None) -> TaskRecord | None:
        """Persist the scratch text of the task being edited."""
        if task_id is None:
            task_id = self.editing_id
        if task_id is None or not same_id(task_id, self.editing_id):
            self._failure("That task is not being edited")
            return None
        task = self._owned_task(task_id)
        if task is None:
            return None
        try:
            updated = edited(task, self.edit_text, self.clock())
        except TaskValidationError:
            self._failure("Task text cannot be empty")
            return None
        try:
            self.api.update_task(task["id"], updated)
        except APIError as exc:
            self._failure("Could not edit the task", exc)
            return None
        self._replace_local(updated)
        self.cancel_edit()
        self._success("Task edited")
        return updated
