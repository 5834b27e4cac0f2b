"""Task construction, transitions, filtering, and statistics.

Everything here is pure: functions take the current time as an argument
(or read it once through :func:`utc_now`) and return new dicts rather than
mutating their inputs.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from teamtasks.core.config import TaskRecord
from teamtasks.core.ids import generate_task_id

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S"


class TaskValidationError(ValueError):
    """Raised when task text fails client-side validation."""


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def format_ts(moment: datetime) -> str:
    """Format *moment* as ISO-8601 UTC with millisecond precision and ``Z``."""
    moment = moment.astimezone(timezone.utc)
    return f"{moment.strftime(_TS_FORMAT)}.{moment.microsecond // 1000:03d}Z"


def parse_ts(value: str) -> datetime:
    """Parse a timestamp produced by :func:`format_ts` (or any ISO-8601 string).

    Raises:
        ValueError: If *value* is not a string or not ISO-8601.
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_stamp(previous: str | None, now: datetime) -> str:
    """Return a stamp for *now* that sorts strictly after *previous*.

    When the clock has not moved past *previous* (same millisecond, or a
    clock step backwards) the result is *previous* plus one millisecond.
    """
    if previous:
        try:
            prev_dt = parse_ts(previous)
        except ValueError:
            return format_ts(now)
        floor = prev_dt + timedelta(milliseconds=1)
        if now < floor:
            now = floor
    return format_ts(now)


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


# ---------------------------------------------------------------------------
# Construction and transitions
# ---------------------------------------------------------------------------


def validate_task_text(text: str | None) -> str:
    """Return *text* stripped, or raise if nothing is left."""
    if not isinstance(text, str) or not text.strip():
        raise TaskValidationError("Task text cannot be empty")
    return text.strip()


def new_task(author: str, text: str, now: datetime | None = None) -> TaskRecord:
    """Build a fresh task authored by *author*.

    The identifier is the creation time in milliseconds; ``createdAt`` and
    ``updatedAt`` are equal, which marks the task as never edited.
    """
    now = now or utc_now()
    stamp = format_ts(now)
    return {
        "id": generate_task_id(to_millis(now)),
        "author": author,
        "text": validate_task_text(text),
        "completed": False,
        "createdAt": stamp,
        "updatedAt": stamp,
    }


def toggled(task: TaskRecord, now: datetime | None = None) -> TaskRecord:
    """Return a copy of *task* with ``completed`` flipped and a new ``updatedAt``."""
    now = now or utc_now()
    return {
        **task,
        "completed": not task.get("completed", False),
        "updatedAt": next_stamp(task.get("updatedAt"), now),
    }


def edited(task: TaskRecord, text: str, now: datetime | None = None) -> TaskRecord:
    """Return a copy of *task* with new text and a new ``updatedAt``."""
    now = now or utc_now()
    return {
        **task,
        "text": validate_task_text(text),
        "updatedAt": next_stamp(task.get("updatedAt"), now),
    }


def is_edited(task: TaskRecord) -> bool:
    return task.get("updatedAt") != task.get("createdAt")


def can_modify(task: TaskRecord, username: str | None) -> bool:
    """Only the author may toggle, edit, or delete a task."""
    return bool(username) and task.get("author") == username


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


def filter_tasks(tasks: Iterable[TaskRecord], term: str) -> list[TaskRecord]:
    """Return tasks whose author or text contains *term*, ignoring case.

    An empty term returns every task in its original order.  Entries that
    are not objects are never returned.
    """
    objects = [t for t in tasks if isinstance(t, dict)]
    needle = (term or "").lower()
    if not needle:
        return objects
    return [
        t
        for t in objects
        if needle in str(t.get("author", "")).lower()
        or needle in str(t.get("text", "")).lower()
    ]


def compute_stats(tasks: Iterable[TaskRecord], username: str | None) -> dict[str, int]:
    """Count total, completed, pending, and the current user's tasks."""
    total = completed = mine = 0
    for t in tasks:
        if not isinstance(t, dict):
            continue
        total += 1
        if t.get("completed"):
            completed += 1
        if username and t.get("author") == username:
            mine += 1
    return {
        "total": total,
        "completed": completed,
        "pending": total - completed,
        "mine": mine,
    }
