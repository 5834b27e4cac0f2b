"""Task identifier generation and matching."""

from __future__ import annotations

import re
import threading
import time

_INTEGER_RE = re.compile(r"-?[0-9]+")

_lock = threading.Lock()
_last_id = 0


def generate_task_id(now_ms: int | None = None) -> int:
    """Return a millisecond-timestamp identifier.

    Successive calls in one process never return the same value: when the
    clock has not advanced, the previous id plus one is returned instead.
    Identifiers from different processes can still collide.
    """
    global _last_id
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    with _lock:
        candidate = max(now_ms, _last_id + 1)
        _last_id = candidate
        return candidate


def same_id(left: object, right: object) -> bool:
    """Return ``True`` if two identifiers refer to the same record.

    Identifiers are compared by string form so that a path segment
    (``"1700000000000"``) matches a stored number (``1700000000000``).
    ``None`` never matches anything.
    """
    if left is None or right is None:
        return False
    return _id_key(left) == _id_key(right)


def _id_key(value: object) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_id(raw: str) -> int | str:
    """Turn a path segment into the identifier to store.

    Plain decimal segments (optionally negative) become ints; anything else,
    including ``"1_7"`` or whitespace-padded digits, stays a string.
    """
    if _INTEGER_RE.fullmatch(raw):
        return int(raw)
    return raw


def next_numeric_id(items: list[dict]) -> int:
    """Return one more than the largest integer ``id`` among *items* (1 if none)."""
    highest = 0
    for item in items:
        value = item.get("id")
        if isinstance(value, int) and not isinstance(value, bool) and value > highest:
            highest = value
    return highest + 1
