"""Flat JSON document store.

The whole persisted state lives in one file::

    {"tasks": [...], "users": [...]}

Every operation reads the full document, and every mutation writes the
full document back.  Each cycle runs under :func:`document_lock` and the
write goes through :func:`atomic_write`, so concurrent writers are
serialized and a crash mid-write leaves the previous document intact.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from teamtasks.core.config import (
    DEFAULT_LOCK_TIMEOUT,
    TaskRecord,
    UserRecord,
    default_document,
    load_document,
    serialize_document,
)
from teamtasks.core.ids import next_numeric_id, same_id
from teamtasks.storage.fs import atomic_write, lock_path_for
from teamtasks.storage.locks import document_lock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentError(Exception):
    """Base class for document store failures."""


class DocumentCorrupt(DocumentError):
    """Raised when the document file exists but cannot be parsed."""


class ItemNotFound(DocumentError):
    """Raised when no item in a collection has the requested identifier."""

    def __init__(self, collection: str, item_id: object) -> None:
        super().__init__(f"No item with id {item_id!r} in '{collection}'")
        self.collection = collection
        self.item_id = item_id


class TaskNotFound(ItemNotFound):
    """Raised when an update targets a task id that is not stored."""

    def __init__(self, task_id: object) -> None:
        super().__init__("tasks", task_id)


class DuplicateId(DocumentError):
    """Raised by :meth:`DocumentStore.insert_item` when the id is already taken."""


class UnknownCollection(DocumentError):
    """Raised when a collection name is not a top-level array of the document."""


class DocumentStore:
    """Read-modify-write access to a single JSON document on disk."""

    def __init__(self, path: Path | str, *, lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        self.path = Path(path)
        self.lock_path = lock_path_for(self.path)
        self.lock_timeout = lock_timeout

    def __repr__(self) -> str:
        return f"DocumentStore({str(self.path)!r})"

    # ---------------------------------------------------------------
    # Raw document access
    # ---------------------------------------------------------------

    def _read_unlocked(self) -> dict:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return dict(default_document())
        try:
            return load_document(raw)
        except (json.JSONDecodeError, ValueError) as exc:
            raise DocumentCorrupt(f"Cannot parse {self.path}: {exc}") from exc

    def _write_unlocked(self, document: dict) -> None:
        atomic_write(self.path, serialize_document(document))

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with document_lock(self.lock_path, timeout=self.lock_timeout):
            yield

    def read(self) -> dict:
        """Return a snapshot of the whole document."""
        with self._locked():
            return self._read_unlocked()

    def _mutate(self, fn: Callable[[dict], T]) -> T:
        """Apply *fn* to the document under the lock and persist the result."""
        with self._locked():
            document = self._read_unlocked()
            result = fn(document)
            self._write_unlocked(document)
        return result

    # ---------------------------------------------------------------
    # Tasks
    # ---------------------------------------------------------------

    def list_tasks(self) -> list[TaskRecord]:
        return self.read()["tasks"]

    def create_task(self, task: dict[str, Any]) -> dict[str, Any]:
        """Append *task* as given and return it.

        The payload is stored verbatim: no id is allocated and no field is
        checked.
        """
        stored = copy.deepcopy(task)

        def _append(document: dict) -> dict:
            document["tasks"].append(stored)
            return stored

        result = self._mutate(_append)
        logger.debug("created task %s", stored.get("id") if isinstance(stored, dict) else None)
        return result

    def replace_task(self, task_id: object, task: dict[str, Any]) -> dict[str, Any]:
        """Replace the task whose id matches *task_id* with *task*.

        Position in the collection is preserved and the stored entry keeps
        the existing identifier.

        Raises:
            TaskNotFound: If no task matches; the document is not rewritten.
        """
        try:
            return self.replace_item("tasks", task_id, task)
        except ItemNotFound:
            raise TaskNotFound(task_id) from None

    def delete_task(self, task_id: object) -> int:
        """Remove every task whose id matches *task_id*; return how many went.

        Deleting an absent id is not an error.
        """
        return self.delete_item("tasks", task_id)

    # ---------------------------------------------------------------
    # Users
    # ---------------------------------------------------------------

    def list_users(self) -> list[UserRecord]:
        return self.read()["users"]

    def find_user(self, username: str, password: str) -> UserRecord | None:
        """Return the user whose username and password both match exactly."""
        if not username or not password:
            return None
        for user in self.list_users():
            if not isinstance(user, dict):
                continue
            if user.get("username") == username and user.get("password") == password:
                return user
        return None

    def add_user(self, user: UserRecord) -> bool:
        """Seed *user* into the document unless the username already exists.

        Returns ``True`` if the user was added.
        """

        def _add(document: dict) -> bool:
            users = document["users"]
            if any(u.get("username") == user["username"] for u in users):
                return False
            users.append(dict(user))
            return True

        return self._mutate(_add)

    # ---------------------------------------------------------------
    # Generic collections
    # ---------------------------------------------------------------

    def collections(self) -> list[str]:
        """Names of the top-level arrays in the document."""
        document = self.read()
        return [name for name, value in document.items() if isinstance(value, list)]

    @staticmethod
    def _collection(document: dict, name: str) -> list:
        items = document.get(name)
        if not isinstance(items, list):
            raise UnknownCollection(f"Unknown collection: '{name}'")
        return items

    def list_items(self, name: str) -> list[Any]:
        document = self.read()
        return self._collection(document, name)

    def get_item(self, name: str, item_id: object) -> dict[str, Any]:
        for item in self.list_items(name):
            if isinstance(item, dict) and same_id(item.get("id"), item_id):
                return item
        raise ItemNotFound(name, item_id)

    def insert_item(self, name: str, item: dict[str, Any]) -> dict[str, Any]:
        """Append *item* to collection *name*, assigning an id when absent.

        Raises:
            DuplicateId: If an item with the same id already exists.
        """
        stored = copy.deepcopy(item)

        def _insert(document: dict) -> dict:
            items = self._collection(document, name)
            if stored.get("id") is None:
                stored["id"] = next_numeric_id([i for i in items if isinstance(i, dict)])
            elif any(isinstance(i, dict) and same_id(i.get("id"), stored["id"]) for i in items):
                raise DuplicateId(f"Insert failed, duplicate id {stored['id']!r}")
            items.append(stored)
            return stored

        return self._mutate(_insert)

    def replace_item(self, name: str, item_id: object, item: dict[str, Any]) -> dict[str, Any]:
        """Replace the first item matching *item_id* in place, keeping its id."""
        return self._update_item(name, item_id, lambda old: {**item, "id": old.get("id")})

    def patch_item(self, name: str, item_id: object, changes: dict[str, Any]) -> dict[str, Any]:
        """Merge *changes* into the first item matching *item_id*, keeping its id."""
        return self._update_item(
            name, item_id, lambda old: {**old, **changes, "id": old.get("id")}
        )

    def _update_item(
        self, name: str, item_id: object, build: Callable[[dict], dict]
    ) -> dict[str, Any]:
        with self._locked():
            document = self._read_unlocked()
            items = self._collection(document, name)
            for index, old in enumerate(items):
                if isinstance(old, dict) and same_id(old.get("id"), item_id):
                    new = copy.deepcopy(build(old))
                    items[index] = new
                    self._write_unlocked(document)
                    return new
        raise ItemNotFound(name, item_id)

    def delete_item(self, name: str, item_id: object) -> int:
        def _delete(document: dict) -> int:
            items = self._collection(document, name)
            kept = [i for i in items if not (isinstance(i, dict) and same_id(i.get("id"), item_id))]
            document[name] = kept
            return len(items) - len(kept)

        removed = self._mutate(_delete)
        logger.debug("deleted %d item(s) with id %s from '%s'", removed, item_id, name)
        return removed
