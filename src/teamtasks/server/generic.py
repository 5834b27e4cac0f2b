"""Declarative backend: REST routes generated for every document collection.

Any top-level array of the document is served as a resource, so ``/tasks``
and ``/users`` come for free alongside whatever else the file holds:

* ``GET /db`` -> the whole document
* ``GET /<name>`` -> items, narrowed by query parameters (see
  :func:`apply_query`)
* ``GET /<name>/<id>`` -> one item or 404
* ``POST /<name>`` -> created item (201); an id is assigned when absent
* ``PUT /<name>/<id>`` -> replaced item or 404
* ``PATCH /<name>/<id>`` -> merged item or 404
* ``DELETE /<name>/<id>`` -> ``{}``
"""

from __future__ import annotations

import logging
import re
from typing import Any

from teamtasks.core.ids import coerce_id
from teamtasks.server.base import BODY_ERROR, TaskServerHandler, first_param
from teamtasks.storage.document import DuplicateId, ItemNotFound, UnknownCollection

logger = logging.getLogger(__name__)

_RESERVED_PARAMS = frozenset({"q", "_sort", "_order", "_start", "_end", "_limit"})
_OPERATOR_SUFFIXES = ("_ne", "_like", "_gte", "_lte")


# ---------------------------------------------------------------------------
# Query evaluation
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _lookup(item: dict, field: str) -> Any:
    """Resolve a dotted *field* path inside *item* (``author.name``)."""
    current: Any = item
    for part in field.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _compare(value: Any, raw: str) -> int | None:
    """Order *value* against query text *raw*; numbers compare numerically."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            other = float(raw)
        except ValueError:
            return None
        return (value > other) - (value < other)
    if value is None:
        return None
    text = _as_text(value)
    return (text > raw) - (text < raw)


def _matches_filter(item: dict, key: str, values: list[str]) -> bool:
    for suffix in _OPERATOR_SUFFIXES:
        if key.endswith(suffix):
            field = key[: -len(suffix)]
            value = _lookup(item, field)
            if suffix == "_ne":
                return all(_as_text(value) != v for v in values)
            if suffix == "_like":
                return all(
                    value is not None and re.search(v, _as_text(value), re.IGNORECASE)
                    for v in values
                )
            results = [_compare(value, v) for v in values]
            if suffix == "_gte":
                return all(r is not None and r >= 0 for r in results)
            return all(r is not None and r <= 0 for r in results)
    value = _lookup(item, key)
    return any(_as_text(value) == v for v in values)


def _full_text(item: Any, needle: str) -> bool:
    if isinstance(item, dict):
        return any(_full_text(v, needle) for v in item.values())
    if isinstance(item, list):
        return any(_full_text(v, needle) for v in item)
    if isinstance(item, str):
        return needle in item.lower()
    return False


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, _as_text(value))


def apply_query(items: list[Any], query: dict[str, list[str]]) -> list[Any]:
    """Filter, sort, and slice *items* the way the router's query string asks.

    * ``field=value``: equality on the string form (repeat for OR)
    * ``field_ne`` / ``field_like`` / ``field_gte`` / ``field_lte``
    * ``q``: case-insensitive substring anywhere in the item's strings
    * ``_sort=a,b`` with ``_order=asc,desc``
    * ``_start`` / ``_end`` / ``_limit``: slicing after sorting

    Raises:
        ValueError: If a slicing parameter is not an integer or a
            ``_like`` pattern is not a valid regular expression.
    """
    result = [item for item in items if isinstance(item, dict)]

    for key, values in query.items():
        if key in _RESERVED_PARAMS:
            continue
        result = [item for item in result if _matches_filter(item, key, values)]

    q = first_param(query, "q")
    if q:
        needle = q.lower()
        result = [item for item in result if _full_text(item, needle)]

    sort = first_param(query, "_sort")
    if sort:
        fields = [f for f in sort.split(",") if f]
        orders = (first_param(query, "_order") or "").split(",")
        # Stable sort: apply keys from last to first.
        for index in reversed(range(len(fields))):
            order = orders[index] if index < len(orders) else orders[-1]
            result.sort(
                key=lambda item, f=fields[index]: _sort_key(_lookup(item, f)),
                reverse=order.lower() == "desc",
            )

    start = int(first_param(query, "_start") or 0)
    end_raw = first_param(query, "_end")
    limit_raw = first_param(query, "_limit")
    if end_raw is not None:
        result = result[start : int(end_raw)]
    elif limit_raw is not None:
        result = result[start : start + int(limit_raw)]
    elif start:
        result = result[start:]
    return result


# ---------------------------------------------------------------------------
# Request handler
# ---------------------------------------------------------------------------


class GenericHandler(TaskServerHandler):
    variant = "generic"

    def route(self, method: str, segments: list[str], query: dict[str, list[str]]) -> None:
        if segments == ["db"] and method == "GET":
            self._send_json(200, self.store.read())
            return

        if len(segments) == 1:
            name = segments[0]
            if method == "GET":
                self._handle_list(name, query)
                return
            if method == "POST":
                self._handle_insert(name)
                return
        elif len(segments) == 2:
            name, raw_id = segments
            item_id = coerce_id(raw_id)
            if method == "GET":
                self._handle_get(name, item_id)
                return
            if method in ("PUT", "PATCH"):
                self._handle_update(method, name, item_id)
                return
            if method == "DELETE":
                self._handle_delete(name, item_id)
                return

        self._send_json(404, {})

    def _handle_list(self, name: str, query: dict[str, list[str]]) -> None:
        try:
            items = self.store.list_items(name)
        except UnknownCollection:
            self._send_json(404, {})
            return
        try:
            items = apply_query(items, query)
        except (ValueError, re.error) as exc:
            self._send_error(400, "BAD_QUERY", str(exc))
            return
        self._send_json(200, items)

    def _handle_get(self, name: str, item_id: object) -> None:
        try:
            item = self.store.get_item(name, item_id)
        except (ItemNotFound, UnknownCollection):
            self._send_json(404, {})
            return
        self._send_json(200, item)

    def _handle_insert(self, name: str) -> None:
        body = self._read_object_body()
        if body is None:
            return
        try:
            item = self.store.insert_item(name, body)
        except UnknownCollection:
            self._send_json(404, {})
            return
        except DuplicateId as exc:
            self._send_error(409, "DUPLICATE_ID", str(exc))
            return
        self._send_json(201, item)

    def _handle_update(self, method: str, name: str, item_id: object) -> None:
        body = self._read_object_body()
        if body is None:
            return
        try:
            if method == "PUT":
                item = self.store.replace_item(name, item_id, body)
            else:
                item = self.store.patch_item(name, item_id, body)
        except (ItemNotFound, UnknownCollection):
            logger.info("%s for unknown item %s/%s", method, name, item_id)
            self._send_json(404, {})
            return
        self._send_json(200, item)

    def _handle_delete(self, name: str, item_id: object) -> None:
        try:
            self.store.delete_item(name, item_id)
        except UnknownCollection:
            self._send_json(404, {})
            return
        self._send_json(200, {})
