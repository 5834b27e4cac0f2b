"""Server-specific fixtures."""

from __future__ import annotations

import json
from urllib.error import HTTPError
from urllib.request import Request, urlopen

import pytest


def _call(
    base_url: str,
    method: str,
    path: str,
    data: object = None,
    *,
    raw: bytes | None = None,
    headers: dict[str, str] | None = None,
) -> tuple[int, dict[str, str], object]:
    """Make a request and return (status_code, headers, parsed_body).

    Non-JSON bodies come back as text; urllib's HTTPError is unwrapped so
    error statuses are returned rather than raised.
    """
    payload = raw if raw is not None else (None if data is None else json.dumps(data).encode())
    req = Request(
        f"{base_url}{path}",
        data=payload,
        headers={"Content-Type": "application/json", **(headers or {})},
        method=method,
    )
    try:
        resp = urlopen(req, timeout=10)
    except HTTPError as exc:
        resp = exc
    with resp:
        body = resp.read().decode("utf-8")
        resp_headers = dict(resp.headers.items())
        status = resp.status if hasattr(resp, "status") else resp.code
    if "application/json" in resp_headers.get("Content-Type", ""):
        return status, resp_headers, json.loads(body)
    return status, resp_headers, body


@pytest.fixture()
def call():
    """Return the raw request helper.

    Usage::

        status, headers, body = call(base_url, "POST", "/tasks", {"id": 1})
    """
    return _call


@pytest.fixture()
def api(call):
    """Return a helper that drops the headers from ``call``'s result."""

    def _api(base_url: str, method: str, path: str, data: object = None, **kwargs):
        status, _headers, body = call(base_url, method, path, data, **kwargs)
        return status, body

    return _api
