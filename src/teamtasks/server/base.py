"""Request plumbing shared by both backend variants.

CORS headers, ``OPTIONS`` short-circuit, JSON responses, request body
parsing, and the mapping from store failures to HTTP statuses.
"""

from __future__ import annotations

import json
import logging
from http.server import BaseHTTPRequestHandler
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from teamtasks.storage.document import DocumentCorrupt, DocumentStore
from teamtasks.storage.locks import LockTimeout

logger = logging.getLogger("teamtasks.server")

# Maximum allowed request body size (1 MiB).
MAX_REQUEST_BODY_BYTES = 1_048_576

CORS_HEADERS: tuple[tuple[str, str], ...] = (
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Headers", "*"),
    ("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, PATCH, OPTIONS"),
)

# Sentinel returned by _read_request_body when an error response was already sent.
BODY_ERROR = object()


class TaskServerHandler(BaseHTTPRequestHandler):
    """Base handler: subclasses set ``store`` and implement ``route``."""

    store: DocumentStore
    variant: str = ""

    # Route access logging through the server logger instead of stderr.
    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)

    def end_headers(self) -> None:
        for name, value in CORS_HEADERS:
            self.send_header(name, value)
        super().end_headers()

    # ---------------------------------------------------------------
    # Verbs
    # ---------------------------------------------------------------

    def do_OPTIONS(self) -> None:  # noqa: N802
        self.send_response(200)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self) -> None:  # noqa: N802
        self._dispatch("GET")

    def do_POST(self) -> None:  # noqa: N802
        self._dispatch("POST")

    def do_PUT(self) -> None:  # noqa: N802
        self._dispatch("PUT")

    def do_PATCH(self) -> None:  # noqa: N802
        self._dispatch("PATCH")

    def do_DELETE(self) -> None:  # noqa: N802
        self._dispatch("DELETE")

    def _dispatch(self, method: str) -> None:
        parsed = urlparse(self.path)
        segments = [unquote(s) for s in parsed.path.split("/") if s]
        query = parse_qs(parsed.query, keep_blank_values=True)
        try:
            self.route(method, segments, query)
        except LockTimeout as exc:
            logger.error("%s %s: %s", method, parsed.path, exc)
            self._send_error(503, "LOCK_TIMEOUT", str(exc))
        except DocumentCorrupt as exc:
            logger.error("%s %s: %s", method, parsed.path, exc)
            self._send_error(500, "DOCUMENT_CORRUPT", str(exc))
        except Exception as exc:
            logger.exception("%s %s failed", method, parsed.path)
            self._send_error(500, "INTERNAL_ERROR", str(exc))

    def route(self, method: str, segments: list[str], query: dict[str, list[str]]) -> None:
        """Answer one request.  Every variant overrides this.

        *segments* are the decoded, non-empty path parts and *query* the
        parsed query string (blank values kept).
        """
        raise NotImplementedError(f"{type(self).__name__} does not route requests")

    # ---------------------------------------------------------------
    # Responses
    # ---------------------------------------------------------------

    def _send_json(self, status: int, payload: Any) -> None:
        data = (json.dumps(payload, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_error(self, status: int, code: str, message: str) -> None:
        self._send_json(status, {"ok": False, "error": {"code": code, "message": message}})

    # ---------------------------------------------------------------
    # Requests
    # ---------------------------------------------------------------

    def _read_request_body(self) -> Any:
        """Read and parse a JSON request body.

        Returns the parsed value, or ``BODY_ERROR`` after sending a 400/413.
        """
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except (TypeError, ValueError):
            self._send_error(400, "BAD_REQUEST", "Missing or invalid Content-Length")
            return BODY_ERROR

        if content_length < 0:
            self._send_error(400, "BAD_REQUEST", "Missing or invalid Content-Length")
            return BODY_ERROR

        if content_length > MAX_REQUEST_BODY_BYTES:
            self._send_error(
                413,
                "PAYLOAD_TOO_LARGE",
                f"Request body exceeds {MAX_REQUEST_BODY_BYTES} bytes",
            )
            return BODY_ERROR

        if content_length == 0:
            return {}

        raw = self.rfile.read(content_length)
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            self._send_error(400, "BAD_REQUEST", "Invalid JSON in request body")
            return BODY_ERROR

    def _read_object_body(self) -> dict | None:
        """Like ``_read_request_body`` but requires a JSON object."""
        body = self._read_request_body()
        if body is BODY_ERROR:
            return None
        if not isinstance(body, dict):
            self._send_error(400, "BAD_REQUEST", "Request body must be a JSON object")
            return None
        return body


def first_param(query: dict[str, list[str]], key: str) -> str | None:
    values = query.get(key)
    return values[0] if values else None


def bind_handler(
    base: type[TaskServerHandler], store: DocumentStore
) -> type[TaskServerHandler]:
    """Create a handler subclass of *base* bound to *store*."""
    return type(base.__name__, (base,), {"store": store})
