"""HTTP backends over the flat document store."""

from __future__ import annotations

from http.server import ThreadingHTTPServer
from pathlib import Path

from teamtasks.core.config import DEFAULT_LOCK_TIMEOUT, VALID_VARIANTS
from teamtasks.server.base import TaskServerHandler, bind_handler
from teamtasks.server.explicit import ExplicitHandler
from teamtasks.server.generic import GenericHandler
from teamtasks.storage.document import DocumentStore

HANDLERS: dict[str, type[TaskServerHandler]] = {
    "explicit": ExplicitHandler,
    "generic": GenericHandler,
}


def create_server(
    db_path: Path | str | DocumentStore,
    host: str,
    port: int,
    *,
    variant: str = "explicit",
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> ThreadingHTTPServer:
    """Create an HTTP server bound to *host*:*port* serving the task document.

    Parameters
    ----------
    db_path:
        Path to the JSON document, or an already-built store.
    host:
        Bind address (e.g. ``"0.0.0.0"``).
    port:
        TCP port to listen on (``0`` picks a free one).
    variant:
        ``"explicit"`` for the hand-written handlers, ``"generic"`` for the
        collection router.
    lock_timeout:
        Seconds a request waits for the document lock before failing with 503.
    """
    if variant not in VALID_VARIANTS:
        valid = ", ".join(VALID_VARIANTS)
        raise ValueError(f"Unknown variant '{variant}'. Valid: {valid}")
    if isinstance(db_path, DocumentStore):
        store = db_path
    else:
        store = DocumentStore(db_path, lock_timeout=lock_timeout)
    handler_cls = bind_handler(HANDLERS[variant], store)
    server = ThreadingHTTPServer((host, port), handler_cls)
    server.daemon_threads = True
    return server


__all__ = ["HANDLERS", "create_server"]
