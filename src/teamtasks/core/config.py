"""Document schema, default document, and server settings resolution."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import TypedDict


class TaskRecord(TypedDict, total=False):
    id: int
    author: str
    text: str
    completed: bool
    createdAt: str
    updatedAt: str


class UserRecord(TypedDict, total=False):
    username: str
    password: str


class Document(TypedDict, total=False):
    tasks: list[TaskRecord]
    users: list[UserRecord]


class ServerSettings(TypedDict):
    host: str
    port: int
    db_path: str
    variant: str
    lock_timeout: float


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

HOST_ENV = "HOST"
PORT_ENV = "PORT"
DB_ENV = "TEAMTASKS_DB"
VARIANT_ENV = "TEAMTASKS_VARIANT"
LOCK_TIMEOUT_ENV = "TEAMTASKS_LOCK_TIMEOUT"
API_URL_ENV = "TEAMTASKS_URL"

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001
DEFAULT_DB_PATH = "db.json"
DEFAULT_LOCK_TIMEOUT = 10.0
DEFAULT_API_URL = "http://127.0.0.1:3001"

VALID_VARIANTS: tuple[str, ...] = ("explicit", "generic")
DEFAULT_VARIANT = "explicit"

# Collections every document carries, in canonical order.
COLLECTIONS: tuple[str, ...] = ("tasks", "users")


class ConfigError(ValueError):
    """Raised when an environment setting cannot be parsed."""


def default_document() -> Document:
    """Return an empty document with both collections present."""
    return {"tasks": [], "users": []}


def serialize_document(document: Mapping[str, object]) -> str:
    """Serialize a document to its on-disk form.

    Key order is preserved (tasks keep the field order their creator used);
    output is UTF-8 friendly, two-space indented, newline terminated.
    """
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def load_document(raw: str) -> dict:
    """Parse a raw document string.

    Missing collections are filled in as empty lists.  Unknown top-level
    keys are kept so a rewrite never drops them.

    Raises:
        ValueError: If *raw* is not JSON or the top level is not an object.
    """
    if not raw.strip():
        return dict(default_document())
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Document top level must be a JSON object")
    for name in COLLECTIONS:
        if not isinstance(data.get(name), list):
            data[name] = []
    return data


def parse_user_spec(spec: str) -> UserRecord:
    """Parse ``username:password`` into a user record."""
    username, sep, password = spec.partition(":")
    if not sep or not username:
        raise ConfigError(f"Invalid user '{spec}'. Expected username:password.")
    return {"username": username, "password": password}


def resolve_server_settings(env: Mapping[str, str] | None = None) -> ServerSettings:
    """Resolve server settings from the environment with hard-coded fallbacks.

    Empty values count as unset.
    """
    env = os.environ if env is None else env

    raw_port = env.get(PORT_ENV) or str(DEFAULT_PORT)
    try:
        port = int(raw_port)
    except ValueError:
        raise ConfigError(f"{PORT_ENV} must be an integer, got '{raw_port}'") from None
    if not 0 <= port <= 65535:
        raise ConfigError(f"{PORT_ENV} out of range: {port}")

    variant = env.get(VARIANT_ENV) or DEFAULT_VARIANT
    if variant not in VALID_VARIANTS:
        valid = ", ".join(VALID_VARIANTS)
        raise ConfigError(f"Invalid {VARIANT_ENV}: '{variant}'. Valid: {valid}")

    raw_timeout = env.get(LOCK_TIMEOUT_ENV) or str(DEFAULT_LOCK_TIMEOUT)
    try:
        lock_timeout = float(raw_timeout)
    except ValueError:
        raise ConfigError(
            f"{LOCK_TIMEOUT_ENV} must be a number, got '{raw_timeout}'"
        ) from None

    return {
        "host": env.get(HOST_ENV) or DEFAULT_HOST,
        "port": port,
        "db_path": env.get(DB_ENV) or DEFAULT_DB_PATH,
        "variant": variant,
        "lock_timeout": lock_timeout,
    }
