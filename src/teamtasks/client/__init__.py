"""Client for the task backend."""

from teamtasks.client.api import (
    APIError,
    HTTPStatusError,
    InvalidCredentials,
    NotFoundError,
    TaskAPI,
    TransportError,
)

__all__ = [
    "APIError",
    "HTTPStatusError",
    "InvalidCredentials",
    "NotFoundError",
    "TaskAPI",
    "TransportError",
]
