"""File locking for the document store."""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from pathlib import Path

from filelock import FileLock, Timeout


class LockTimeout(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""


@contextlib.contextmanager
def document_lock(lock_path: Path, timeout: float = 10) -> Generator[None, None, None]:
    """Hold an exclusive lock on *lock_path* for the duration of the block.

    Every read-modify-write cycle of the document runs under this lock, so
    concurrent writers (threads or processes) are serialized instead of
    silently overwriting each other.

    Raises:
        LockTimeout: If the lock cannot be acquired within *timeout* seconds.
    """
    lock = FileLock(lock_path, timeout=timeout)
    try:
        lock.acquire()
    except Timeout:
        raise LockTimeout(
            f"Could not acquire lock '{lock_path.name}' within {timeout}s"
        ) from None
    try:
        yield
    finally:
        lock.release()
