"""Cross-process lock around one poll cycle.

`prwatch watch` and an on-demand `prwatch poll` (or `prwatch ack`) can run in
separate processes against the same store. Each cycle holds an exclusive
flock on a lock file next to the store from load to save, so a second cycle
waits and then reloads the state the first one saved.

Each FileLock opens its own descriptor, so two locks on the same path exclude
each other even inside one process. Lock files are never deleted: removing
one lets two processes hold "exclusive" locks on different inodes.
"""

from __future__ import annotations

import asyncio
import fcntl
import logging
import os
import time
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 300.0
_POLL_INTERVAL = 0.1


class LockTimeout(Exception):
    """Lock acquisition timed out."""


class FileLock:
    """Exclusive lock on ``path``; a context manager and an async context manager.

    The async form retries without blocking the event loop, so a watcher
    waiting on the lock keeps serving its other tasks.
    """

    def __init__(self, path: str | Path, timeout: float = DEFAULT_LOCK_TIMEOUT):
        self._path = Path(path)
        self._timeout = timeout
        self._fd = None

    @property
    def path(self) -> Path:
        return self._path

    def _try_lock(self) -> bool:
        if self._fd is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fd = open(self._path, "a")
        try:
            fcntl.flock(self._fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            return False
        self._fd.truncate(0)
        self._fd.write(f"{os.getpid()}\n")
        self._fd.flush()
        return True

    def _timed_out(self) -> LockTimeout:
        self.release()
        return LockTimeout(f"Could not lock {self._path} within {self._timeout:.0f}s")

    def __enter__(self) -> FileLock:
        deadline = time.monotonic() + self._timeout
        while not self._try_lock():
            if time.monotonic() >= deadline:
                raise self._timed_out()
            time.sleep(_POLL_INTERVAL)
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    async def __aenter__(self) -> FileLock:
        deadline = time.monotonic() + self._timeout
        waited = False
        while not self._try_lock():
            if time.monotonic() >= deadline:
                raise self._timed_out()
            if not waited:
                logger.debug("Waiting for %s held by another poll cycle", self._path)
                waited = True
            await asyncio.sleep(_POLL_INTERVAL)
        return self

    async def __aexit__(self, *exc) -> None:
        self.release()

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            self._fd.close()
            self._fd = None
