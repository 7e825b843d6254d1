import fcntl
import os
import threading
import time
from collections.abc import Generator, Hashable
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from app.upload.exceptions import UploadConflictError

LOCK_POLL_INTERVAL_SECONDS = 0.01


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class KeyedLockRegistry:
    """One in-process lock per key, dropped once no thread holds or waits for it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, key: Hashable, timeout_seconds: float) -> Generator[None, None, None]:
        """Hold the lock for ``key``.

        Raises:
            UploadConflictError: if another writer holds it past the timeout.
        """
        entry = self._checkout(key)
        try:
            if not entry.lock.acquire(timeout=timeout_seconds):
                raise UploadConflictError(
                    f"Another upload for {key} is still in progress after {timeout_seconds}s"
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)

    def _checkout(self, key: Hashable) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]


@contextmanager
def hold_lock_file(path: Path, timeout_seconds: float) -> Generator[None, None, None]:
    """Hold an exclusive ``flock`` on ``path``, shared by every process using the same tree.

    The lock file is created on first use and left in place.

    Raises:
        UploadConflictError: if another process holds it past the timeout.
    """
    fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
    try:
        deadline = time.monotonic() + timeout_seconds
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise UploadConflictError(
                        f"Another upload holding {path.name} is still in progress "
                        f"after {timeout_seconds}s"
                    ) from None
                time.sleep(LOCK_POLL_INTERVAL_SECONDS)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
