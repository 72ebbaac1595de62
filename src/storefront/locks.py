"""Per-record mutual exclusion for read-modify-write sequences.

Each key (``order:<id>``, ``cart:<owner>``) maps to its own
lock, so work on different records never contends. Entries disappear once no
caller holds a reference to them.
"""

import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from storefront.errors import LockTimeout

logger = structlog.get_logger(__name__)


class _KeyLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self):
        self.lock = threading.RLock()


class RecordLocks:
    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, _KeyLock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> _KeyLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._locks[key] = entry
            return entry

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        wait = self.timeout if timeout is None else timeout
        entry = self._lock_for(key)
        if not entry.lock.acquire(timeout=wait):
            logger.warning("lock_timeout", key=key, timeout=wait)
            raise LockTimeout(key, wait)
        try:
            yield
        finally:
            entry.lock.release()
