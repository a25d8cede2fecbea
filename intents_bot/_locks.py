"""
Per-key locking used for account creation and per-user pipeline runs.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List, Optional

from .exceptions import IntentBotError


class LockTimeout(IntentBotError):
    """Raised when a keyed lock could not be acquired in time."""
    pass


class KeyedLock:
    """
    A registry of one ``threading.Lock`` per key.

    Holders of different keys never block each other; holders of the same
    key are serialized in acquisition order of the underlying lock. A key's
    lock is dropped from the registry once nobody holds or waits for it.
    """

    def __init__(self):
        # key -> [lock, number of holders and waiters]
        self._locks: Dict[Hashable, List] = {}
        self._registry_lock = threading.RLock()

    def _checkout(self, key: Hashable) -> threading.Lock:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: Hashable) -> None:
        with self._registry_lock:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the lock for ``key`` for the duration of the block.

        Args:
            key: Lock key (e.g. a chat user id)
            timeout: Seconds to wait; None waits forever

        Raises:
            LockTimeout: If the lock was not acquired within ``timeout``
        """
        lock = self._checkout(key)
        try:
            acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise LockTimeout(f"Timed out waiting for lock on {key!r}")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)

    def locked(self, key: Hashable) -> bool:
        """Return True if ``key`` is currently held."""
        with self._registry_lock:
            entry = self._locks.get(key)
        return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        """Number of keys currently held or waited on"""
        with self._registry_lock:
            return len(self._locks)
