"""
Non-blocking lock registry for playlist owners.
Contention is answered with "busy" instead of waiting: the caller skips the
unit of work and the next scheduled run picks it up.
"""

import threading
from typing import Dict, Optional


class LockLease:
    """Handle for a held lock; release exactly once."""

    def __init__(self, key: str, lock: threading.Lock):
        self.key = key
        self._lock = lock
        self._released = False

    def release(self) -> None:
        if not self._released:
            self._released = True
            self._lock.release()

    @property
    def released(self) -> bool:
        return self._released

    def __enter__(self) -> 'LockLease':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class OwnerLockRegistry:
    """
    Process-lifetime table of per-owner locks.

    Locks are created lazily on first use and never removed; the key space is
    bounded by the number of distinct owners. Thread locks are used so the
    registry stays correct whether callers share one event loop or not.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._table_lock = threading.Lock()

    def _lock_for(self, owner_key: str) -> threading.Lock:
        with self._table_lock:
            lock = self._locks.get(owner_key)
            if lock is None:
                lock = threading.Lock()
                self._locks[owner_key] = lock
            return lock

    def acquire(self, owner_key: str) -> Optional[LockLease]:
        """Try to take the owner's lock without waiting. Returns None when busy."""
        lock = self._lock_for(owner_key)
        if not lock.acquire(blocking=False):
            return None
        return LockLease(owner_key, lock)

    def is_locked(self, owner_key: str) -> bool:
        with self._table_lock:
            lock = self._locks.get(owner_key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._locks)
