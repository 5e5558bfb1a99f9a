from contextlib import contextmanager
import threading
from typing import Dict, Iterator

_registry_guard = threading.Lock()
_locks: Dict[str, threading.RLock] = {}


def _lock_for(key: str) -> threading.RLock:
    with _registry_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _locks[key] = lock
        return lock


@contextmanager
def keyed_lock(*keys: str) -> Iterator[None]:
    """
    Single-writer guard for one or more terminal keys.
    Locks are taken in sorted order so two callers locking the same pair
    in opposite directions cannot deadlock.
    """
    ordered = sorted(set(keys))
    held = []
    try:
        for key in ordered:
            lock = _lock_for(key)
            lock.acquire()
            held.append(lock)
        yield
    finally:
        for lock in reversed(held):
            lock.release()
