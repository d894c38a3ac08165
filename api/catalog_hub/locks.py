from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator
import threading


@dataclass
class KeyedLocks:
    """
    Per product-code re-entrant locks.

    Every mutation touching a product code (merge, inventory sync, stock
    adjustment, reservation, release) runs under ``hold(code)``. Several codes
    are always acquired in sorted order so two callers never deadlock.
    """
    _locks: Dict[str, threading.RLock] = field(default_factory=dict)
    _guard: threading.Lock = field(default_factory=threading.Lock)

    def lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    def hold(self, *keys: str):
        return self.hold_many(keys)

    @contextmanager
    def hold_many(self, keys: Iterable[str]) -> Iterator[None]:
        acquired = []
        try:
            for key in sorted(set(keys)):
                lock = self.lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
