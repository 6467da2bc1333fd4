"""
Purpose: One logical owner per key (driver, or driver+day).
What it does:
Hands out a re-entrant lock per key so ledger mutations and penalty evaluation
for the same driver are serialized while different drivers proceed in parallel.
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock, RLock
from typing import Dict, Hashable, Iterator


class KeyedLocks:
    def __init__(self) -> None:
        self._locks: Dict[Hashable, RLock] = {}
        self._guard = Lock()

    def get(self, key: Hashable) -> RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self.get(key)
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
