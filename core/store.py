"""
Purpose: Versioned key/value store used for optimistic read-modify-write.
What it does:
- read(key) -> (value, version)
- compare_and_set(key, expected_version, value) -> bool

The in-memory implementation is what tests and simulations use. A database
backed store only needs to honour the same two calls (e.g. an UPDATE guarded
by a version column).
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from .errors import ConflictError

logger = logging.getLogger(__name__)

V = TypeVar("V")


class InMemoryVersionedStore(Generic[V]):
    def __init__(self) -> None:
        self._data: Dict[Hashable, Tuple[V, int]] = {}
        self._guard = Lock()

    def read(self, key: Hashable) -> Tuple[Optional[V], int]:
        """
        Version 0 means the key has never been written.
        """
        with self._guard:
            if key not in self._data:
                return None, 0
            return self._data[key]

    def compare_and_set(self, key: Hashable, expected_version: int, value: V) -> bool:
        with self._guard:
            current_version = self._data[key][1] if key in self._data else 0
            if current_version != expected_version:
                return False
            self._data[key] = (value, current_version + 1)
            return True

    def items(self):
        with self._guard:
            return [(key, value) for key, (value, _) in self._data.items()]


def optimistic_update(
    store,
    key: Hashable,
    mutate: Callable[[Optional[V]], V],
    *,
    max_retries: int,
) -> V:
    """
    Read, apply `mutate` to the current value and write it back guarded by the
    version that was read. Retries with a fresh read on conflict, then raises
    ConflictError.
    """
    for attempt in range(1, max_retries + 1):
        current, version = store.read(key)
        updated = mutate(current)
        if store.compare_and_set(key, version, updated):
            return updated
        logger.debug("Optimistic update conflict on %s (attempt %d/%d)", key, attempt, max_retries)

    logger.error("Giving up on %s after %d conflicting attempts", key, max_retries)
    raise ConflictError(key, max_retries)
