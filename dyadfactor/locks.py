"""Per-block mutual exclusion for concurrent training calls."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from .errors import ConfigurationError
from .row_store import check_index

LockKey = Tuple[str, int]


class RowLockTable:
    """Lazily created locks keyed by ``(side, entity_id // block_size)``.

    Holding the locks for both IDs of a training call keeps two calls that
    touch the same entity from racing on its weights and bias. Locks are
    always taken in sorted key order.
    """

    def __init__(self, block_size: int = 64) -> None:
        if int(block_size) <= 0:
            raise ConfigurationError("block_size must be positive")
        self.block_size = int(block_size)
        self._locks: Dict[LockKey, threading.Lock] = {}
        self._guard = threading.Lock()

    def key(self, side: str, entity_id: int) -> LockKey:
        return (side, check_index(entity_id, what="Entity ID") // self.block_size)

    def _lock_for(self, key: LockKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *entries: Tuple[str, int]) -> Iterator[None]:
        """Acquire the locks covering each ``(side, entity_id)`` entry."""

        keys = sorted({self.key(side, entity_id) for side, entity_id in entries})
        acquired = []
        try:
            for key in keys:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
