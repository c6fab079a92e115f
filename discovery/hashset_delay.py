"""A set whose entries expire after a per-entry timeout."""

from __future__ import annotations

import heapq
import itertools
import time
from typing import Callable, Generic, Hashable, Iterator, Optional, TypeVar

K = TypeVar("K", bound=Hashable)

DEFAULT_DELAY = 30.0


class HashSetDelay(Generic[K]):
    """Keys inserted here expire after a timeout and are then handed out once."""

    def __init__(
        self,
        default_entry_timeout: float = DEFAULT_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_entry_timeout = default_entry_timeout
        self._clock = clock
        self._entries: dict[K, tuple[float, int]] = {}
        self._heap: list[tuple[float, int, K]] = []
        self._counter = itertools.count()

    def _schedule(self, key: K, duration: float) -> None:
        deadline = self._clock() + duration
        seq = next(self._counter)
        self._entries[key] = (deadline, seq)
        heapq.heappush(self._heap, (deadline, seq, key))

    def insert(self, key: K) -> None:
        """Insert ``key`` with the default timeout."""
        self.insert_at(key, self.default_entry_timeout)

    def insert_at(self, key: K, entry_duration: float) -> None:
        """Insert ``key`` (or reset its timeout) to expire after ``entry_duration``."""
        self._schedule(key, entry_duration)

    def update_timeout(self, key: K, timeout: float) -> bool:
        """Reset the timeout of an existing key. Returns whether the key existed."""
        if key not in self._entries:
            return False
        self._schedule(key, timeout)
        return True

    def remove(self, key: K) -> bool:
        """Remove ``key``. Returns whether it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()
        self._heap.clear()

    def _discard_stale(self) -> None:
        while self._heap:
            deadline, seq, key = self._heap[0]
            if self._entries.get(key) == (deadline, seq):
                return
            heapq.heappop(self._heap)

    def next_expiry(self) -> Optional[float]:
        """The earliest deadline among the entries, or None if empty."""
        self._discard_stale()
        return self._heap[0][0] if self._heap else None

    def pop_expired(self) -> list[K]:
        """Remove and return all expired keys, earliest deadline first."""
        now = self._clock()
        expired = []
        while True:
            self._discard_stale()
            if not self._heap or self._heap[0][0] > now:
                return expired
            _, _, key = heapq.heappop(self._heap)
            del self._entries[key]
            expired.append(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._entries))