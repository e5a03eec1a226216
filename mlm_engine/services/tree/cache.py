"""
Statistics caches.

Team size and subtree volume are cached per member id with a bounded
lifetime. Any tree mutation clears both caches in full.
"""

import time
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

T = TypeVar("T")

STATS_CACHE_TTL = 300  # 5 minutes


class StatsCache(Protocol):
    """Get-or-compute cache keyed by member id."""

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T: ...

    def invalidate(self, key: str) -> None: ...

    def invalidate_all(self) -> None: ...


class TTLStatsCache:
    """
    In-process cache whose entries expire after ``ttl_seconds``.

    Args:
        ttl_seconds: Entry lifetime
        clock: Time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        ttl_seconds: float = STATS_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        current_time = self._clock()
        entry = self._entries.get(key)
        if entry is not None and (current_time - entry[0]) < self.ttl_seconds:
            return entry[1]

        value = compute()
        self._entries[key] = (current_time, value)
        return value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        self._entries.clear()


class NullStatsCache:
    """Cache that never stores anything."""

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        return compute()

    def invalidate(self, key: str) -> None:
        pass

    def invalidate_all(self) -> None:
        pass
