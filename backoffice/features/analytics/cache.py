"""In-process metric cache with TTL-on-read semantics."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """Computed payload and the monotonic time it was computed at.

    Attributes:
        payload: Cached value, returned by reference on hits.
        computed_at_ms: Monotonic clock reading in milliseconds.
    """

    payload: Any
    computed_at_ms: float

    def is_fresh(self, now_ms: float, ttl_ms: float) -> bool:
        """Fresh iff strictly younger than the TTL."""
        return now_ms - self.computed_at_ms < ttl_ms


class MetricCache:
    """Keyed cache of computed metrics.

    Entries are never evicted proactively; staleness is checked on read and
    a stale entry stays in place until a successful recomputation
    overwrites it.
    """

    def __init__(
        self,
        ttl_ms: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_ms: Maximum entry age in milliseconds.
            clock: Monotonic clock returning seconds.
        """
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def now_ms(self) -> float:
        """Current clock reading in milliseconds."""
        return self._clock() * 1000

    def entry(self, key: str) -> CacheEntry | None:
        """Return the raw entry for a key, fresh or not."""
        return self._entries.get(key)

    def get(self, key: str) -> Any | None:
        """Return the cached payload if present and fresh, else None."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self.now_ms(), self.ttl_ms):
            return None
        return entry.payload

    def set(self, key: str, payload: Any) -> CacheEntry:
        """Store a payload stamped with the current time."""
        entry = CacheEntry(payload=payload, computed_at_ms=self.now_ms())
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
