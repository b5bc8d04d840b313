"""
Response Cache - Short-lived TTL store in front of outbound calls.

Keys come from a small finite set (endpoint URLs and price keys), so the
store is unbounded. Expired entries read as absent and are overwritten by
the next put for the same key.
"""

import logging
import time
from typing import Any, Callable, Optional

from explorer_adapters.models import CacheEntry


logger = logging.getLogger(__name__)


class ResponseCache:
    """Time-to-live keyed store owned by a single adapter."""

    DEFAULT_TTL = 60.0

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        now = self._clock()

        if entry is None or entry.is_expired(now, self._ttl):
            self._misses += 1
            return None

        entry.hits += 1
        self._hits += 1
        logger.debug(f"Cache hit for {key} (age={entry.age_seconds(now):.1f}s)")
        return entry.value

    def put(self, key: str, value: Any) -> None:
        """Store a value stamped with the current time."""
        self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock())

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all cache entries."""
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0

        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate_percent": round(hit_rate, 2),
            "ttl_seconds": self._ttl,
        }

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock(), self._ttl)

    def __len__(self) -> int:
        return len(self._entries)
