"""
Schema Cache - Bounded LRU cache for introspected table columns.

Features:
- Least Recently Used eviction once ``max_size`` entries are held
- Optional TTL, checked lazily on ``get``
- Hit/miss/eviction statistics
- Targeted invalidation when the table selection changes
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and the time it was stored."""

    key: Hashable
    value: Any
    timestamp: float


class SchemaCache:
    """
    LRU cache keyed by ``schema.table``.

    Usage:
    ```python
    cache = SchemaCache(max_size=100, ttl_seconds=3600)
    cache.set("sales.orders", columns)
    columns = cache.get("sales.orders")
    print(cache.stats()["hit_rate"])
    ```

    Entries are kept in access order: the first entry of the internal
    ordered map is always the least recently used one.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache

        Args:
            max_size: Maximum number of entries kept
            ttl_seconds: Entry lifetime in seconds, None or 0 to disable expiry
            clock: Time source returning seconds
        """
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: Hashable) -> Optional[Any]:
        """
        Get cached value

        Returns:
            The cached value, or None on a miss or an expired entry
        """
        entry = self._entries.get(key)

        if entry is None:
            self.misses += 1
            return None

        if self._is_expired(entry):
            del self._entries[key]
            self.misses += 1
            logger.debug(f"Cache entry expired: {key}")
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return entry.value

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value, refreshing recency if the key is already cached."""
        if key in self._entries:
            self._entries.move_to_end(key)

        self._entries[key] = CacheEntry(key=key, value=value, timestamp=self._clock())

        while len(self._entries) > self.max_size:
            lru_key, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug(f"Evicted least recently used entry: {lru_key}")

    def invalidate(self, keys: Iterable[Hashable]) -> None:
        """Drop the given keys; other entries keep their order."""
        for key in keys:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        """Hit, miss and eviction counters plus current size."""
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": len(self._entries),
            "max_size": self.max_size,
            "hit_rate": f"{self.hits / total * 100:.2f}%" if total else "N/A",
        }

    def reset_stats(self) -> None:
        """Zero the counters; entries are kept."""
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def keys(self):
        """Keys from least to most recently used."""
        return list(self._entries.keys())

    def _is_expired(self, entry: CacheEntry) -> bool:
        if not self.ttl_seconds:
            return False
        return self._clock() - entry.timestamp > self.ttl_seconds

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
