"""
In-memory cache for proxied remote assets.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_ASSET_TTL = 30 * 24 * 60 * 60
DEFAULT_MAX_ENTRIES = 100


@dataclass(frozen=True)
class CacheEntry:
    """One cached remote asset."""

    key: str
    payload: bytes
    content_type: str
    created_at: float

    def age(self, now: float) -> float:
        return now - self.created_at


class AssetCache:
    """Bounded, TTL-checked key/value store for asset responses.

    Entries are keyed by inbound request path. An entry stays visible while
    its age is at most ``ttl_seconds``; stale entries are dropped lazily on
    lookup. Admitting a new key into a full cache clears the whole cache
    first, so the cache never holds more than ``max_entries`` entries.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_ASSET_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        *,
        clock: Callable[[], float] = time.time,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("frontend.asset_cache")

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.expirations = 0
        self.evictions = 0

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the fresh entry for ``key``, removing it if it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                self._count("asset_cache_misses_total")
                return None

            if entry.age(self.clock()) > self.ttl_seconds:
                del self._entries[key]
                self.expirations += 1
                self.misses += 1
                self._count("asset_cache_misses_total")
                self.logger.debug("Asset cache entry expired", key=key)
                return None

            self.hits += 1
            self._count("asset_cache_hits_total")
            return entry

    def insert(self, key: str, payload: bytes, content_type: str) -> CacheEntry:
        """Store ``payload`` under ``key``, overwriting any previous entry."""
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                dropped = len(self._entries)
                self._entries.clear()
                self.evictions += 1
                self._count("asset_cache_evictions_total")
                self.logger.info("Asset cache full, cleared", dropped=dropped, max_entries=self.max_entries)

            entry = CacheEntry(
                key=key,
                payload=payload,
                content_type=content_type,
                created_at=self.clock(),
            )
            self._entries[key] = entry
            return entry

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            size_before = len(self._entries)
            self._entries.clear()
        self.logger.info("Asset cache cleared", removed=size_before)

    def stats(self) -> Dict[str, Any]:
        """Cache statistics for health reporting."""
        with self._lock:
            size = len(self._entries)
        total = self.hits + self.misses
        hit_rate = (self.hits / total * 100) if total > 0 else 0

        return {
            "size": size,
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": f"{hit_rate:.1f}%",
            "expirations": self.expirations,
            "evictions": self.evictions,
        }

    def _count(self, metric_name: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
