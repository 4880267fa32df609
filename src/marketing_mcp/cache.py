"""TTL-based snapshot caching for the marketing MCP server.

Provides per-domain snapshot caching to:
- Keep slow upstream fetches off the query path
- Bound staleness with a fixed TTL
- Keep the last good snapshot around for graceful degradation
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Generic, Optional, TypeVar

from .models import Snapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FALLBACK_TTL = 60.0


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached snapshot with the monotonic time it was stored."""
    snapshot: Snapshot[T]
    stamped_at: float
    ttl: float


class SnapshotCache(Generic[T]):
    """Single-slot TTL cache holding one domain's snapshot.

    Features:
    - Expiration based on TTL (valid while age < ttl)
    - Shorter TTL for fallback snapshots so retries resume quickly
    - Expired snapshots kept for get_stale()
    - Entry replaced by one reference assignment (readers never see a
      snapshot paired with another snapshot's timestamp)
    - Injectable monotonic clock
    """

    def __init__(
        self,
        ttl_seconds: float,
        fallback_ttl_seconds: Optional[float] = None,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            ttl_seconds: TTL for live snapshots
            fallback_ttl_seconds: TTL for fallback snapshots (default: 60s, capped at ttl)
            name: Cache name for logging
            clock: Monotonic time source in seconds
        """
        self.ttl = ttl_seconds
        self.fallback_ttl = fallback_ttl_seconds or min(DEFAULT_FALLBACK_TTL, ttl_seconds)
        self.name = name
        self._clock = clock

        self._entry: Optional[CacheEntry[T]] = None
        self._lock = Lock()

        # Metrics
        self._hits = 0
        self._misses = 0
        self._replacements = 0

    def _is_fresh(self, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry.stamped_at < entry.ttl

    def get(self) -> Optional[Snapshot[T]]:
        """Return the snapshot if still within its TTL, else None."""
        with self._lock:
            entry = self._entry
            if entry is None or not self._is_fresh(entry):
                self._misses += 1
                return None
            self._hits += 1
            return entry.snapshot

    def get_stale(self) -> Optional[Snapshot[T]]:
        """Return the last stored snapshot, ignoring TTL expiration.

        Used for graceful degradation when the upstream is unavailable.
        """
        entry = self._entry
        return entry.snapshot if entry is not None else None

    def replace(self, snapshot: Snapshot[T], *, fallback: bool = False) -> None:
        """Store a snapshot, stamping it with the current clock."""
        entry = CacheEntry(
            snapshot=snapshot,
            stamped_at=self._clock(),
            ttl=self.fallback_ttl if fallback else self.ttl,
        )
        with self._lock:
            self._entry = entry
            self._replacements += 1
        logger.debug(
            "Snapshot cached",
            extra={"cache": self.name, "source": snapshot.source, "ttl": entry.ttl},
        )

    def invalidate(self) -> bool:
        """Drop the cached snapshot. Returns True if one was present."""
        with self._lock:
            present = self._entry is not None
            self._entry = None
            return present

    def is_valid(self) -> bool:
        entry = self._entry
        return entry is not None and self._is_fresh(entry)

    def expires_in(self) -> Optional[float]:
        """Seconds until expiry (0 when expired), or None when empty."""
        entry = self._entry
        if entry is None:
            return None
        return max(0.0, entry.ttl - (self._clock() - entry.stamped_at))

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            entry = self._entry
            total = self._hits + self._misses
            hit_rate = self._hits / total if total > 0 else 0.0
            return {
                "name": self.name,
                "cached": entry is not None and self._is_fresh(entry),
                "source": entry.snapshot.source if entry is not None else None,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(hit_rate, 3),
                "replacements": self._replacements,
                "ttl_seconds": self.ttl,
                "fallback_ttl_seconds": self.fallback_ttl,
            }


class CacheManager:
    """Manages the per-domain caches with coordinated operations."""

    def __init__(self) -> None:
        self._caches: dict[str, SnapshotCache[Any]] = {}
        self._lock = Lock()

    def register(self, name: str, cache: SnapshotCache[Any]) -> None:
        """Register a cache for management."""
        with self._lock:
            self._caches[name] = cache

    def get_all_stats(self) -> dict[str, dict[str, Any]]:
        """Get stats for all caches."""
        with self._lock:
            return {name: cache.get_stats() for name, cache in self._caches.items()}
