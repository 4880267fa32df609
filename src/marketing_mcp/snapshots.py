"""Snapshot lifecycle for one content domain.

A SnapshotManager answers ``get_snapshot()`` from its cache while the
snapshot is fresh. Otherwise it walks an ordered chain of strategies:

1. LiveStrategy: fetch and normalize from the upstream source
2. StaleStrategy: the previous live snapshot, unchanged (stale-while-error)
3. DefaultStrategy: bundled default content with the short fallback TTL

Each strategy reports an Attempt instead of raising, so the manager can
move down the chain and tell refresh callers what actually happened.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, Optional, Sequence, TypeVar

from .cache import SnapshotCache
from .errors import UpstreamError
from .feature_flags import FeatureFlags, get_feature_flags
from .models import SOURCE_FALLBACK, SOURCE_LIVE, RefreshResult, Snapshot
from .sources.base import ContentSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """Outcome of one strategy: a snapshot, or the reason there is none."""

    strategy: str
    snapshot: Optional[Snapshot[T]] = None
    error: Optional[str] = None


# =============================================================================
# Strategies
# =============================================================================


class Strategy(ABC, Generic[T]):
    name: str = ""

    @abstractmethod
    async def attempt(self, manager: SnapshotManager[T]) -> Attempt[T]:
        ...


class LiveStrategy(Strategy[T]):
    """Fetch from the upstream and replace the cached snapshot."""

    name = "live"

    async def attempt(self, manager: SnapshotManager[T]) -> Attempt[T]:
        source = manager.source
        try:
            result = await source.load()
        except Exception as e:
            logger.exception("Unexpected error loading content", extra={"domain": source.name})
            return Attempt(self.name, error=f"{type(e).__name__}: {e}")

        if not result.ok:
            return Attempt(self.name, error=result.error)

        snapshot = Snapshot(
            title=source.title,
            fetched_at=datetime.now(timezone.utc),
            payload=result.data,
            source=SOURCE_LIVE,
        )
        manager.cache.replace(snapshot)
        return Attempt(self.name, snapshot=snapshot)


class StaleStrategy(Strategy[T]):
    """Serve the previous snapshot without re-stamping it."""

    name = "stale"

    async def attempt(self, manager: SnapshotManager[T]) -> Attempt[T]:
        if not manager.flags.graceful_degradation:
            return Attempt(self.name, error="graceful degradation disabled")
        snapshot = manager.cache.get_stale()
        # Fallback snapshots are re-issued by DefaultStrategy
        if snapshot is None or snapshot.is_fallback:
            return Attempt(self.name, error="no previous live snapshot")
        logger.info(
            "Graceful degradation: serving previous snapshot",
            extra={"domain": manager.name, "fetched_at": snapshot.fetched_at.isoformat()},
        )
        return Attempt(self.name, snapshot=snapshot)


class DefaultStrategy(Strategy[T]):
    """Serve statically defined content, cached with the fallback TTL."""

    name = "default"

    async def attempt(self, manager: SnapshotManager[T]) -> Attempt[T]:
        if not manager.flags.static_fallback:
            return Attempt(self.name, error="static fallback disabled")
        source = manager.source
        snapshot = Snapshot(
            title=source.title,
            fetched_at=datetime.now(timezone.utc),
            payload=source.default(),
            source=SOURCE_FALLBACK,
        )
        manager.cache.replace(snapshot, fallback=True)
        logger.warning("Serving default content", extra={"domain": manager.name})
        return Attempt(self.name, snapshot=snapshot)


def default_strategies() -> list[Strategy[Any]]:
    return [LiveStrategy(), StaleStrategy(), DefaultStrategy()]


# =============================================================================
# Snapshot Manager
# =============================================================================


class SnapshotManager(Generic[T]):
    """Cache-with-TTL front for one content source."""

    def __init__(
        self,
        source: ContentSource[T],
        cache: SnapshotCache[T],
        strategies: Optional[Sequence[Strategy[T]]] = None,
        flags: Optional[FeatureFlags] = None,
    ) -> None:
        self.source = source
        self.cache = cache
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self._flags = flags
        self._lock = asyncio.Lock()
        # Bumped on every resolution so waiters can reuse a concurrent result
        self._generation = 0
        self._last_attempt: Optional[Attempt[T]] = None

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def flags(self) -> FeatureFlags:
        return self._flags if self._flags is not None else get_feature_flags()

    async def get_snapshot(self, force_refresh: bool = False) -> Snapshot[T]:
        """Return the current snapshot, refreshing it when expired.

        Raises:
            UpstreamError: no strategy could produce a snapshot
        """
        attempt = await self._acquire(force_refresh)
        if attempt.snapshot is None:
            raise UpstreamError(f"No {self.name} content available: {attempt.error}")
        return attempt.snapshot

    async def refresh(self) -> RefreshResult:
        """Force a live fetch and report whether it succeeded."""
        attempt = await self._acquire(force=True)
        snapshot = attempt.snapshot

        if attempt.strategy == LiveStrategy.name and snapshot is not None:
            return RefreshResult(
                success=True,
                message=(
                    f"{snapshot.title} refreshed at {snapshot.fetched_at.isoformat()}"
                    f"{_describe(snapshot.payload)}"
                ),
                source=snapshot.source,
            )

        if snapshot is None:
            return RefreshResult(
                success=False,
                message=f"Failed to refresh {self.name}: {attempt.error}",
                source="none",
            )

        served = "previously cached" if attempt.strategy == StaleStrategy.name else "default"
        return RefreshResult(
            success=False,
            message=f"Failed to refresh {self.name}: {attempt.error}. Serving {served} content.",
            source=snapshot.source,
        )

    def status(self) -> dict[str, Any]:
        snapshot = self.cache.get_stale()
        expires_in = self.cache.expires_in()
        return {
            "cached": self.cache.is_valid(),
            "last_updated": snapshot.fetched_at.isoformat() if snapshot else None,
            "expires_in": round(expires_in, 1) if expires_in is not None else None,
            "source": snapshot.source if snapshot else None,
        }

    async def _acquire(self, force: bool) -> Attempt[T]:
        if not force:
            cached = self.cache.get()
            if cached is not None:
                return Attempt("cache", snapshot=cached)

        generation = self._generation
        async with self._lock:
            # Another caller resolved while we waited
            if generation != self._generation and self._last_attempt is not None:
                return self._last_attempt
            if not force and self.cache.is_valid():
                snapshot = self.cache.get_stale()
                if snapshot is not None:
                    return Attempt("cache", snapshot=snapshot)

            attempt = await self._resolve()
            self._last_attempt = attempt
            self._generation += 1
            return attempt

    async def _resolve(self) -> Attempt[T]:
        errors: list[str] = []
        for strategy in self.strategies:
            attempt = await strategy.attempt(self)
            if attempt.snapshot is not None:
                if errors:
                    return Attempt(attempt.strategy, attempt.snapshot, "; ".join(errors))
                return attempt
            if strategy.name == LiveStrategy.name:
                logger.warning(
                    "Content refresh failed",
                    extra={"domain": self.name, "error": attempt.error},
                )
                errors.append(attempt.error or "unknown error")

        return Attempt("none", error="; ".join(errors) or "no strategy available")


def _describe(payload: Any) -> str:
    """Short count summary for refresh messages."""
    for attr, label in (("sections", "sections"), ("terms", "terms")):
        items = getattr(payload, attr, None)
        if items is not None:
            return f" ({len(items)} {label})"
    networks = getattr(payload, "network_count", None)
    if networks is not None:
        return f" ({networks} networks, {payload.partner_count} partners)"
    return ""
