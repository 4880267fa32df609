"""Marketing stats queries over the current stats snapshot."""

from __future__ import annotations

from typing import Any

from ..models import (
    MarketingStats,
    MoneyMarketAsset,
    NetworkInfo,
    PartnerInfo,
    RefreshResult,
    TokenSupply,
)
from ..snapshots import SnapshotManager


class StatsService:
    def __init__(self, manager: SnapshotManager[MarketingStats]) -> None:
        self.manager = manager

    async def _stats(self) -> MarketingStats:
        return (await self.manager.get_snapshot()).payload

    async def overview(self) -> dict[str, Any]:
        snapshot = await self.manager.get_snapshot()
        stats = snapshot.payload
        return {
            "title": snapshot.title,
            "last_updated": snapshot.fetched_at.isoformat(),
            "source": snapshot.source,
            "network_count": stats.network_count,
            "partner_count": stats.partner_count,
            "total_supply": stats.token_supply.total_supply,
            "circulating_supply": stats.token_supply.circulating_supply,
            "money_market_asset_count": len(stats.money_market_assets),
            "recent_intents_count": stats.recent_intents_count,
            "unavailable": list(stats.unavailable),
        }

    async def networks(self) -> list[NetworkInfo]:
        return list((await self._stats()).networks)

    async def partners(self) -> list[PartnerInfo]:
        return list((await self._stats()).partners)

    async def token_supply(self) -> TokenSupply:
        return (await self._stats()).token_supply

    async def money_market_assets(self) -> list[MoneyMarketAsset]:
        return list((await self._stats()).money_market_assets)

    async def recent_activity(self) -> dict[str, Any]:
        stats = await self._stats()
        return {"recent_intents_count": stats.recent_intents_count}

    async def refresh(self) -> RefreshResult:
        return await self.manager.refresh()

    def cache_status(self) -> dict[str, Any]:
        return self.manager.status()
