"""Marketing stats source: five SODAX backend reads -> one stats record."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .. import fallback
from ..config import Config
from ..errors import MarketingMCPError
from ..http import UpstreamClient
from ..models import (
    STATS_FIELDS,
    FetchResult,
    MarketingStats,
    MoneyMarketAsset,
    NetworkInfo,
    PartnerInfo,
    TokenSupply,
)
from .base import ContentSource

logger = logging.getLogger(__name__)

# Field -> (path, query params)
ENDPOINTS: dict[str, tuple[str, dict[str, Any] | None]] = {
    "networks": ("/config/spoke/chains", None),
    "partners": ("/partners", None),
    "token_supply": ("/sodax/supply", None),
    "money_market_assets": ("/moneymarket/asset/all", None),
    "recent_intents_count": ("/solver/orderbook", {"limit": 1}),
}

CHAIN_NAMES = {
    "sonic": "Sonic",
    "solana": "Solana",
    "0xa86a.avax": "Avalanche",
    "0xa4b1.arbitrum": "Arbitrum",
    "0x2105.base": "Base",
    "0xa.optimism": "Optimism",
    "0x38.bsc": "BNB Chain",
    "0x89.polygon": "Polygon",
    "hyper": "Hyperliquid",
    "lightlink": "LightLink",
    "injective-1": "Injective",
    "stellar": "Stellar",
    "sui": "Sui",
    "0x1.icon": "ICON",
    "ethereum": "Ethereum",
}


def chain_name(chain_id: str) -> str:
    """Human-readable network name, or the id itself when unknown."""
    return CHAIN_NAMES.get(chain_id, chain_id)


def _as_str(value: Any, default: str = "0") -> str:
    return default if value is None else str(value)


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _networks(raw: Any) -> tuple[NetworkInfo, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(NetworkInfo(id=str(c), name=chain_name(str(c))) for c in raw)


def _partners(raw: Any) -> tuple[PartnerInfo, ...]:
    addresses = raw.get("partners") if isinstance(raw, dict) else None
    return tuple(PartnerInfo(address=str(a)) for a in addresses or [])


def _token_supply(raw: Any) -> TokenSupply:
    if not isinstance(raw, dict):
        return TokenSupply()
    return TokenSupply(
        total_supply=_as_str(raw.get("totalSupply")),
        circulating_supply=_as_str(raw.get("circulatingSupply")),
        locked_supply=_as_str(raw.get("lockedSupply")),
        dao_fund=None if raw.get("daoFund") is None else str(raw["daoFund"]),
        block_number=None if raw.get("block") is None else str(raw["block"]),
    )


def _money_market_assets(raw: Any) -> tuple[MoneyMarketAsset, ...]:
    if not isinstance(raw, list):
        return ()
    assets = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        assets.append(
            MoneyMarketAsset(
                symbol=_as_str(item.get("symbol"), ""),
                reserve_address=_as_str(item.get("reserveAddress"), ""),
                total_supplied=_as_str(item.get("totalATokenBalance")),
                total_borrowed=_as_str(item.get("totalVariableDebtTokenBalance")),
                total_suppliers=_as_int(item.get("totalSuppliers")),
                total_borrowers=_as_int(item.get("totalBorrowers")),
            )
        )
    return tuple(assets)


def _recent_intents_count(raw: Any) -> int:
    return _as_int(raw.get("total")) if isinstance(raw, dict) else 0


_NORMALIZERS = {
    "networks": _networks,
    "partners": _partners,
    "token_supply": _token_supply,
    "money_market_assets": _money_market_assets,
    "recent_intents_count": _recent_intents_count,
}


def normalize_stats(raw: dict[str, Any], unavailable: tuple[str, ...] = ()) -> MarketingStats:
    """Relabel raw API payloads into a MarketingStats record.

    Fields missing from ``raw`` (or listed in ``unavailable``) keep their
    empty default. A field whose payload cannot be normalized also keeps
    its default and is added to ``unavailable``.
    """
    values: dict[str, Any] = {}
    failed = set(unavailable)
    for field_name, normalize in _NORMALIZERS.items():
        if field_name in failed or field_name not in raw:
            continue
        try:
            values[field_name] = normalize(raw[field_name])
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            logger.warning(
                "Malformed stats payload",
                extra={"field": field_name, "error": f"{type(e).__name__}: {e}"},
            )
            failed.add(field_name)
    return MarketingStats(
        **values,
        unavailable=tuple(f for f in STATS_FIELDS if f in failed),
    )


class StatsSource(ContentSource[MarketingStats]):
    """Live marketing stats from the SODAX backend analytics API."""

    name = "stats"

    def __init__(self, client: UpstreamClient) -> None:
        self._client = client

    @classmethod
    def from_config(
        cls,
        config: Config,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> StatsSource:
        return cls(
            UpstreamClient.from_config(
                "sodax-api",
                config.sodax_api_url,
                config,
                timeout=config.api_timeout_seconds,
                transport=transport,
            )
        )

    @property
    def title(self) -> str:
        return fallback.stats_title()

    def default(self) -> MarketingStats:
        return fallback.default_stats()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _read(self, field_name: str) -> tuple[str, Any, str | None]:
        path, params = ENDPOINTS[field_name]
        try:
            return field_name, await self._client.get_json(path, params=params), None
        except MarketingMCPError as e:
            logger.warning(
                "Stats field fetch failed",
                extra={"field": field_name, "path": path, "error": str(e)},
            )
            return field_name, None, str(e)

    async def fetch(self) -> FetchResult[dict[str, Any]]:
        """Read every stats field concurrently; each failure is isolated.

        The result carries an error only when every field failed.
        """
        results = await asyncio.gather(*(self._read(f) for f in STATS_FIELDS))
        raw = {name: value for name, value, error in results if error is None}
        errors = [f"{name}: {error}" for name, _, error in results if error is not None]

        if not raw:
            return FetchResult(data={}, error="; ".join(errors))
        return FetchResult(data=raw)

    async def load(self) -> FetchResult[MarketingStats]:
        fetched = await self.fetch()
        if not fetched.ok:
            return FetchResult(data=self.default(), error=fetched.error)

        unavailable = tuple(f for f in STATS_FIELDS if f not in fetched.data)
        stats = normalize_stats(fetched.data, unavailable)
        if stats.unavailable == STATS_FIELDS:
            return FetchResult(data=self.default(), error="No stats payload could be normalized")
        logger.info(
            "Marketing stats loaded",
            extra={
                "networks": stats.network_count,
                "partners": stats.partner_count,
                "unavailable": list(stats.unavailable),
            },
        )
        return FetchResult(data=stats)
