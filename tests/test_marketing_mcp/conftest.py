"""Pytest fixtures for marketing MCP tests."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from marketing_mcp import fallback
from marketing_mcp.config import Config, SecretStr
from marketing_mcp.feature_flags import reset_feature_flags
from marketing_mcp.models import FetchResult
from marketing_mcp.sources.base import ContentSource


@pytest.fixture(autouse=True)
def reset_global_state(monkeypatch):
    """Reset feature flags and fallback cache before each test for isolation."""
    for name in ("FF_GRACEFUL_DEGRADATION", "FF_STATIC_FALLBACK", "FF_WARM_START"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("MARKETING_DATA_DIR", raising=False)
    reset_feature_flags()
    fallback.clear_cache()
    yield
    reset_feature_flags()
    fallback.clear_cache()


# =============================================================================
# Clock and stub source
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubSource(ContentSource[Any]):
    """Source returning queued results and counting load() calls."""

    name = "stub"

    def __init__(self, *results: FetchResult[Any], default: Any = "default") -> None:
        self.results = list(results)
        self.loads = 0
        self._default = default

    @property
    def title(self) -> str:
        return "Stub Content"

    def default(self) -> Any:
        return self._default

    async def load(self) -> FetchResult[Any]:
        self.loads += 1
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def test_config() -> Config:
    """Configuration with a Notion token and no retries."""
    return Config(
        notion_token=SecretStr("secret_test_token"),
        glossary_concepts_source_id="concepts-ds",
        glossary_components_source_id="components-ds",
        brand_page_id="brand-page",
        max_retries=0,
        retry_base_delay=0.0,
        circuit_breaker_threshold=100,
    )


# =============================================================================
# Notion payload builders
# =============================================================================


def rich(text: str) -> list[dict[str, Any]]:
    return [{"type": "text", "plain_text": text}]


def notion_block(block_type: str, text: str = "", block_id: str = "", **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"rich_text": rich(text) if text else []}
    body.update(extra)
    return {
        "object": "block",
        "id": block_id or f"{block_type}-{text}",
        "type": block_type,
        "has_children": False,
        block_type: body,
    }


def notion_page(title: str, summary: str = "", tags: list[str] | None = None, **props: Any) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "Name": {"type": "title", "title": rich(title) if title else []},
        "One-sentency summary": {"type": "rich_text", "rich_text": rich(summary) if summary else []},
        "Tags": {"type": "multi_select", "multi_select": [{"name": t} for t in tags or []]},
    }
    properties.update(props)
    return {"object": "page", "id": f"page-{title}", "properties": properties}


def listing(results: list[dict[str, Any]], next_cursor: str | None = None) -> dict[str, Any]:
    return {
        "object": "list",
        "results": results,
        "has_more": next_cursor is not None,
        "next_cursor": next_cursor,
    }


def mock_transport(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


# Default SODAX API payloads
STATS_PAYLOADS: dict[str, Any] = {
    "/v1/be/config/spoke/chains": ["sonic", "0xa4b1.arbitrum", "new-chain"],
    "/v1/be/partners": {"partners": ["0xabc", "0xdef"]},
    "/v1/be/sodax/supply": {
        "totalSupply": "1500000000",
        "circulatingSupply": "600000000",
        "lockedSupply": "900000000",
        "daoFund": "100000000",
        "block": "123456",
    },
    "/v1/be/moneymarket/asset/all": [
        {
            "symbol": "USDC",
            "reserveAddress": "0xreserve",
            "totalATokenBalance": "1000",
            "totalVariableDebtTokenBalance": "250",
            "totalSuppliers": 12,
            "totalBorrowers": 3,
        }
    ],
    "/v1/be/solver/orderbook": {"total": 42, "data": []},
}


def stats_handler(failing: set[str] | None = None) -> Callable[[httpx.Request], httpx.Response]:
    """SODAX API mock; paths in ``failing`` answer HTTP 500."""
    failing = failing or set()

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path in failing:
            return httpx.Response(500, json={"error": "boom"})
        if path in STATS_PAYLOADS:
            return httpx.Response(200, json=STATS_PAYLOADS[path])
        return httpx.Response(404, json={"error": "not found"})

    return handler
