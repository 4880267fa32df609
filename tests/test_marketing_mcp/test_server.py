"""Tests for MCP tool registration and tool responses."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from starlette.testclient import TestClient

from marketing_mcp.config import Config
from marketing_mcp.server import Services, create_server

from .conftest import listing, mock_transport, notion_block, notion_page, stats_handler

EXPECTED_TOOLS = {
    "get_brand_overview",
    "get_brand_section",
    "get_brand_subsection",
    "list_brand_subsections",
    "search_brand_content",
    "refresh_brand_content",
    "get_glossary_overview",
    "list_glossary_terms",
    "get_glossary_term",
    "search_glossary",
    "get_terms_by_tag",
    "translate_term",
    "refresh_glossary",
    "get_stats_overview",
    "get_networks",
    "get_partners",
    "get_token_supply",
    "get_money_market_assets",
    "get_recent_activity",
    "refresh_stats",
    "get_cache_status",
}

BRAND_BLOCKS = [
    notion_block("heading_1", "Brand Voice"),
    notion_block("paragraph", "We sound confident and clear."),
    notion_block("heading_2", "Tone"),
    notion_block("paragraph", "Warm but precise."),
    notion_block("heading_1", "Visual Identity"),
    notion_block("heading_2", "Colors"),
    notion_block("paragraph", "Use the SODAX palette."),
]

GLOSSARY_PAGES = {
    "concepts-ds": [
        notion_page("Cross-network liquidity", "Liquidity shared cross-network by the protocol.", ["liquidity"]),
    ],
    "components-ds": [
        notion_page("Solver", "Finds the best execution path for intents.", ["solver", "liquidity"]),
        notion_page("Hub", "Central settlement chain.", ["hub"]),
    ],
}


def notion_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/v1/blocks/brand-page/children":
        return httpx.Response(200, json=listing(BRAND_BLOCKS))
    if path.startswith("/v1/data_sources/"):
        source_id = path.split("/")[3]
        return httpx.Response(200, json=listing(GLOSSARY_PAGES[source_id]))
    return httpx.Response(404)


def make_server(config: Config, notion=notion_handler, api=None):
    services = Services.from_config(
        config,
        notion_transport=mock_transport(notion),
        api_transport=mock_transport(api or stats_handler()),
    )
    return create_server(config, services=services)


async def call(server, name: str, **arguments: Any) -> dict[str, Any]:
    fn = server._tool_manager._tools[name].fn
    return json.loads(await fn(**arguments))


@pytest.fixture
def server(test_config):
    return make_server(test_config)


class TestRegistration:
    def test_all_tools_registered(self, server):
        assert set(server._tool_manager._tools) == EXPECTED_TOOLS

    def test_services_attached(self, server):
        assert isinstance(server._services, Services)


# =============================================================================
# Brand tools
# =============================================================================


class TestBrandTools:
    @pytest.mark.asyncio
    async def test_overview(self, server):
        result = await call(server, "get_brand_overview")

        assert result["title"] == "SODAX Brand Bible"
        assert result["source"] == "live"
        assert result["section_count"] == 2
        assert result["sections"][0] == {"id": "1", "title": "Brand Voice", "subsection_count": 1}

    @pytest.mark.asyncio
    async def test_section_and_subsection_lookup(self, server):
        section = await call(server, "get_brand_section", section_id="2")
        sub = await call(server, "get_brand_section", section_id="2.1")

        assert section["title"] == "Visual Identity"
        assert section["subsections"][0]["id"] == "2.1"
        assert sub == {
            "id": "2.1",
            "parent_id": "2",
            "title": "Colors",
            "content": "Use the SODAX palette.",
        }

    @pytest.mark.asyncio
    async def test_missing_section_lists_available(self, server):
        result = await call(server, "get_brand_section", section_id="9")

        assert result["error"] == "not_found"
        assert [s["id"] for s in result["available_sections"]] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_invalid_section_id(self, server):
        result = await call(server, "get_brand_section", section_id="intro")
        assert result["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_subsection_requires_dotted_id(self, server):
        bad = await call(server, "get_brand_subsection", subsection_id="1")
        good = await call(server, "get_brand_subsection", subsection_id="1.1")

        assert bad["error"] == "validation_error"
        assert good["title"] == "Tone"

    @pytest.mark.asyncio
    async def test_list_subsections(self, server):
        result = await call(server, "list_brand_subsections")

        assert result["count"] == 2
        assert result["subsections"][1] == {
            "id": "2.1",
            "title": "Colors",
            "parent_section": "Visual Identity",
        }

    @pytest.mark.asyncio
    async def test_search(self, server):
        result = await call(server, "search_brand_content", query="  palette ", max_results=3)

        assert result["query"] == "palette"
        assert result["count"] == 1
        assert result["results"][0]["subsection_id"] == "2.1"

    @pytest.mark.asyncio
    async def test_search_rejects_empty_query(self, server):
        result = await call(server, "search_brand_content", query="   ")
        assert result["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_refresh(self, server):
        result = await call(server, "refresh_brand_content")

        assert result["success"] is True
        assert result["source"] == "live"
        assert "SODAX Brand Bible refreshed at" in result["message"]


# =============================================================================
# Glossary tools
# =============================================================================


class TestGlossaryTools:
    @pytest.mark.asyncio
    async def test_overview(self, server):
        result = await call(server, "get_glossary_overview")

        assert result["term_count"] == 3
        assert result["concept_count"] == 1
        assert result["component_count"] == 2
        assert result["all_tags"] == ["hub", "liquidity", "solver"]

    @pytest.mark.asyncio
    async def test_list_by_category(self, server):
        result = await call(server, "list_glossary_terms", category="components")

        assert [t["title"] for t in result["terms"]] == ["Solver", "Hub"]

    @pytest.mark.asyncio
    async def test_invalid_category(self, server):
        result = await call(server, "list_glossary_terms", category="widgets")
        assert result["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_get_term_exact_then_partial(self, server):
        exact = await call(server, "get_glossary_term", term="solver")
        partial = await call(server, "get_glossary_term", term="liquid")
        missing = await call(server, "get_glossary_term", term="vault")

        assert exact["title"] == "Solver"
        assert partial["title"] == "Cross-network liquidity"
        assert missing["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_search(self, server):
        result = await call(server, "search_glossary", query="solver")

        assert result["results"][0]["title"] == "Solver"

    @pytest.mark.asyncio
    async def test_terms_by_tag(self, server):
        result = await call(server, "get_terms_by_tag", tag="liquidity")

        assert [t["title"] for t in result["terms"]] == ["Cross-network liquidity", "Solver"]

    @pytest.mark.asyncio
    async def test_translate(self, server):
        result = await call(server, "translate_term", term="Cross-network liquidity")

        assert result["technical_definition"] == "Liquidity shared cross-network by the protocol."
        assert result["simple_explanation"] == (
            "available funds shared across multiple blockchains by the system."
        )
        assert result["related_terms"] == ["Solver"]


# =============================================================================
# Stats tools
# =============================================================================


class TestStatsTools:
    @pytest.mark.asyncio
    async def test_overview(self, server):
        result = await call(server, "get_stats_overview")

        assert result["network_count"] == 3
        assert result["partner_count"] == 2
        assert result["total_supply"] == "1500000000"
        assert result["recent_intents_count"] == 42
        assert result["unavailable"] == []

    @pytest.mark.asyncio
    async def test_partner_failure(self, test_config):
        server = make_server(test_config, api=stats_handler({"/v1/be/partners"}))

        overview = await call(server, "get_stats_overview")
        partners = await call(server, "get_partners")

        assert overview["partner_count"] == 0
        assert overview["network_count"] == 3
        assert overview["unavailable"] == ["partners"]
        assert partners == {"partners": [], "count": 0}

    @pytest.mark.asyncio
    async def test_listings(self, server):
        networks = await call(server, "get_networks")
        supply = await call(server, "get_token_supply")
        assets = await call(server, "get_money_market_assets")
        activity = await call(server, "get_recent_activity")

        assert networks["networks"][0] == {"id": "sonic", "name": "Sonic"}
        assert supply["circulating_supply"] == "600000000"
        assert assets["assets"][0]["symbol"] == "USDC"
        assert activity == {"recent_intents_count": 42}

    @pytest.mark.asyncio
    async def test_total_outage_serves_defaults(self, test_config):
        server = make_server(test_config, api=lambda r: httpx.Response(503))

        overview = await call(server, "get_stats_overview")
        refresh = await call(server, "refresh_stats")

        assert overview["source"] == "fallback"
        assert len(overview["unavailable"]) == 5
        assert refresh["success"] is False
        assert "default content" in refresh["message"]


# =============================================================================
# Fallback, cache status and errors
# =============================================================================


class TestWithoutNotion:
    @pytest.mark.asyncio
    async def test_brand_and_glossary_use_bundled_content(self):
        server = make_server(Config())

        brand = await call(server, "get_brand_overview")
        glossary = await call(server, "get_glossary_overview")

        assert brand["source"] == "fallback"
        assert brand["section_count"] == 6
        assert glossary["source"] == "fallback"
        assert glossary["term_count"] == 7

    @pytest.mark.asyncio
    async def test_refresh_reports_failure(self):
        server = make_server(Config())

        result = await call(server, "refresh_glossary")

        assert result["success"] is False
        assert "NOTION_TOKEN" in result["message"]


class TestCacheStatus:
    @pytest.mark.asyncio
    async def test_status_after_queries(self, server):
        await call(server, "get_brand_overview")

        result = await call(server, "get_cache_status")

        assert result["brand"]["cached"] is True
        assert result["brand"]["source"] == "live"
        assert result["glossary"]["cached"] is False
        assert set(result["statistics"]) == {"brand", "glossary", "stats"}
        assert result["feature_flags"]["graceful_degradation"] is True

    @pytest.mark.asyncio
    async def test_warm_primes_every_cache(self, server):
        await server._services.warm()

        status = server._services.cache_status()

        assert all(status[name]["cached"] for name in ("brand", "glossary", "stats"))


class TestErrors:
    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal_error(self, server, monkeypatch):
        broken = AsyncMock(side_effect=RuntimeError("boom"))
        monkeypatch.setattr(server._services.brand, "lookup", broken)

        result = await call(server, "get_brand_section", section_id="1")

        assert result == {
            "error": "internal_error",
            "message": "An unexpected error occurred. Check server logs.",
        }

    @pytest.mark.asyncio
    async def test_package_error_uses_safe_message(self, test_config):
        from marketing_mcp.feature_flags import FeatureFlags

        server = make_server(test_config, notion=lambda r: httpx.Response(503))
        for manager in server._services.managers.values():
            manager._flags = FeatureFlags(graceful_degradation=False, static_fallback=False)

        result = await call(server, "get_brand_overview")

        assert result["error"] == "upstreamerror"
        assert "Serving cached content" in result["message"]


class TestHealth:
    def test_health_route(self, server):
        client = TestClient(server.streamable_http_app())

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert set(body["domains"]) == {"brand", "glossary", "stats"}
