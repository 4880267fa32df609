"""SODAX marketing MCP server.

Exposes brand bible, technical glossary and live marketing stats tools.
Each tool is a thin wrapper over a query service; all tools return JSON
strings and report failures as ``{"error": ..., "message": ...}``.
"""

from __future__ import annotations

import contextlib
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import httpx
from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from . import __version__
from .cache import CacheManager, SnapshotCache
from .config import Config
from .errors import ConfigurationError, MarketingMCPError, ValidationError
from .feature_flags import get_feature_flags
from .notion import NotionClient
from .services import BrandService, GlossaryService, StatsService
from .snapshots import SnapshotManager
from .sources import BrandSource, ContentSource, GlossarySource, StatsSource
from .validation import (
    sanitize_for_log,
    validate_category,
    validate_limit,
    validate_query,
    validate_section_id,
    validate_text,
)

logger = logging.getLogger(__name__)

INSTRUCTIONS = """\
SODAX marketing knowledge: the brand bible (voice, tone, visual identity,
messaging), the technical glossary (system concepts and components) and
live marketing stats (networks, partners, token supply, money market).

Start with get_brand_overview, get_glossary_overview or get_stats_overview.
Content is cached for a few minutes; use the refresh tools after editing
the source pages. Use translate_term to turn technical language into
plain-language marketing copy."""


# =============================================================================
# Service wiring
# =============================================================================


@dataclass
class Services:
    """Query services plus the caches and sources behind them."""

    brand: BrandService
    glossary: GlossaryService
    stats: StatsService
    caches: CacheManager

    @property
    def managers(self) -> dict[str, SnapshotManager[Any]]:
        return {
            "brand": self.brand.manager,
            "glossary": self.glossary.manager,
            "stats": self.stats.manager,
        }

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        notion_transport: Optional[httpx.AsyncBaseTransport] = None,
        api_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> Services:
        notion = NotionClient(config, transport=notion_transport)
        caches = CacheManager()

        def manage(source: ContentSource[Any], ttl: float) -> SnapshotManager[Any]:
            cache: SnapshotCache[Any] = SnapshotCache(
                ttl_seconds=ttl,
                fallback_ttl_seconds=min(config.fallback_cache_ttl, ttl),
                name=source.name,
            )
            caches.register(source.name, cache)
            return SnapshotManager(source, cache)

        return cls(
            brand=BrandService(
                manage(BrandSource(notion, config.brand_page_id), config.brand_cache_ttl)
            ),
            glossary=GlossaryService(
                manage(
                    GlossarySource(
                        notion,
                        config.glossary_concepts_source_id,
                        config.glossary_components_source_id,
                    ),
                    config.glossary_cache_ttl,
                )
            ),
            stats=StatsService(
                manage(
                    StatsSource.from_config(config, transport=api_transport),
                    config.stats_cache_ttl,
                )
            ),
            caches=caches,
        )

    async def warm(self) -> None:
        """Load every domain once so the first queries hit the cache."""
        for name, manager in self.managers.items():
            try:
                snapshot = await manager.get_snapshot()
            except MarketingMCPError as e:
                logger.warning("Warm start failed", extra={"domain": name, "error": str(e)})
                continue
            logger.info("Warm start complete", extra={"domain": name, "source": snapshot.source})

    async def aclose(self) -> None:
        for manager in self.managers.values():
            await manager.source.aclose()

    def cache_status(self) -> dict[str, Any]:
        status: dict[str, Any] = {
            name: manager.status() for name, manager in self.managers.items()
        }
        status["statistics"] = self.caches.get_all_stats()
        status["feature_flags"] = get_feature_flags().to_dict()
        return status


# =============================================================================
# Response helpers
# =============================================================================


def _error(code: str, message: str, **extra: Any) -> dict[str, Any]:
    response: dict[str, Any] = {"error": code, "message": message}
    response.update(extra)
    return response


async def _respond(
    tool: str,
    arguments: dict[str, Any],
    run: Callable[[], Awaitable[Any]],
) -> str:
    """Run a tool body and serialize its result or error as JSON."""
    try:
        result = await run()
    except ValidationError as e:
        logger.warning(
            "Validation failed",
            extra={"tool": tool, "error": str(e), "arguments": sanitize_for_log(arguments)},
        )
        result = _error("validation_error", str(e))
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"tool": tool, "error": str(e)})
        result = _error(
            "configuration_error",
            "Marketing MCP is not properly configured. Check server settings.",
        )
    except MarketingMCPError as e:
        logger.error(
            "MCP error",
            extra={"tool": tool, "error_type": type(e).__name__, "error": str(e)},
        )
        result = _error(type(e).__name__.lower(), e.safe_message)
    except Exception as e:
        logger.exception("Internal error", extra={"tool": tool, "error_type": type(e).__name__})
        result = _error("internal_error", "An unexpected error occurred. Check server logs.")
    return json.dumps(result, default=str)


def _listing(key: str, items: list[Any]) -> dict[str, Any]:
    return {key: [item.to_dict() for item in items], "count": len(items)}


# =============================================================================
# Server
# =============================================================================


def create_server(
    config: Optional[Config] = None,
    services: Optional[Services] = None,
) -> FastMCP:
    """Create and configure the marketing MCP server."""
    if services is None:
        services = Services.from_config(config or Config.load())

    @contextlib.asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[Services]:
        if get_feature_flags().warm_start:
            await services.warm()
        try:
            yield services
        finally:
            await services.aclose()

    server = FastMCP("marketing-mcp", instructions=INSTRUCTIONS, lifespan=lifespan)
    server._services = services

    brand = services.brand
    glossary = services.glossary
    stats = services.stats

    # ------------------------------------------------------------------
    # Brand bible
    # ------------------------------------------------------------------
    @server.tool()
    async def get_brand_overview() -> str:
        """Get an overview of the SODAX brand bible: title, last update and
        the list of sections with their subsection counts."""
        return await _respond("get_brand_overview", {}, brand.overview)

    @server.tool()
    async def get_brand_section(section_id: str) -> str:
        """Get the full content of a brand bible section by id (e.g. "2"),
        or of a subsection (e.g. "2.1")."""

        async def run() -> dict[str, Any]:
            item_id = validate_section_id(section_id)
            item = await brand.lookup(item_id)
            if item is None:
                sections = await brand.list_sections()
                return _error(
                    "not_found",
                    f"Section {item_id} not found",
                    available_sections=[{"id": s.id, "title": s.title} for s in sections],
                )
            return item.to_dict()

        return await _respond("get_brand_section", {"section_id": section_id}, run)

    @server.tool()
    async def get_brand_subsection(subsection_id: str) -> str:
        """Get a brand bible subsection by id (e.g. "3.1")."""

        async def run() -> dict[str, Any]:
            item_id = validate_section_id(subsection_id)
            if "." not in item_id:
                raise ValidationError(
                    f"Invalid subsection id: {item_id!r}. Use the form '3.1'."
                )
            sub = await brand.get_subsection(item_id)
            if sub is None:
                return _error(
                    "not_found",
                    f"Subsection {item_id} not found. Use list_brand_subsections.",
                )
            return sub.to_dict()

        return await _respond("get_brand_subsection", {"subsection_id": subsection_id}, run)

    @server.tool()
    async def list_brand_subsections() -> str:
        """List every brand bible subsection with its id and parent section."""

        async def run() -> dict[str, Any]:
            subsections = await brand.list_subsections()
            return {"subsections": subsections, "count": len(subsections)}

        return await _respond("list_brand_subsections", {}, run)

    @server.tool()
    async def search_brand_content(query: str, max_results: int = 5) -> str:
        """Search the brand bible by keyword. Returns matching sections and
        subsections ranked by relevance, each with a short snippet."""

        async def run() -> dict[str, Any]:
            q = validate_query(query)
            hits = await brand.search(q, validate_limit(max_results))
            return {"query": q, **_listing("results", hits)}

        return await _respond(
            "search_brand_content", {"query": query, "max_results": max_results}, run
        )

    @server.tool()
    async def refresh_brand_content() -> str:
        """Re-fetch the brand bible from Notion, bypassing the cache."""

        async def run() -> dict[str, Any]:
            return (await brand.refresh()).to_dict()

        return await _respond("refresh_brand_content", {}, run)

    # ------------------------------------------------------------------
    # Technical glossary
    # ------------------------------------------------------------------
    @server.tool()
    async def get_glossary_overview() -> str:
        """Get an overview of the SODAX technical glossary: term counts per
        category and every tag in use."""
        return await _respond("get_glossary_overview", {}, glossary.overview)

    @server.tool()
    async def list_glossary_terms(category: Optional[str] = None) -> str:
        """List glossary terms, optionally only "concept" or "component"."""

        async def run() -> dict[str, Any]:
            terms = await glossary.list_terms(validate_category(category))
            return _listing("terms", terms)

        return await _respond("list_glossary_terms", {"category": category}, run)

    @server.tool()
    async def get_glossary_term(term: str) -> str:
        """Look up a glossary term by title (exact match first, then partial)."""

        async def run() -> dict[str, Any]:
            title = validate_text(term, "term")
            found = await glossary.get_term(title)
            if found is None:
                return _error(
                    "not_found",
                    f"Term {title!r} not found. Try search_glossary.",
                )
            return found.to_dict()

        return await _respond("get_glossary_term", {"term": term}, run)

    @server.tool()
    async def search_glossary(query: str, category: Optional[str] = None) -> str:
        """Search glossary titles, tags and summaries by keyword, best match
        first. Optionally restrict to "concept" or "component"."""

        async def run() -> dict[str, Any]:
            q = validate_query(query)
            terms = await glossary.search(q, validate_category(category))
            return {"query": q, **_listing("results", terms)}

        return await _respond("search_glossary", {"query": query, "category": category}, run)

    @server.tool()
    async def get_terms_by_tag(tag: str, category: Optional[str] = None) -> str:
        """List glossary terms with a tag containing the given text."""

        async def run() -> dict[str, Any]:
            t = validate_text(tag, "tag")
            terms = await glossary.terms_by_tag(t, validate_category(category))
            return {"tag": t, **_listing("terms", terms)}

        return await _respond("get_terms_by_tag", {"tag": tag, "category": category}, run)

    @server.tool()
    async def translate_term(term: str) -> str:
        """Explain a technical term in plain language for marketing copy,
        with its technical definition and related terms."""

        async def run() -> dict[str, Any]:
            title = validate_text(term, "term")
            translation = await glossary.translate(title)
            if translation is None:
                return _error(
                    "not_found",
                    f"Term {title!r} not found. Try search_glossary.",
                )
            return translation.to_dict()

        return await _respond("translate_term", {"term": term}, run)

    @server.tool()
    async def refresh_glossary() -> str:
        """Re-fetch the glossary from Notion, bypassing the cache."""

        async def run() -> dict[str, Any]:
            return (await glossary.refresh()).to_dict()

        return await _respond("refresh_glossary", {}, run)

    # ------------------------------------------------------------------
    # Marketing stats
    # ------------------------------------------------------------------
    @server.tool()
    async def get_stats_overview() -> str:
        """Get headline SODAX stats: network and partner counts, token
        supply, money market asset count and recent intents."""
        return await _respond("get_stats_overview", {}, stats.overview)

    @server.tool()
    async def get_networks() -> str:
        """List the blockchain networks integrated with SODAX."""

        async def run() -> dict[str, Any]:
            return _listing("networks", await stats.networks())

        return await _respond("get_networks", {}, run)

    @server.tool()
    async def get_partners() -> str:
        """List partner addresses integrated with SODAX."""

        async def run() -> dict[str, Any]:
            return _listing("partners", await stats.partners())

        return await _respond("get_partners", {}, run)

    @server.tool()
    async def get_token_supply() -> str:
        """Get SODA token supply: total, circulating, locked and DAO fund."""

        async def run() -> dict[str, Any]:
            return (await stats.token_supply()).to_dict()

        return await _respond("get_token_supply", {}, run)

    @server.tool()
    async def get_money_market_assets() -> str:
        """List SODAX money market assets with supply and borrow totals."""

        async def run() -> dict[str, Any]:
            return _listing("assets", await stats.money_market_assets())

        return await _respond("get_money_market_assets", {}, run)

    @server.tool()
    async def get_recent_activity() -> str:
        """Get the number of recent solver intents on SODAX."""
        return await _respond("get_recent_activity", {}, stats.recent_activity)

    @server.tool()
    async def refresh_stats() -> str:
        """Re-fetch marketing stats from the SODAX API, bypassing the cache."""

        async def run() -> dict[str, Any]:
            return (await stats.refresh()).to_dict()

        return await _respond("refresh_stats", {}, run)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    @server.tool()
    async def get_cache_status() -> str:
        """Show when each content domain was last loaded, where it came from
        (live or fallback) and when it expires."""

        async def run() -> dict[str, Any]:
            return services.cache_status()

        return await _respond("get_cache_status", {}, run)

    @server.custom_route("/health", methods=["GET"])
    async def health(request: Request) -> JSONResponse:
        domains = {name: m.status() for name, m in services.managers.items()}
        degraded = any(d["source"] == "fallback" for d in domains.values())
        return JSONResponse(
            {
                "status": "degraded" if degraded else "ok",
                "version": __version__,
                "domains": domains,
            }
        )

    return server
