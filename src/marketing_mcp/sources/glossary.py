"""Technical glossary source: two Notion data sources -> one term list."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from .. import fallback
from ..errors import MarketingMCPError
from ..models import FetchResult, Glossary, GlossaryTerm, TermCategory
from ..notion import NotionClient, page_to_row
from .base import ContentSource

logger = logging.getLogger(__name__)

# Column names tried in order; the first non-empty value wins
SUMMARY_KEYS = ("summary", "One-sentency summary", "One-sentence summary", "Summary", "Description")
TAG_KEYS = ("tags", "Tags", "Keywords")
OWNER_KEYS = ("owner", "Owner", "Owners")


def _first_value(row: dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return None


def _as_tags(value: Any) -> tuple[str, ...]:
    """Order-preserving, de-duplicated tag tuple from a list or CSV string."""
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    tags: list[str] = []
    for item in value:
        tag = str(item).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tuple(tags)


def _as_owner(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        value = next((item for item in value if item), None)
    if value is None:
        return None
    owner = str(value).strip()
    return owner or None


def normalize_rows(rows: list[dict[str, Any]], category: TermCategory) -> list[GlossaryTerm]:
    """Build terms from raw rows of one category.

    Rows without a title or summary are dropped. Later rows repeating an
    earlier title (case-insensitive) are dropped.
    """
    terms: list[GlossaryTerm] = []
    seen: set[str] = set()

    for row in rows:
        title = str(row.get("title") or "").strip()
        summary = str(_first_value(row, SUMMARY_KEYS) or "").strip()
        if not title or not summary:
            continue
        if title.lower() in seen:
            continue
        seen.add(title.lower())
        terms.append(
            GlossaryTerm(
                title=title,
                summary=summary,
                category=category,
                tags=_as_tags(_first_value(row, TAG_KEYS)),
                owner=_as_owner(_first_value(row, OWNER_KEYS)),
            )
        )

    return terms


def merge_terms(*groups: list[GlossaryTerm]) -> Glossary:
    """Concatenate term groups, keeping the first term for each title."""
    terms: list[GlossaryTerm] = []
    seen: set[str] = set()
    for group in groups:
        for term in group:
            key = term.title.lower()
            if key in seen:
                continue
            seen.add(key)
            terms.append(term)
    return Glossary(terms=tuple(terms))


class GlossarySource(ContentSource[Glossary]):
    """Glossary assembled from the concepts and components data sources."""

    name = "glossary"

    def __init__(
        self,
        notion: NotionClient,
        concepts_source_id: str,
        components_source_id: str,
    ) -> None:
        self._notion = notion
        self._source_ids = {
            TermCategory.CONCEPT: concepts_source_id,
            TermCategory.COMPONENT: components_source_id,
        }

    @property
    def title(self) -> str:
        return fallback.glossary_title()

    def default(self) -> Glossary:
        return fallback.default_glossary()

    async def aclose(self) -> None:
        await self._notion.aclose()

    async def fetch(self) -> FetchResult[dict[TermCategory, list[dict[str, Any]]]]:
        """Read raw rows from both data sources concurrently."""
        categories = list(self._source_ids)
        try:
            results = await asyncio.gather(
                *(self._notion.query_data_source(self._source_ids[c]) for c in categories)
            )
        except MarketingMCPError as e:
            logger.warning("Glossary fetch failed", extra={"error": str(e)})
            return FetchResult(data={}, error=str(e))

        return FetchResult(
            data={
                category: [page_to_row(page) for page in pages]
                for category, pages in zip(categories, results)
            }
        )

    async def load(self) -> FetchResult[Glossary]:
        fetched = await self.fetch()
        if not fetched.ok:
            return FetchResult(data=Glossary(), error=fetched.error)

        groups = {
            category: normalize_rows(rows, category) for category, rows in fetched.data.items()
        }
        glossary = merge_terms(*groups.values())
        logger.info(
            "Glossary loaded",
            extra={
                "concepts": len(groups.get(TermCategory.CONCEPT, [])),
                "components": len(groups.get(TermCategory.COMPONENT, [])),
            },
        )
        return FetchResult(data=glossary)
