"""Glossary queries over the current glossary snapshot."""

from __future__ import annotations

from typing import Any, Optional

from ..models import Glossary, GlossaryTerm, RefreshResult, TermCategory, Translation
from ..search import filter_by_tag, related_terms, search_terms, simplify
from ..snapshots import SnapshotManager


class GlossaryService:
    def __init__(self, manager: SnapshotManager[Glossary]) -> None:
        self.manager = manager

    async def _terms(self) -> tuple[GlossaryTerm, ...]:
        return (await self.manager.get_snapshot()).payload.terms

    async def overview(self) -> dict[str, Any]:
        snapshot = await self.manager.get_snapshot()
        terms = snapshot.payload.terms
        concepts = sum(1 for t in terms if t.category == TermCategory.CONCEPT)
        return {
            "title": snapshot.title,
            "last_updated": snapshot.fetched_at.isoformat(),
            "source": snapshot.source,
            "term_count": len(terms),
            "concept_count": concepts,
            "component_count": len(terms) - concepts,
            "all_tags": sorted({tag for t in terms for tag in t.tags}),
            "categories": [c.value for c in TermCategory],
        }

    async def list_terms(self, category: Optional[TermCategory] = None) -> list[GlossaryTerm]:
        return [t for t in await self._terms() if category is None or t.category == category]

    async def get_term(self, title: str) -> Optional[GlossaryTerm]:
        """Exact case-insensitive title match, else first substring match."""
        terms = await self._terms()
        needle = title.strip().lower()
        if not needle:
            return None
        for term in terms:
            if term.title.lower() == needle:
                return term
        for term in terms:
            if needle in term.title.lower():
                return term
        return None

    async def search(
        self, query: str, category: Optional[TermCategory] = None
    ) -> list[GlossaryTerm]:
        return search_terms(await self._terms(), query, category)

    async def terms_by_tag(
        self, tag: str, category: Optional[TermCategory] = None
    ) -> list[GlossaryTerm]:
        return filter_by_tag(await self._terms(), tag, category)

    async def translate(self, title: str) -> Optional[Translation]:
        term = await self.get_term(title)
        if term is None:
            return None
        return Translation(
            term=term.title,
            category=term.category,
            technical_definition=term.summary,
            simple_explanation=simplify(term.summary),
            related_terms=tuple(related_terms(term, await self._terms())),
        )

    async def refresh(self) -> RefreshResult:
        return await self.manager.refresh()

    def cache_status(self) -> dict[str, Any]:
        return self.manager.status()
