"""Brand bible queries over the current brand snapshot."""

from __future__ import annotations

from typing import Any, Optional, Union

from ..models import BrandContent, BrandSearchHit, RefreshResult, Section, Subsection
from ..search import DEFAULT_MAX_RESULTS, search_brand
from ..snapshots import SnapshotManager


class BrandService:
    def __init__(self, manager: SnapshotManager[BrandContent]) -> None:
        self.manager = manager

    async def _content(self) -> BrandContent:
        return (await self.manager.get_snapshot()).payload

    async def overview(self) -> dict[str, Any]:
        snapshot = await self.manager.get_snapshot()
        sections = snapshot.payload.sections
        return {
            "title": snapshot.title,
            "last_updated": snapshot.fetched_at.isoformat(),
            "source": snapshot.source,
            "section_count": len(sections),
            "sections": [
                {
                    "id": section.id,
                    "title": section.title,
                    "subsection_count": len(section.subsections),
                }
                for section in sections
            ],
        }

    async def list_sections(self) -> list[Section]:
        return list((await self._content()).sections)

    async def get_section(self, section_id: str) -> Optional[Section]:
        for section in (await self._content()).sections:
            if section.id == section_id:
                return section
        return None

    async def get_subsection(self, subsection_id: str) -> Optional[Subsection]:
        for section in (await self._content()).sections:
            for sub in section.subsections:
                if sub.id == subsection_id:
                    return sub
        return None

    async def lookup(self, item_id: str) -> Optional[Union[Section, Subsection]]:
        """Section for ``N``, subsection for ``N.M``."""
        if "." in item_id:
            return await self.get_subsection(item_id)
        return await self.get_section(item_id)

    async def list_subsections(self) -> list[dict[str, str]]:
        return [
            {"id": sub.id, "title": sub.title, "parent_section": section.title}
            for section in (await self._content()).sections
            for sub in section.subsections
        ]

    async def search(
        self, query: str, max_results: int = DEFAULT_MAX_RESULTS
    ) -> list[BrandSearchHit]:
        return search_brand(await self._content(), query, max_results)

    async def refresh(self) -> RefreshResult:
        return await self.manager.refresh()

    def cache_status(self) -> dict[str, Any]:
        return self.manager.status()
