"""Brand bible source: Notion page blocks -> sections and subsections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .. import fallback
from ..errors import MarketingMCPError
from ..models import BlockKind, BrandContent, ContentBlock, FetchResult, Section, Subsection
from ..notion import NotionClient, block_to_content
from .base import ContentSource

logger = logging.getLogger(__name__)


@dataclass
class _SubsectionBuilder:
    id: str
    title: str
    parts: list[str] = field(default_factory=list)


@dataclass
class _SectionBuilder:
    id: str
    title: str
    parts: list[str] = field(default_factory=list)
    subsections: list[_SubsectionBuilder] = field(default_factory=list)

    def build(self) -> Section:
        return Section(
            id=self.id,
            title=self.title,
            content="\n\n".join(self.parts),
            subsections=tuple(
                Subsection(
                    id=sub.id,
                    parent_id=self.id,
                    title=sub.title,
                    content="\n\n".join(sub.parts),
                )
                for sub in self.subsections
            ),
        )


def normalize_blocks(blocks: list[ContentBlock]) -> BrandContent:
    """Fold an ordered block list into sections and subsections.

    Heading 1 opens a section numbered from 1; heading 2 opens a
    subsection ``<section>.<n>`` of the current section; heading 3 is
    bolded into the open body. Blocks before the first heading 1 and
    blocks without text are dropped.
    """
    sections: list[_SectionBuilder] = []
    current: _SectionBuilder | None = None
    current_sub: _SubsectionBuilder | None = None

    for block in blocks:
        text = block.text.strip()
        if not text:
            continue

        if block.kind == BlockKind.HEADING_1:
            current = _SectionBuilder(id=str(len(sections) + 1), title=text)
            sections.append(current)
            current_sub = None
            continue

        # Preamble before the first section
        if current is None:
            continue

        if block.kind == BlockKind.HEADING_2:
            current_sub = _SubsectionBuilder(
                id=f"{current.id}.{len(current.subsections) + 1}",
                title=text,
            )
            current.subsections.append(current_sub)
            continue

        if block.kind == BlockKind.HEADING_3:
            text = f"**{text}**"

        target = current_sub.parts if current_sub is not None else current.parts
        target.append(text)

    return BrandContent(sections=tuple(builder.build() for builder in sections))


class BrandSource(ContentSource[BrandContent]):
    """Brand bible read from a single Notion page."""

    name = "brand"

    def __init__(self, notion: NotionClient, page_id: str) -> None:
        self._notion = notion
        self._page_id = page_id

    @property
    def title(self) -> str:
        return fallback.brand_title()

    def default(self) -> BrandContent:
        return fallback.default_brand()

    async def aclose(self) -> None:
        await self._notion.aclose()

    async def fetch(self) -> FetchResult[list[ContentBlock]]:
        """Read the page's blocks in document order."""
        try:
            raw = await self._notion.list_block_children(self._page_id)
        except MarketingMCPError as e:
            logger.warning(
                "Brand page fetch failed",
                extra={"page_id": self._page_id, "error": str(e)},
            )
            return FetchResult(data=[], error=str(e))
        return FetchResult(data=[block_to_content(block) for block in raw])

    async def load(self) -> FetchResult[BrandContent]:
        fetched = await self.fetch()
        if not fetched.ok:
            return FetchResult(data=BrandContent(), error=fetched.error)

        content = normalize_blocks(fetched.data)
        if not content.sections:
            logger.warning(
                "Brand page contained no top-level headings",
                extra={"page_id": self._page_id, "blocks": len(fetched.data)},
            )
            return FetchResult(data=content, error="Brand page contained no sections")

        logger.info(
            "Brand content loaded",
            extra={
                "sections": len(content.sections),
                "subsections": sum(len(s.subsections) for s in content.sections),
            },
        )
        return FetchResult(data=content)
