"""Normalized content model shared by adapters, caches and services.

Every entity is a frozen dataclass. A snapshot payload is built once by a
normalizer and then only read; refreshing replaces the whole snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

SOURCE_LIVE = "live"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """Timestamped, immutable copy of normalized content for one domain."""

    title: str
    fetched_at: datetime
    payload: T
    source: str = SOURCE_LIVE

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Adapter output: data, or an explicit empty default plus the error."""

    data: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# =============================================================================
# Brand content
# =============================================================================


class BlockKind(Enum):
    """Provider-neutral block types produced by the brand adapter."""

    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    PARAGRAPH = "paragraph"
    LIST_ITEM = "list_item"
    QUOTE = "quote"
    CALLOUT = "callout"
    CODE = "code"
    CHECKLIST_ITEM = "checklist_item"
    DIVIDER = "divider"
    OTHER = "other"


@dataclass(frozen=True)
class ContentBlock:
    """A leaf block of the brand document in document order."""

    kind: BlockKind
    text: str = ""


@dataclass(frozen=True)
class Subsection:
    id: str
    parent_id: str
    title: str
    content: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "title": self.title,
            "content": self.content,
        }


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    content: str = ""
    subsections: tuple[Subsection, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "subsections": [sub.to_dict() for sub in self.subsections],
        }


@dataclass(frozen=True)
class BrandContent:
    sections: tuple[Section, ...] = ()


@dataclass(frozen=True)
class BrandSearchHit:
    section_id: str
    section_title: str
    matched_content: str
    relevance_score: int
    subsection_id: Optional[str] = None
    subsection_title: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "section_id": self.section_id,
            "section_title": self.section_title,
        }
        if self.subsection_id is not None:
            result["subsection_id"] = self.subsection_id
            result["subsection_title"] = self.subsection_title
        result["matched_content"] = self.matched_content
        result["relevance_score"] = self.relevance_score
        return result


# =============================================================================
# Glossary
# =============================================================================


class TermCategory(Enum):
    CONCEPT = "concept"
    COMPONENT = "component"


@dataclass(frozen=True)
class GlossaryTerm:
    title: str
    summary: str
    category: TermCategory
    tags: tuple[str, ...] = ()
    owner: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "title": self.title,
            "summary": self.summary,
            "tags": list(self.tags),
            "category": self.category.value,
        }
        if self.owner:
            result["owner"] = self.owner
        return result


@dataclass(frozen=True)
class Glossary:
    terms: tuple[GlossaryTerm, ...] = ()


@dataclass(frozen=True)
class Translation:
    term: str
    category: TermCategory
    technical_definition: str
    simple_explanation: str
    related_terms: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "category": self.category.value,
            "technical_definition": self.technical_definition,
            "simple_explanation": self.simple_explanation,
            "related_terms": list(self.related_terms),
        }


# =============================================================================
# Marketing stats
# =============================================================================


# Independently fetched stats fields, in fetch order
STATS_FIELDS = (
    "networks",
    "partners",
    "token_supply",
    "money_market_assets",
    "recent_intents_count",
)


@dataclass(frozen=True)
class NetworkInfo:
    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class PartnerInfo:
    address: str

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address}


@dataclass(frozen=True)
class TokenSupply:
    total_supply: str = "0"
    circulating_supply: str = "0"
    locked_supply: str = "0"
    dao_fund: Optional[str] = None
    block_number: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "total_supply": self.total_supply,
            "circulating_supply": self.circulating_supply,
            "locked_supply": self.locked_supply,
        }
        if self.dao_fund is not None:
            result["dao_fund"] = self.dao_fund
        if self.block_number is not None:
            result["block_number"] = self.block_number
        return result


@dataclass(frozen=True)
class MoneyMarketAsset:
    symbol: str
    reserve_address: str
    total_supplied: str
    total_borrowed: str
    total_suppliers: int = 0
    total_borrowers: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "reserve_address": self.reserve_address,
            "total_supplied": self.total_supplied,
            "total_borrowed": self.total_borrowed,
            "total_suppliers": self.total_suppliers,
            "total_borrowers": self.total_borrowers,
        }


@dataclass(frozen=True)
class MarketingStats:
    networks: tuple[NetworkInfo, ...] = ()
    partners: tuple[PartnerInfo, ...] = ()
    token_supply: TokenSupply = field(default_factory=TokenSupply)
    money_market_assets: tuple[MoneyMarketAsset, ...] = ()
    recent_intents_count: int = 0
    # Fields whose upstream read failed and hold their empty default
    unavailable: tuple[str, ...] = ()

    @property
    def network_count(self) -> int:
        return len(self.networks)

    @property
    def partner_count(self) -> int:
        return len(self.partners)


@dataclass(frozen=True)
class RefreshResult:
    success: bool
    message: str
    source: str = SOURCE_LIVE

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, "source": self.source}
