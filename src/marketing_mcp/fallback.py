"""Bundled default content with in-memory caching.

Loads fallback.yaml from the package data/ directory. Uses
importlib.resources to locate the file within the installed package,
with MARKETING_DATA_DIR as an override for testing.
"""

from __future__ import annotations

import importlib.resources
import os
from pathlib import Path
from typing import Any

import yaml

from .models import (
    BrandContent,
    Glossary,
    GlossaryTerm,
    STATS_FIELDS,
    MarketingStats,
    Section,
    TermCategory,
)

FALLBACK_FILE = "fallback.yaml"

# ---------------------------------------------------------------------------
# Data directory resolution
# ---------------------------------------------------------------------------

_DATA_DIR: Path | None = None


def _find_data_dir() -> Path:
    """Locate the data/ directory (env override or installed package)."""
    global _DATA_DIR
    if _DATA_DIR is not None:
        return _DATA_DIR

    # 1. Explicit env override (for testing)
    env_path = os.environ.get("MARKETING_DATA_DIR")
    if env_path:
        p = Path(env_path)
        if p.is_dir():
            _DATA_DIR = p
            return _DATA_DIR

    # 2. importlib.resources (package data ships next to this module)
    try:
        ref = importlib.resources.files("marketing_mcp") / "data"
        p = Path(str(ref))
        if p.is_dir():
            _DATA_DIR = p
            return _DATA_DIR
    except (TypeError, FileNotFoundError):
        pass

    raise FileNotFoundError(
        "Cannot find marketing-mcp data directory. "
        "Set MARKETING_DATA_DIR or install the package."
    )


# ---------------------------------------------------------------------------
# YAML cache
# ---------------------------------------------------------------------------

_cache: dict[str, Any] = {}


def _load_fallback() -> dict[str, Any]:
    if FALLBACK_FILE in _cache:
        return _cache[FALLBACK_FILE]

    full_path = _find_data_dir() / FALLBACK_FILE
    data: dict[str, Any] = {}
    if full_path.exists():
        with open(full_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    _cache[FALLBACK_FILE] = data
    return data


def clear_cache() -> None:
    """Clear the in-memory YAML cache."""
    global _DATA_DIR
    _cache.clear()
    _DATA_DIR = None


# ---------------------------------------------------------------------------
# Default payloads
# ---------------------------------------------------------------------------

def brand_title() -> str:
    return _load_fallback().get("brand", {}).get("title", "SODAX Brand Bible")


def glossary_title() -> str:
    return _load_fallback().get("glossary", {}).get("title", "SODAX Technical Glossary")


def stats_title() -> str:
    return _load_fallback().get("stats", {}).get("title", "SODAX Marketing Stats")


def default_brand() -> BrandContent:
    """Placeholder sections pointing the reader at a refresh."""
    brand = _load_fallback().get("brand", {})
    template = brand.get("default_content", "Content for {title}.")
    sections = []
    for index, entry in enumerate(brand.get("sections") or [], start=1):
        title = str(entry.get("title", "")).strip()
        if not title:
            continue
        sections.append(
            Section(
                id=str(entry.get("id", index)),
                title=title,
                content=template.replace("{title}", title),
            )
        )
    return BrandContent(sections=tuple(sections))


def default_glossary() -> Glossary:
    """Core SODAX terms known without Notion access."""
    terms = []
    for entry in _load_fallback().get("glossary", {}).get("terms") or []:
        title = str(entry.get("title", "")).strip()
        summary = " ".join(str(entry.get("summary", "")).split())
        if not title or not summary:
            continue
        try:
            category = TermCategory(entry.get("category", "concept"))
        except ValueError:
            category = TermCategory.CONCEPT
        terms.append(
            GlossaryTerm(
                title=title,
                summary=summary,
                category=category,
                tags=tuple(str(tag) for tag in entry.get("tags") or []),
                owner=entry.get("owner"),
            )
        )
    return Glossary(terms=tuple(terms))


def default_stats() -> MarketingStats:
    """Empty stats; every field reads as unavailable."""
    return MarketingStats(unavailable=STATS_FIELDS)
