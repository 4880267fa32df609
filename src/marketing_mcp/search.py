"""Keyword scoring, snippets and term helpers over snapshot payloads.

Everything here is a pure function of its arguments. Scoring is plain
substring matching with fixed weights; there is no index.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from .models import BrandContent, BrandSearchHit, GlossaryTerm, TermCategory

# Glossary weights
TITLE_WEIGHT = 10
TAG_WEIGHT = 5
SUMMARY_WEIGHT = 2
EXACT_TITLE_BONUS = 20

# Brand weights
BRAND_TITLE_WEIGHT = 10
BRAND_BODY_WEIGHT = 2
PHRASE_BONUS = 5

SNIPPET_LENGTH = 150
DEFAULT_MAX_RESULTS = 5
RELATED_LIMIT = 5

# Applied in order; earlier phrases win over later substrings
SIMPLIFICATIONS = (
    ("cross-network", "across multiple blockchains"),
    ("execution path", "route"),
    ("orchestrated", "managed"),
    ("decentralized exchange", "trading platform"),
    ("liquidity", "available funds"),
    ("settlement", "final processing"),
    ("interoperability", "ability to work together"),
    ("protocol", "system"),
)

_SIMPLIFY_PATTERNS = tuple(
    (re.compile(re.escape(phrase), re.IGNORECASE), replacement)
    for phrase, replacement in SIMPLIFICATIONS
)


def tokenize(query: str) -> list[str]:
    """Lowercase, whitespace-separated query words."""
    return query.lower().split()


# =============================================================================
# Glossary
# =============================================================================


def score_term(term: GlossaryTerm, words: list[str], query: str) -> int:
    title = term.title.lower()
    summary = term.summary.lower()
    tags = [tag.lower() for tag in term.tags]

    score = 0
    for word in words:
        if word in title:
            score += TITLE_WEIGHT
        if any(word in tag for tag in tags):
            score += TAG_WEIGHT
        if word in summary:
            score += SUMMARY_WEIGHT
    if title == query.strip().lower():
        score += EXACT_TITLE_BONUS
    return score


def search_terms(
    terms: Iterable[GlossaryTerm],
    query: str,
    category: Optional[TermCategory] = None,
) -> list[GlossaryTerm]:
    """Terms matching any query word, best first."""
    words = tokenize(query)
    if not words:
        return []

    scored = []
    for term in terms:
        if category is not None and term.category != category:
            continue
        score = score_term(term, words, query)
        if score > 0:
            scored.append((score, term))

    # sorted() is stable: equal scores keep snapshot order
    scored = sorted(scored, key=lambda item: item[0], reverse=True)
    return [term for _, term in scored]


def filter_by_tag(
    terms: Iterable[GlossaryTerm],
    tag: str,
    category: Optional[TermCategory] = None,
) -> list[GlossaryTerm]:
    """Terms with a tag containing ``tag`` (case-insensitive)."""
    needle = tag.strip().lower()
    if not needle:
        return []
    return [
        term
        for term in terms
        if (category is None or term.category == category)
        and any(needle in t.lower() for t in term.tags)
    ]


def related_terms(
    term: GlossaryTerm,
    terms: Iterable[GlossaryTerm],
    limit: int = RELATED_LIMIT,
) -> list[str]:
    """Titles of other terms sharing at least one exact tag."""
    tags = set(term.tags)
    related: list[str] = []
    for other in terms:
        if other.title == term.title:
            continue
        if tags.intersection(other.tags):
            related.append(other.title)
            if len(related) >= limit:
                break
    return related


def simplify(text: str) -> str:
    """Replace technical phrases with plain-language equivalents."""
    for pattern, replacement in _SIMPLIFY_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


# =============================================================================
# Brand
# =============================================================================


def score_text(title: str, body: str, words: list[str]) -> int:
    title_l = title.lower()
    body_l = body.lower()

    score = 0
    for word in words:
        if word in title_l:
            score += BRAND_TITLE_WEIGHT
        if word in body_l:
            score += BRAND_BODY_WEIGHT
    if " ".join(words) in f"{title_l} {body_l}":
        score += PHRASE_BONUS
    return score


def extract_snippet(body: str, words: list[str], length: int = SNIPPET_LENGTH) -> str:
    """Window of ``length`` characters around the first query word found.

    Words are tried in query order. Truncated ends are marked with
    ``...``. Without a match the body's opening is returned.
    """
    lowered = body.lower()
    for word in words:
        index = lowered.find(word)
        if index == -1:
            continue
        start = max(0, index - length // 2)
        end = min(len(body), start + length)
        start = max(0, end - length)
        snippet = body[start:end].strip()
        if start > 0:
            snippet = "..." + snippet
        if end < len(body):
            snippet = snippet + "..."
        return snippet

    if len(body) > length:
        return body[:length].strip() + "..."
    return body


def search_brand(
    content: BrandContent,
    query: str,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[BrandSearchHit]:
    """Score every section and subsection; best ``max_results`` hits."""
    words = tokenize(query)
    if not words:
        return []

    hits: list[BrandSearchHit] = []
    for section in content.sections:
        score = score_text(section.title, section.content, words)
        if score > 0:
            hits.append(
                BrandSearchHit(
                    section_id=section.id,
                    section_title=section.title,
                    matched_content=extract_snippet(section.content, words),
                    relevance_score=score,
                )
            )
        for sub in section.subsections:
            score = score_text(sub.title, sub.content, words)
            if score > 0:
                hits.append(
                    BrandSearchHit(
                        section_id=section.id,
                        section_title=section.title,
                        subsection_id=sub.id,
                        subsection_title=sub.title,
                        matched_content=extract_snippet(sub.content, words),
                        relevance_score=score,
                    )
                )

    hits.sort(key=lambda hit: hit.relevance_score, reverse=True)
    return hits[:max_results]
