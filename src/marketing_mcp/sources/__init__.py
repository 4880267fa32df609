"""Content source adapters.

Each source fetches one domain's raw content, normalizes it and returns
a FetchResult. Upstream failures are reported in the result, never raised.
"""

from .base import ContentSource
from .brand import BrandSource, normalize_blocks
from .glossary import GlossarySource, normalize_rows
from .stats import StatsSource, normalize_stats

__all__ = [
    "ContentSource",
    "BrandSource",
    "GlossarySource",
    "StatsSource",
    "normalize_blocks",
    "normalize_rows",
    "normalize_stats",
]
