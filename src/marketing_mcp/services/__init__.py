"""Query services, one per content domain."""

from .brand import BrandService
from .glossary import GlossaryService
from .stats import StatsService

__all__ = ["BrandService", "GlossaryService", "StatsService"]
