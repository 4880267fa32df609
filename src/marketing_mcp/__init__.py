"""SODAX Marketing MCP Server - brand, glossary and stats for AI assistants.

This package provides an MCP (Model Context Protocol) server that exposes
SODAX marketing knowledge to Claude and other MCP clients.

Features:
    - Brand bible sections and subsections from Notion
    - Technical glossary with keyword search and plain-language translation
    - Live marketing stats from the SODAX backend API
    - TTL snapshot caching with stale and default content fallback

Usage:
    python -m marketing_mcp
"""

__version__ = "1.0.0"

from .errors import (
    MarketingMCPError,
    ConfigurationError,
    ValidationError,
    UpstreamError,
    CircuitOpenError,
)
from .config import Config
from .feature_flags import FeatureFlags, get_feature_flags, reset_feature_flags
from .oplog import setup_logging
from .server import Services, create_server

__all__ = [
    "__version__",
    "MarketingMCPError",
    "ConfigurationError",
    "ValidationError",
    "UpstreamError",
    "CircuitOpenError",
    "Config",
    "FeatureFlags",
    "get_feature_flags",
    "reset_feature_flags",
    "setup_logging",
    "Services",
    "create_server",
]
