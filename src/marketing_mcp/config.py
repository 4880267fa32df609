"""Configuration management for the marketing MCP server.

Security design:
- Notion token stored as SecretStr (never logged)
- Token file permissions enforced (600)
- Config objects cannot be pickled
- Upstream URLs restricted to http/https
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_NOTION_API_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2025-09-03"
DEFAULT_BRAND_PAGE_ID = "1f68c0bdbc7480758727e00a21ce8d9d"
DEFAULT_SODAX_API_URL = "https://api.sodax.com/v1/be"

# Snapshot lifetime shared by all three domains
DEFAULT_CACHE_TTL = 5 * 60.0


# =============================================================================
# Environment Variable Parsing Helpers
# =============================================================================


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer environment variable with fallback to default.

    Logs a warning if the value is invalid instead of crashing.
    """
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(
            f"Invalid integer value for {name}: '{value}', using default {default}"
        )
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float environment variable with fallback to default.

    Logs a warning if the value is invalid instead of crashing.
    """
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(
            f"Invalid float value for {name}: '{value}', using default {default}"
        )
        return default


# =============================================================================
# Secret String Type
# =============================================================================


class SecretStr:
    """String type that hides its value in logs and repr."""

    def __init__(self, value: str) -> None:
        self._value = value

    def get_secret_value(self) -> str:
        """Get the actual secret value."""
        return self._value

    def __repr__(self) -> str:
        return "SecretStr('***')"

    def __str__(self) -> str:
        return "***"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretStr):
            return self._value == other._value
        return False

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)

    def __len__(self) -> int:
        return len(self._value)


# =============================================================================
# Configuration Class
# =============================================================================


@dataclass(frozen=True)
class Config:
    """Immutable server configuration.

    An empty notion_token is allowed: brand content and glossary are then
    served from the bundled fallback data until a token is configured.
    """

    notion_token: SecretStr = SecretStr("")
    notion_api_url: str = DEFAULT_NOTION_API_URL
    notion_version: str = DEFAULT_NOTION_VERSION
    brand_page_id: str = DEFAULT_BRAND_PAGE_ID
    glossary_concepts_source_id: str = ""
    glossary_components_source_id: str = ""
    sodax_api_url: str = DEFAULT_SODAX_API_URL

    notion_timeout_seconds: float = 30.0
    api_timeout_seconds: float = 15.0

    brand_cache_ttl: float = DEFAULT_CACHE_TTL
    glossary_cache_ttl: float = DEFAULT_CACHE_TTL
    stats_cache_ttl: float = DEFAULT_CACHE_TTL
    fallback_cache_ttl: float = 60.0

    # Network resilience
    max_retries: int = 2
    retry_base_delay: float = 0.5
    retry_max_delay: float = 10.0
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout: int = 60

    # Transport
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 3000

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Note: Uses object.__setattr__ because dataclass is frozen.
        """
        object.__setattr__(self, "notion_api_url", _validate_url(self.notion_api_url))
        object.__setattr__(self, "sodax_api_url", _validate_url(self.sodax_api_url))
        self._validate_values()

    def _validate_values(self) -> None:
        """Validate configuration values (called from __post_init__)."""
        for name in ("notion_timeout_seconds", "api_timeout_seconds"):
            value = getattr(self, name)
            if value < 1 or value > 300:
                raise ConfigurationError(f"{name} must be between 1 and 300")

        for name in (
            "brand_cache_ttl",
            "glossary_cache_ttl",
            "stats_cache_ttl",
            "fallback_cache_ttl",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")

        if self.max_retries < 0 or self.max_retries > 10:
            raise ConfigurationError("max_retries must be between 0 and 10")

        if self.transport not in ("stdio", "http"):
            raise ConfigurationError(
                f"Invalid transport: {self.transport}. Use stdio or http."
            )

        if self.port < 1 or self.port > 65535:
            raise ConfigurationError("port must be between 1 and 65535")

    @property
    def notion_configured(self) -> bool:
        """True when live Notion access is possible."""
        return bool(self.notion_token)

    def __repr__(self) -> str:
        """Safe repr that never includes token."""
        return (
            f"Config(notion_api_url={self.notion_api_url!r}, "
            f"sodax_api_url={self.sodax_api_url!r}, "
            f"notion_token={'***' if self.notion_token else 'unset'}, "
            f"transport={self.transport})"
        )

    def __str__(self) -> str:
        return self.__repr__()

    def __getstate__(self) -> None:
        """Prevent pickling to avoid credential serialization."""
        raise TypeError("Config cannot be pickled (contains secrets)")

    def __reduce__(self) -> None:  # type: ignore[override]
        """Prevent pickling via reduce."""
        raise TypeError("Config cannot be pickled (contains secrets)")

    @classmethod
    def load(cls) -> Config:
        """Load configuration from environment and files.

        Credential sources (precedence order):
        1. NOTION_TOKEN environment variable
        2. ~/.config/marketing-mcp/notion_token file
        3. .env file in working directory

        Returns:
            Config: Validated configuration

        Raises:
            ConfigurationError: If a value is invalid or the token file is
                world-readable
        """
        token = _load_token()
        if not token:
            logger.warning(
                "NOTION_TOKEN not set - brand content and glossary will use "
                "bundled fallback data"
            )

        return cls(
            notion_token=SecretStr(token or ""),
            notion_api_url=os.getenv("NOTION_API_URL", DEFAULT_NOTION_API_URL),
            notion_version=os.getenv("NOTION_VERSION", DEFAULT_NOTION_VERSION),
            brand_page_id=os.getenv("BRAND_PAGE_ID", DEFAULT_BRAND_PAGE_ID).strip(),
            glossary_concepts_source_id=os.getenv(
                "GLOSSARY_CONCEPTS_SOURCE_ID", ""
            ).strip(),
            glossary_components_source_id=os.getenv(
                "GLOSSARY_COMPONENTS_SOURCE_ID", ""
            ).strip(),
            sodax_api_url=os.getenv("SODAX_API_URL", DEFAULT_SODAX_API_URL),
            notion_timeout_seconds=_parse_float_env("MARKETING_NOTION_TIMEOUT", 30.0),
            api_timeout_seconds=_parse_float_env("MARKETING_API_TIMEOUT", 15.0),
            brand_cache_ttl=_parse_float_env("MARKETING_BRAND_TTL", DEFAULT_CACHE_TTL),
            glossary_cache_ttl=_parse_float_env(
                "MARKETING_GLOSSARY_TTL", DEFAULT_CACHE_TTL
            ),
            stats_cache_ttl=_parse_float_env("MARKETING_STATS_TTL", DEFAULT_CACHE_TTL),
            fallback_cache_ttl=_parse_float_env("MARKETING_FALLBACK_TTL", 60.0),
            max_retries=_parse_int_env("MARKETING_MAX_RETRIES", 2),
            retry_base_delay=_parse_float_env("MARKETING_RETRY_DELAY", 0.5),
            retry_max_delay=_parse_float_env("MARKETING_RETRY_MAX_DELAY", 10.0),
            circuit_breaker_threshold=_parse_int_env("MARKETING_CIRCUIT_THRESHOLD", 5),
            circuit_breaker_timeout=_parse_int_env("MARKETING_CIRCUIT_TIMEOUT", 60),
            transport=os.getenv("MARKETING_TRANSPORT", "stdio").strip().lower(),
            host=os.getenv("MARKETING_HOST", "0.0.0.0"),
            port=_parse_int_env("MARKETING_PORT", 3000),
        )


# =============================================================================
# Token Loading
# =============================================================================


def _load_token() -> str | None:
    """Load the Notion token from available sources.

    Security: Token file permissions are enforced.
    """
    # 1. Environment variable (highest priority)
    token = os.getenv("NOTION_TOKEN")
    if token is not None:
        stripped = token.strip()
        if stripped:
            logger.debug("Loaded token from NOTION_TOKEN environment variable")
            return stripped
        # Non-empty but whitespace-only - treat as explicitly invalid
        if token:
            return None

    # 2. Config file
    config_file = Path.home() / ".config" / "marketing-mcp" / "notion_token"
    token = _load_token_file(config_file)
    if token:
        logger.debug("Loaded token from config file")
        return token

    # 3. .env file in current directory
    env_file = Path.cwd() / ".env"
    token = _load_token_from_env_file(env_file)
    if token:
        logger.debug("Loaded token from .env file")
        return token

    return None


def _load_token_file(path: Path) -> str | None:
    """Load token from file with permission check.

    Security: Refuses to load token if file permissions are too open.
    """
    if not path.exists():
        return None

    mode = path.stat().st_mode
    # Group or other access is refused (requires 600 or 400)
    if mode & (stat.S_IRGRP | stat.S_IROTH | stat.S_IWGRP | stat.S_IWOTH):
        logger.warning(
            "Token file has insecure permissions",
            extra={"path": str(path), "mode": oct(mode)},
        )
        raise ConfigurationError(
            f"Token file {path} has insecure permissions. Run: chmod 600 {path}"
        )

    try:
        token = path.read_text().strip()
        return token or None
    except OSError as e:
        logger.warning(f"Failed to read token file: {e}")
        return None


def _load_token_from_env_file(path: Path) -> str | None:
    """Load NOTION_TOKEN from a .env file."""
    if not path.exists():
        return None

    mode = path.stat().st_mode
    if mode & (stat.S_IROTH | stat.S_IWOTH):
        logger.warning(
            ".env file has insecure permissions (world-readable)",
            extra={"path": str(path), "mode": oct(mode)},
        )

    try:
        content = path.read_text()
    except OSError as e:
        logger.warning(f"Failed to read .env file: {e}")
        return None

    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("NOTION_TOKEN="):
            value = line.split("=", 1)[1].strip()
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            return value or None

    return None


# =============================================================================
# URL Validation
# =============================================================================


def _validate_url(url: str) -> str:
    """Validate and normalize an upstream base URL."""
    url = url.strip().rstrip("/")

    if not url:
        raise ConfigurationError("Upstream URL cannot be empty")

    parsed = urlparse(url)

    if parsed.scheme not in ("http", "https"):
        raise ConfigurationError(
            f"Invalid URL scheme: {parsed.scheme}. Use http or https."
        )

    if not parsed.netloc:
        raise ConfigurationError("Invalid URL: missing host")

    if parsed.scheme == "http" and parsed.hostname not in (
        "localhost",
        "127.0.0.1",
        "::1",
    ):
        logger.warning(
            "Using HTTP for non-local upstream - token sent in plaintext",
            extra={"url": url},
        )

    return url
