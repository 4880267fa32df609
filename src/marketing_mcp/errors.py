"""Custom exception hierarchy for the marketing MCP server.

Exception messages carry a client-safe variant. Upstream URLs, tokens and
response bodies belong in logs only.
"""

from __future__ import annotations


class MarketingMCPError(Exception):
    """Base exception for the marketing MCP server.

    All custom exceptions inherit from this class, allowing callers to
    catch all package errors with a single except clause.
    """

    def __init__(self, message: str, *, safe_message: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Full error message (for logging)
            safe_message: Client-safe message (no internal details)
        """
        super().__init__(message)
        self._safe_message = safe_message or message

    @property
    def safe_message(self) -> str:
        """Return client-safe error message."""
        return self._safe_message


class ConfigurationError(MarketingMCPError):
    """Configuration or credential error.

    Raised when:
    - A Notion token or data source id is required but missing
    - Token file has insecure permissions
    - An upstream URL or numeric setting is invalid
    """

    pass


class ValidationError(MarketingMCPError):
    """Tool input validation failure.

    These errors describe input problems, not internal state, and are
    safe to return to clients verbatim.
    """

    pass


class UpstreamError(MarketingMCPError):
    """Content provider or analytics API failure.

    Raised when:
    - Cannot connect to the upstream service
    - Request timed out
    - Upstream answered with a 4xx/5xx status or an unparseable body
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(
            message,
            safe_message="Upstream content source unavailable. Serving cached content.",
        )
        self.status_code = status_code


class CircuitOpenError(UpstreamError):
    """Upstream marked unhealthy; request rejected without network I/O."""

    pass
