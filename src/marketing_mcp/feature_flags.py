"""Feature flags for the content fallback chain.

Enables/disables behaviors via environment variables without code changes.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureFlags:
    """Feature flag configuration.

    All flags are loaded from environment variables with FF_ prefix.

    Usage:
        flags = FeatureFlags.load()
        if flags.graceful_degradation:
            # serve the previous snapshot when a refresh fails
    """

    # Serve the last good snapshot when a refresh fails
    graceful_degradation: bool = True

    # Serve bundled default content when no snapshot exists yet
    static_fallback: bool = True

    # Prime every cache when the server starts
    warm_start: bool = False

    @classmethod
    def load(cls) -> "FeatureFlags":
        """Load feature flags from environment variables.

        Environment variables use FF_ prefix:
        - FF_GRACEFUL_DEGRADATION=false
        - FF_STATIC_FALLBACK=false
        - FF_WARM_START=true
        """
        def parse_bool(name: str, default: bool) -> bool:
            env_name = f"FF_{name.upper()}"
            value = os.environ.get(env_name, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes", "on")

        flags = cls(
            graceful_degradation=parse_bool("graceful_degradation", True),
            static_fallback=parse_bool("static_fallback", True),
            warm_start=parse_bool("warm_start", False),
        )

        enabled = [name for name, value in flags.to_dict().items() if value]
        if enabled:
            logger.debug(f"Feature flags enabled: {', '.join(enabled)}")

        return flags

    def to_dict(self) -> dict[str, bool]:
        """Convert to dictionary for serialization."""
        return {
            "graceful_degradation": self.graceful_degradation,
            "static_fallback": self.static_fallback,
            "warm_start": self.warm_start,
        }


# Global singleton
_global_flags: FeatureFlags | None = None


def get_feature_flags() -> FeatureFlags:
    """Get or create global feature flags instance."""
    global _global_flags
    if _global_flags is None:
        _global_flags = FeatureFlags.load()
    return _global_flags


def reset_feature_flags() -> None:
    """Reset global feature flags (for testing)."""
    global _global_flags
    _global_flags = None
