"""Tool input validation.

Length checks run first, before any parsing. Validators either return
a normalized value or raise ValidationError with a client-safe message.
"""

from __future__ import annotations

from typing import Any, Optional

from .errors import ValidationError
from .models import TermCategory

MAX_QUERY_LENGTH = 500        # Search query
MAX_TITLE_LENGTH = 200        # Term title or tag
MAX_SECTION_ID_LENGTH = 16    # "N" or "N.M"
MAX_RESULTS = 50              # Brand search results

SENSITIVE_FIELDS = ("token", "authorization", "secret", "password")


def validate_length(value: Optional[str], max_length: int, field: str) -> None:
    """Validate input length and check for null bytes.

    Raises:
        ValidationError: If input exceeds max_length or contains null bytes
    """
    if value is not None and isinstance(value, str):
        if len(value) > max_length:
            raise ValidationError(f"{field} exceeds maximum length of {max_length} characters")
        if "\x00" in value:
            raise ValidationError(f"{field} contains invalid null byte")


def validate_text(value: Any, field: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    """Require a non-empty string; returns it stripped."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    validate_length(value, max_length, field)
    value = value.strip()
    if not value:
        raise ValidationError(f"{field} cannot be empty")
    return value


def validate_query(value: Any) -> str:
    """Search query with internal whitespace collapsed."""
    query = validate_text(value, "query", MAX_QUERY_LENGTH)
    return " ".join(query.split())


def validate_section_id(value: Any) -> str:
    """Section id ``N`` or subsection id ``N.M`` (digits only)."""
    section_id = validate_text(value, "section_id", MAX_SECTION_ID_LENGTH)
    parts = section_id.split(".")
    if len(parts) > 2 or not all(part.isascii() and part.isdigit() for part in parts):
        raise ValidationError(
            f"Invalid section id: {section_id!r}. Use a section number like '2' or '2.1'."
        )
    return section_id


def validate_limit(value: Any, default: int = 5, max_value: int = MAX_RESULTS) -> int:
    """Validate and clamp limit parameter (1 to max_value)."""
    if value is None:
        return default
    if not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError):
            return default
    return max(1, min(value, max_value))


def validate_category(value: Optional[str]) -> Optional[TermCategory]:
    """Parse an optional glossary category name."""
    if value is None:
        return None
    validate_length(value, 32, "category")
    normalized = value.strip().lower()
    if not normalized:
        return None
    # Long-form names used by the glossary's Notion pages
    normalized = normalized.removeprefix("system-").removeprefix("system ")
    if normalized.endswith("s"):
        normalized = normalized[:-1]
    try:
        return TermCategory(normalized)
    except ValueError:
        valid = ", ".join(c.value for c in TermCategory)
        raise ValidationError(f"Invalid category: {value!r}. Use one of: {valid}.") from None


def sanitize_for_log(value: Any) -> Any:
    """Sanitize value for safe logging (escapes control characters, truncates)."""
    if isinstance(value, str):
        sanitized = value.encode("unicode_escape").decode("ascii")
        if len(sanitized) > 200:
            sanitized = sanitized[:200] + "...[truncated]"
        return sanitized
    if isinstance(value, dict):
        return {
            key: "***REDACTED***"
            if any(s in key.lower() for s in SENSITIVE_FIELDS)
            else sanitize_for_log(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [sanitize_for_log(item) for item in value[:10]]
    return value
