"""
Shared validators for input sanitization.
"""

import re
import uuid
from typing import Any

# Canonical 8-4-4-4-12 identifier grammar, any version
UUID_ANY_VERSION_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Version 4 only: third group starts with 4, fourth with 8, 9, a or b
UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_INTEGER_PATTERN = re.compile(r"^\d+$")
_CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def is_valid_uuid(value: Any, allow_any_version: bool = True) -> bool:
    """
    Check whether a value has the canonical identifier shape.

    uuid.UUID instances are always valid. Strings are trimmed first; the
    hyphenated 36-character form is the only accepted spelling.

    Args:
        value: Candidate value
        allow_any_version: If False, only version 4 identifiers pass

    Returns:
        True if the value is a well-formed identifier
    """
    if isinstance(value, uuid.UUID):
        return allow_any_version or value.version == 4

    if not isinstance(value, str):
        return False

    candidate = value.strip()
    if not candidate:
        return False

    pattern = UUID_ANY_VERSION_PATTERN if allow_any_version else UUID_V4_PATTERN
    return pattern.match(candidate) is not None


def is_integer_like(value: Any) -> bool:
    """True for ints and for strings made only of digits (integer keys, not identifiers)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and _INTEGER_PATTERN.match(value) is not None


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. This function escapes them
    to prevent pattern injection attacks that could cause full table scans.

    Args:
        value: The search string to escape

    Returns:
        The escaped string safe for use in LIKE patterns (escape char: backslash)
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def sanitize_search_term(term: str | None, max_length: int = 100) -> str:
    """
    Sanitize search term for safe use in queries.

    Args:
        term: The search term to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized search term ("" when nothing usable remains)
    """
    if not term:
        return ""

    term = term.strip()

    if len(term) > max_length:
        term = term[:max_length]

    # Remove null bytes and other control characters
    term = _CONTROL_CHARS_PATTERN.sub("", term)

    return term
