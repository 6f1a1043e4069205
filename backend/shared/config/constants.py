"""
Centralized constants for the backend application.
Avoids magic strings and repeated constants.

Usage:
    from shared.config.constants import Roles, Limits, RESERVED_QUERY_KEYS

    if key in RESERVED_QUERY_KEYS:
        ...
"""

from typing import Final

from shared.config.settings import settings


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """Caller role constants used by field allow-lists."""

    ADMIN: Final[str] = "admin"
    USER: Final[str] = "user"
    PUBLIC: Final[str] = "public"

    # Role applied when the caller is anonymous or has an unknown role
    DEFAULT: Final[str] = PUBLIC


# =============================================================================
# List Query Conventions
# =============================================================================


# Control keys consumed by the list machinery itself, never filters
RESERVED_QUERY_KEYS: Final[frozenset[str]] = frozenset({
    "fields",
    "format",
    "include",
    "page",
    "limit",
    "search",
    "sort",
    "sortBy",
    "sortOrder",
    "sort_by",
    "sort_order",
})

# Suffixes reserved for range, set and date filters
RANGE_MIN_SUFFIX: Final[str] = "_min"
RANGE_MAX_SUFFIX: Final[str] = "_max"
SET_IN_SUFFIX: Final[str] = "_in"
SET_NOT_IN_SUFFIX: Final[str] = "_not_in"
DATE_SUFFIXES: Final[tuple[str, ...]] = ("_at", "_date")

# Sort expression syntax: field1:desc,field2:asc
SORT_PAIR_SEPARATOR: Final[str] = ","
SORT_DIRECTION_SEPARATOR: Final[str] = ":"

# Column names accepted in projections and sort expressions
FIELD_NAME_PATTERN: Final[str] = r"^[a-zA-Z_][a-zA-Z0-9_]*$"


class SortDirection:
    """Sort direction constants."""

    ASC: Final[str] = "asc"
    DESC: Final[str] = "desc"

    DEFAULT: Final[str] = DESC


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Pagination and input limits."""

    DEFAULT_PAGE_SIZE: Final[int] = settings.default_page_size
    MAX_PAGE_SIZE: Final[int] = settings.max_page_size
    MAX_SEARCH_TERM_LENGTH: Final[int] = settings.max_search_term_length
