"""
Utilities module: Exceptions, validators.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
    InternalError,
)
from shared.utils.validators import (
    is_valid_uuid,
    escape_like_pattern,
    sanitize_search_term,
)

__all__ = [
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    "InternalError",
    "is_valid_uuid",
    "escape_like_pattern",
    "sanitize_search_term",
]
