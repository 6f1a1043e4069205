"""
Common utilities shared across routers.
"""

from .caller import current_caller
from .pagination import build_envelope, get_list_query

__all__ = [
    "current_caller",
    "build_envelope",
    "get_list_query",
]
