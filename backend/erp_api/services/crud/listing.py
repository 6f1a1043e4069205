"""
List request and paginated result value objects.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.config.constants import RESERVED_QUERY_KEYS, Limits

EntityT = TypeVar("EntityT", bound=BaseModel)


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _split_fields(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(name.strip() for name in value if name and name.strip())


class ListQuery(BaseModel):
    """
    One list request: page, limit, search, sort, projection and filters.

    Immutable once built, filters included (they are held in a read-only
    mapping). Filter values are left as supplied; the query
    builder validates and coerces them against the target columns.
    """

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE)
    search: str | None = None
    sort: str | None = None
    fields: tuple[str, ...] = ()
    filters: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("filters", mode="after")
    @classmethod
    def _freeze_filters(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ListQuery":
        """
        Build a query from raw transport parameters.

        Page and limit are clamped into range instead of rejected, and
        non-numeric values fall back to the defaults. "sortBy"/"sortOrder"
        (or "sort_by"/"sort_order") are folded into a sort expression when
        "sort" is absent. Every non-control key becomes a filter.
        """
        page = max(1, _to_int(params.get("page"), 1))
        limit = min(max(1, _to_int(params.get("limit"), Limits.DEFAULT_PAGE_SIZE)), Limits.MAX_PAGE_SIZE)

        sort = params.get("sort")
        if not sort:
            sort_by = params.get("sortBy") or params.get("sort_by")
            if sort_by:
                order = params.get("sortOrder") or params.get("sort_order")
                sort = f"{sort_by}:{order}" if order else sort_by

        filters = {key: value for key, value in params.items() if key not in RESERVED_QUERY_KEYS}

        return cls(
            page=page,
            limit=limit,
            search=params.get("search") or None,
            sort=sort or None,
            fields=_split_fields(params.get("fields")),
            filters=filters,
        )


@dataclass(frozen=True)
class PaginationMeta:
    """Pagination block of a list response."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_total(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        total_pages = math.ceil(total / limit)
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass
class PaginatedResult(Generic[EntityT]):
    """
    One page of entities plus its pagination block.

    Usage:
        result = repo.list(ListQuery(page=2, limit=20))
        return result.to_dict()
    """

    data: list[EntityT] = field(default_factory=list)
    pagination: PaginationMeta | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize; projected entities emit only the selected fields."""
        return {
            "data": [entity.model_dump(mode="json", exclude_unset=True) for entity in self.data],
            "pagination": self.pagination.to_dict() if self.pagination else None,
        }
