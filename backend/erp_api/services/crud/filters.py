"""
Typed list filters.

A list request carries an open key/value map. Each module declares a
FilterSpec naming which of its columns accept range, set and date-exact
filters; FilterSpec.parse turns the map into tagged filter values.

Reserved key shapes are never treated as equality:
    <field>_min / <field>_max    RangeFilter   (declared in range_fields)
    <field>_in / <field>_not_in  SetFilter     (declared in set_fields)
    <field>_at / <field>_date    DateExactFilter (declared in date_fields)
    fields, page, limit, sort... control keys, consumed elsewhere

A reserved key whose field is not declared is ignored, so a module that
wants "price_min" must declare "price" as a range field. Everything else
becomes an EqualsFilter.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from shared.config.constants import (
    DATE_SUFFIXES,
    RANGE_MAX_SUFFIX,
    RANGE_MIN_SUFFIX,
    RESERVED_QUERY_KEYS,
    SET_IN_SUFFIX,
    SET_NOT_IN_SUFFIX,
)
from shared.config.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EqualsFilter:
    field: str
    value: Any


@dataclass(frozen=True)
class RangeFilter:
    """Inclusive bounds; either side may be open."""

    field: str
    minimum: Any = None
    maximum: Any = None


@dataclass(frozen=True)
class SetFilter:
    field: str
    values: tuple[Any, ...]
    negate: bool = False


@dataclass(frozen=True)
class DateExactFilter:
    """Matches the calendar day of a date or timestamp column."""

    field: str
    value: Any


Filter = Union[EqualsFilter, RangeFilter, SetFilter, DateExactFilter]


def _as_values(value: Any) -> tuple[Any, ...]:
    """Set filter values arrive as a list or a comma separated string."""
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)
    return (value,)


def is_reserved_key(key: str) -> bool:
    """True for keys the default equality path must never apply."""
    return (
        key in RESERVED_QUERY_KEYS
        or key.endswith((RANGE_MIN_SUFFIX, RANGE_MAX_SUFFIX, SET_IN_SUFFIX, SET_NOT_IN_SUFFIX))
        or key.endswith(DATE_SUFFIXES)
    )


@dataclass(frozen=True)
class FilterSpec:
    """
    Per-entity declaration of the non-equality filters it supports.

    Usage:
        FilterSpec(
            range_fields={"expiry_date", "quantity_available"},
            set_fields={"drug_id", "lot_number"},
            date_fields={"expiry_date"},
        )
    """

    range_fields: frozenset[str] = field(default_factory=frozenset)
    set_fields: frozenset[str] = field(default_factory=frozenset)
    date_fields: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "range_fields", frozenset(self.range_fields))
        object.__setattr__(self, "set_fields", frozenset(self.set_fields))
        object.__setattr__(self, "date_fields", frozenset(self.date_fields))

    def parse(self, filters: Mapping[str, Any]) -> list[Filter]:
        """
        Convert a raw filter map into typed filters.

        None values are skipped. Order follows the input map, with both
        bounds of a range merged into one RangeFilter.
        """
        result: list[Filter] = []
        ranges: dict[str, dict[str, Any]] = {}

        for key, value in filters.items():
            if value is None:
                continue

            if key in RESERVED_QUERY_KEYS:
                continue

            if key.endswith(SET_NOT_IN_SUFFIX):
                self._add_set(result, key, key[: -len(SET_NOT_IN_SUFFIX)], value, negate=True)
            elif key.endswith(SET_IN_SUFFIX):
                self._add_set(result, key, key[: -len(SET_IN_SUFFIX)], value, negate=False)
            elif key.endswith(RANGE_MIN_SUFFIX) or key.endswith(RANGE_MAX_SUFFIX):
                is_min = key.endswith(RANGE_MIN_SUFFIX)
                name = key[: -len(RANGE_MIN_SUFFIX if is_min else RANGE_MAX_SUFFIX)]
                if name not in self.range_fields:
                    self._ignore(key)
                    continue
                bounds = ranges.get(name)
                if bounds is None:
                    bounds = ranges[name] = {}
                    result.append(RangeFilter(name))
                bounds["minimum" if is_min else "maximum"] = value
            elif key.endswith(DATE_SUFFIXES):
                if key in self.date_fields:
                    result.append(DateExactFilter(key, value))
                else:
                    self._ignore(key)
            else:
                result.append(EqualsFilter(key, value))

        if not ranges:
            return result
        return [
            RangeFilter(item.field, **ranges[item.field]) if isinstance(item, RangeFilter) else item
            for item in result
        ]

    def _add_set(self, result: list[Filter], key: str, name: str, value: Any, negate: bool) -> None:
        if name not in self.set_fields:
            self._ignore(key)
            return
        values = _as_values(value)
        if values:
            result.append(SetFilter(name, values, negate=negate))

    @staticmethod
    def _ignore(key: str) -> None:
        logger.debug("Reserved filter key not declared for this entity, ignored", key=key)
