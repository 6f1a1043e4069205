"""
Identifier Guard: validate identifier-typed filter values before they
reach the database.

Databases with a native UUID column type reject a malformed string with a
driver error instead of matching zero rows. Every filter map and every
single-id lookup goes through this module first, and the active
IdentifierValidationConfig decides what happens to a bad value:

    STRICT    raise InvalidIdentifierError, nothing is executed
    GRACEFUL  drop the offending filter key, run the rest of the query
    WARN      log it and pass it through; the database error surfaces

Field detection order:
    1. key is in config.identifier_fields          -> always checked
    2. key is "id", ends with "_id" or names a uuid -> checked unless exempt
       (integer-looking values are skipped here: those columns hold
       integer keys, not identifiers)
    3. anything else                                -> untouched

Set filters ("drug_id_in", "drug_id_not_in"), given as a list or a comma
separated string, are checked element by
element against their base field.

The config is passed explicitly to every call; there is no module-level
mutable default.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from shared.config.constants import SET_IN_SUFFIX, SET_NOT_IN_SUFFIX
from shared.config.logging import audit_invalid_identifier, get_logger
from shared.config.settings import Settings, get_settings
from shared.utils.validators import is_integer_like, is_valid_uuid

from erp_api.services.crud.errors import InvalidIdentifierError

logger = get_logger(__name__)


class IdentifierValidationStrategy(str, Enum):
    """What to do with a malformed identifier value."""

    STRICT = "strict"
    GRACEFUL = "graceful"
    WARN = "warn"


@dataclass(frozen=True)
class IdentifierValidationConfig:
    """
    Identifier validation policy for one repository.

    Frozen: adjusting a repository's policy swaps the whole object, so
    in-flight queries keep reading the config they started with.
    """

    strategy: IdentifierValidationStrategy = IdentifierValidationStrategy.GRACEFUL
    allow_any_version: bool = True
    log_invalid_attempts: bool = True
    identifier_fields: frozenset[str] = field(default_factory=frozenset)
    exempt_fields: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "strategy", IdentifierValidationStrategy(self.strategy))
        object.__setattr__(self, "identifier_fields", frozenset(self.identifier_fields))
        object.__setattr__(self, "exempt_fields", frozenset(self.exempt_fields))

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> IdentifierValidationConfig:
        """Process default built from IDENTIFIER_* environment settings."""
        settings = settings or get_settings()
        values: dict[str, Any] = {
            "strategy": settings.identifier_validation_strategy.lower(),
            "allow_any_version": settings.identifier_allow_any_version,
            "log_invalid_attempts": settings.identifier_log_invalid,
        }
        values.update(overrides)
        return cls(**values)

    def with_changes(self, **changes: Any) -> IdentifierValidationConfig:
        """Copy with some attributes replaced."""
        return replace(self, **changes)

    def with_identifier_fields(self, fields: Iterable[str], *, replace_existing: bool = False) -> IdentifierValidationConfig:
        """Copy with extra (or, with replace_existing, only these) explicit identifier fields."""
        fields = frozenset(fields)
        if not replace_existing:
            fields = self.identifier_fields | fields
        return replace(self, identifier_fields=fields)


def looks_like_identifier_name(key: str) -> bool:
    """Naming convention for identifier columns: id, *_id, *uuid*."""
    lowered = key.lower()
    return lowered == "id" or lowered.endswith("_id") or "uuid" in lowered


def _base_field(key: str) -> str:
    """Strip set-filter suffixes so "drug_id_not_in" is checked as "drug_id"."""
    if key.endswith(SET_NOT_IN_SUFFIX):
        return key[: -len(SET_NOT_IN_SUFFIX)]
    if key.endswith(SET_IN_SUFFIX):
        return key[: -len(SET_IN_SUFFIX)]
    return key


def _is_explicit(key: str, config: IdentifierValidationConfig) -> bool:
    return key in config.identifier_fields or _base_field(key) in config.identifier_fields


def is_identifier_field(key: str, config: IdentifierValidationConfig) -> bool:
    """Whether a filter key must be validated as an identifier."""
    if _is_explicit(key, config):
        return True
    if key in config.exempt_fields or _base_field(key) in config.exempt_fields:
        return False
    return looks_like_identifier_name(_base_field(key))


def normalize_identifier(value: Any) -> uuid.UUID:
    """Convert an already-validated value to uuid.UUID."""
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value).strip())


def _report_invalid(field_name: str, value: Any, config: IdentifierValidationConfig) -> None:
    # WARN exists to be noticed, so it always logs
    if config.log_invalid_attempts or config.strategy is IdentifierValidationStrategy.WARN:
        audit_invalid_identifier(field_name, value, config.strategy.value)


def coerce_identifier(value: Any, field_name: str, config: IdentifierValidationConfig) -> uuid.UUID | None:
    """
    Validate a single identifier (primary key lookups, bulk id sets).

    Returns:
        The normalized identifier, or None when the value is malformed and
        the strategy is GRACEFUL or WARN. A malformed single id can never
        match a row, so both lenient strategies answer "not found" without
        issuing a statement.

    Raises:
        InvalidIdentifierError: Malformed value under STRICT.
    """
    if value is None:
        return None

    if is_valid_uuid(value, config.allow_any_version):
        return normalize_identifier(value)

    _report_invalid(field_name, value, config)
    if config.strategy is IdentifierValidationStrategy.STRICT:
        raise InvalidIdentifierError(field_name, value)
    return None


def coerce_identifiers(values: Iterable[Any], field_name: str, config: IdentifierValidationConfig) -> list[uuid.UUID]:
    """Validate an id set; malformed entries are dropped unless STRICT."""
    result = []
    for value in values:
        identifier = coerce_identifier(value, field_name, config)
        if identifier is not None:
            result.append(identifier)
    return result


def _check_value(key: str, value: Any, config: IdentifierValidationConfig) -> tuple[bool, Any]:
    """
    Check one scalar filter value.

    Returns:
        (keep, value): keep is False when the value must be dropped.
    """
    if is_valid_uuid(value, config.allow_any_version):
        return True, normalize_identifier(value)

    if not _is_explicit(key, config) and is_integer_like(value):
        return True, value

    _report_invalid(key, value, config)
    if config.strategy is IdentifierValidationStrategy.STRICT:
        raise InvalidIdentifierError(key, value)
    if config.strategy is IdentifierValidationStrategy.GRACEFUL:
        return False, None
    return True, value


def validate_identifier_filters(
    filters: Mapping[str, Any],
    config: IdentifierValidationConfig,
) -> dict[str, Any]:
    """
    Apply the identifier policy to a filter map.

    Args:
        filters: Raw filter key/values from a list query
        config: Policy of the repository running the query

    Returns:
        A new map: valid identifiers normalized to uuid.UUID, malformed
        ones removed (GRACEFUL) or left as supplied (WARN). The input is
        not modified.

    Raises:
        InvalidIdentifierError: First malformed value under STRICT.
    """
    cleaned = dict(filters)

    for key, value in filters.items():
        if value is None or not is_identifier_field(key, config):
            continue

        if isinstance(value, str) and _base_field(key) != key:
            value = [part.strip() for part in value.split(",") if part.strip()]

        if isinstance(value, (list, tuple, set, frozenset)):
            kept = []
            for item in value:
                keep, checked = _check_value(key, item, config)
                if keep:
                    kept.append(checked)
            if kept:
                cleaned[key] = kept
            else:
                logger.debug("Identifier set filter emptied by validation", field=key)
                del cleaned[key]
            continue

        keep, checked = _check_value(key, value, config)
        if keep:
            cleaned[key] = checked
        else:
            del cleaned[key]

    return cleaned
