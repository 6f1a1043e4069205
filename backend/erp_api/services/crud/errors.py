"""
Errors raised by the data-access engine.

Validation-shaped errors are raised before any statement is issued.
Storage errors (sqlalchemy.exc.*) are never wrapped; callers see the
driver's exception unchanged.
"""

from typing import Any

from shared.config.logging import mask_value
from shared.utils.exceptions import InternalError, ValidationError


class InvalidIdentifierError(ValidationError):
    """
    A value supplied for an identifier-typed field is malformed (400).

    Raised only under the STRICT identifier validation strategy.
    """

    def __init__(self, field: str, value: Any, **log_context: Any):
        self.field = field
        self.value = value
        detail = (
            f"Invalid identifier format for field '{field}': '{mask_value(value)}'. "
            "Expected format: xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
        )
        super().__init__(detail, field=field, **log_context)


class MappingError(InternalError):
    """A storage row could not be converted to an entity (500). Never retried."""

    def __init__(self, entity: str, reason: str, **log_context: Any):
        self.entity = entity
        self.reason = reason
        super().__init__(f"Cannot map {entity} row: {reason}", entity=entity, **log_context)
