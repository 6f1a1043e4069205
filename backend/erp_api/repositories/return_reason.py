"""
Return Reason Repository - Data access for supplier return reason codes.
"""

from sqlalchemy.orm import Session

from erp_api.models import ReturnReason
from erp_api.schemas import ReturnReasonOutput
from erp_api.services.crud.filters import FilterSpec
from erp_api.services.crud.mapper import SchemaMapper
from erp_api.services.crud.repository import BaseRepository, EntityDefinition

return_reason_mapper = SchemaMapper(
    ReturnReasonOutput,
    entity_name="Return reason",
    writable_fields={"reason_code", "reason_name", "description", "is_active"},
)

RETURN_REASON_DEFINITION = EntityDefinition(
    name="Return reason",
    model=ReturnReason,
    mapper=return_reason_mapper,
    search_fields=("reason_code", "reason_name", "description"),
    filter_spec=FilterSpec(set_fields={"reason_code"}),
    sort_fields={
        "code": "reason_code",
        "name": "reason_name",
        "createdAt": "created_at",
    },
)


class ReturnReasonRepository(BaseRepository[ReturnReasonOutput]):
    """Repository for ReturnReason entities. No per-role field restrictions."""

    definition = RETURN_REASON_DEFINITION


def get_return_reason_repository(db: Session) -> ReturnReasonRepository:
    """Factory function for dependency injection."""
    return ReturnReasonRepository(db)
