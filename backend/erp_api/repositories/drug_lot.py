"""
Drug Lot Repository - Data access for received drug lots.

Lots carry actor audit columns, so writes record created_by/updated_by
whenever the caller identity is known.
"""

from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from shared.config.constants import Roles
from erp_api.models import DrugLot
from erp_api.schemas import DrugLotOutput
from erp_api.services.crud.filters import FilterSpec
from erp_api.services.crud.listing import ListQuery, PaginatedResult
from erp_api.services.crud.mapper import SchemaMapper
from erp_api.services.crud.projection import FieldAccessPolicy
from erp_api.services.crud.repository import BaseRepository, EntityDefinition, FieldConfig


def _to_date(value: Any) -> date:
    """Accept ISO strings from raw payloads."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


PUBLIC_FIELDS = ("id", "drug_id", "lot_number", "expiry_date", "is_active")
USER_FIELDS = PUBLIC_FIELDS + ("location_id", "received_date", "quantity_available", "notes")
ADMIN_FIELDS = USER_FIELDS + ("unit_cost", "created_at", "updated_at", "created_by", "updated_by")

drug_lot_mapper = SchemaMapper(
    DrugLotOutput,
    entity_name="Drug lot",
    writable_fields={
        "drug_id",
        "location_id",
        "lot_number",
        "expiry_date",
        "received_date",
        "quantity_available",
        "unit_cost",
        "is_active",
        "notes",
    },
    converters={"expiry_date": _to_date, "received_date": _to_date},
)

DRUG_LOT_DEFINITION = EntityDefinition(
    name="Drug lot",
    model=DrugLot,
    mapper=drug_lot_mapper,
    search_fields=("lot_number", "notes"),
    filter_spec=FilterSpec(
        range_fields={"expiry_date", "received_date", "quantity_available", "unit_cost"},
        set_fields={"drug_id", "location_id", "lot_number"},
        date_fields={"expiry_date", "received_date"},
    ),
    sort_fields={
        "lotNumber": "lot_number",
        "expiryDate": "expiry_date",
        "receivedDate": "received_date",
        "quantity": "quantity_available",
        "createdAt": "created_at",
    },
    field_config=FieldConfig(has_created_by=True, has_updated_by=True),
    field_access=FieldAccessPolicy(
        "Drug lot",
        {
            Roles.PUBLIC: PUBLIC_FIELDS,
            Roles.USER: USER_FIELDS,
            Roles.ADMIN: ADMIN_FIELDS,
        },
    ),
)


class DrugLotRepository(BaseRepository[DrugLotOutput]):
    """Repository for DrugLot entities."""

    definition = DRUG_LOT_DEFINITION

    def list_expiring(
        self,
        before: date,
        *,
        drug_id: Any = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedResult[DrugLotOutput]:
        """Active lots expiring on or before a date, earliest expiry first (FEFO)."""
        filters: dict[str, Any] = {"expiry_date_max": before, "is_active": True}
        if drug_id is not None:
            filters["drug_id"] = drug_id
        return self.list(ListQuery(page=page, limit=limit, sort="expiry_date:asc", filters=filters))


def get_drug_lot_repository(db: Session) -> DrugLotRepository:
    """Factory function for dependency injection."""
    return DrugLotRepository(db)
