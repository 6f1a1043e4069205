"""
Pydantic schemas for the ERP master-data modules.

Output schemas are the entities handed to callers. Every field except the
key has a default because list requests may project a subset of columns;
serialize with exclude_unset=True to emit only what was selected.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Articles
# =============================================================================


class ArticleOutput(BaseModel):
    """Article entity."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None
    title: str | None = None
    content: str | None = None
    author_id: UUID | None = None
    published: bool | None = None
    published_at: datetime | None = None
    view_count: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ArticleCreate(BaseModel):
    """Create an article."""

    title: str = Field(min_length=1, max_length=255)
    content: str | None = None
    author_id: UUID | None = None
    published: bool = False
    published_at: datetime | None = None
    view_count: int = Field(default=0, ge=0)


class ArticleUpdate(BaseModel):
    """Partial article update; unset fields are left untouched."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = None
    author_id: UUID | None = None
    published: bool | None = None
    published_at: datetime | None = None
    view_count: int | None = Field(default=None, ge=0)


# =============================================================================
# Drug Lots
# =============================================================================


class DrugLotOutput(BaseModel):
    """Drug lot entity."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None
    drug_id: UUID | None = None
    location_id: UUID | None = None
    lot_number: str | None = None
    expiry_date: date | None = None
    received_date: date | None = None
    quantity_available: int | None = None
    unit_cost: float | None = None
    is_active: bool | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: UUID | None = None
    updated_by: UUID | None = None


class DrugLotCreate(BaseModel):
    """Register a received drug lot."""

    drug_id: UUID
    location_id: UUID | None = None
    lot_number: str = Field(min_length=1, max_length=50)
    expiry_date: date
    received_date: date | None = None
    quantity_available: int = Field(default=0, ge=0)
    unit_cost: float | None = Field(default=None, ge=0)
    is_active: bool = True
    notes: str | None = None


class DrugLotUpdate(BaseModel):
    """Partial drug lot update; unset fields are left untouched."""

    location_id: UUID | None = None
    lot_number: str | None = Field(default=None, min_length=1, max_length=50)
    expiry_date: date | None = None
    received_date: date | None = None
    quantity_available: int | None = Field(default=None, ge=0)
    unit_cost: float | None = Field(default=None, ge=0)
    is_active: bool | None = None
    notes: str | None = None


# =============================================================================
# Return Reasons
# =============================================================================


class ReturnReasonOutput(BaseModel):
    """Return reason entity."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None
    reason_code: str | None = None
    reason_name: str | None = None
    description: str | None = None
    is_active: bool | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReturnReasonCreate(BaseModel):
    """Create a return reason."""

    reason_code: str = Field(min_length=1, max_length=20)
    reason_name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    is_active: bool = True


class ReturnReasonUpdate(BaseModel):
    """Partial return reason update; unset fields are left untouched."""

    reason_code: str | None = Field(default=None, min_length=1, max_length=20)
    reason_name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    is_active: bool | None = None
