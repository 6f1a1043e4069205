"""
Inventory Master Data Models: DrugLot, ReturnReason.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Boolean, Date, Float, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import ActorMixin, Base, TimestampMixin, UUIDPrimaryKeyMixin, model_repr


class DrugLot(UUIDPrimaryKeyMixin, TimestampMixin, ActorMixin, Base):
    """
    Received lot of a drug at a storage location.
    Inherits: id, created_at, updated_at, created_by, updated_by.
    """

    __tablename__ = "drug_lots"

    drug_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)
    lot_number: Mapped[str] = mapped_column(String(50), nullable=False)
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False)
    received_date: Mapped[Optional[date]] = mapped_column(Date)
    quantity_available: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit_cost: Mapped[Optional[float]] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("drug_id", "lot_number", name="uq_drug_lots_drug_lot_number"),
        # FEFO picking: earliest expiry first per drug
        Index("ix_drug_lots_drug_expiry", "drug_id", "expiry_date"),
    )

    __repr__ = model_repr


class ReturnReason(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    Reason code used when stock is returned to a supplier.
    Inherits: id, created_at, updated_at.
    """

    __tablename__ = "return_reasons"

    reason_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    reason_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __repr__ = model_repr
