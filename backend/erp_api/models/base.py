"""
Base class and audit mixins for all SQLAlchemy ORM models.

Audit columns are split in two mixins because not every table carries
actor tracking; each repository declares which of them exist through its
FieldConfig.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class UUIDPrimaryKeyMixin:
    """Identifier-typed primary key generated on the Python side."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    """
    created_at / updated_at columns.

    created_at is always filled by the database default; updated_at is
    written by the repository on every update.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class ActorMixin:
    """created_by / updated_by columns holding the acting user's identifier."""

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)


def model_repr(instance: object) -> str:
    """Short repr used by every model."""
    class_name = instance.__class__.__name__
    id_val = getattr(instance, "id", None)
    return f"<{class_name}(id={id_val})>"
