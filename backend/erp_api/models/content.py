"""
Content Models: Article.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, model_repr


class Article(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    Published or draft article.
    Inherits: id, created_at, updated_at.
    """

    __tablename__ = "articles"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text)
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)
    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("ix_articles_published_published_at", "published", "published_at"),
    )

    __repr__ = model_repr
