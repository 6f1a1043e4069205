"""
SQLAlchemy ORM Models Package.

Models are organized into domain-specific modules:
- base: Base class and audit mixins
- content: Article
- inventory: DrugLot, ReturnReason
"""

from .base import Base, UUIDPrimaryKeyMixin, TimestampMixin, ActorMixin

from .content import Article

from .inventory import DrugLot, ReturnReason

__all__ = [
    "Base",
    "UUIDPrimaryKeyMixin",
    "TimestampMixin",
    "ActorMixin",
    "Article",
    "DrugLot",
    "ReturnReason",
]
