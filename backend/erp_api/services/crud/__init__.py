"""
CRUD Services - Generic data-access engine shared by every ERP module.

Provides:
- EntityMapper / SchemaMapper: storage rows <-> pydantic entities
- Identifier Guard: validation of identifier-typed filters (STRICT/GRACEFUL/WARN)
- FieldAccessPolicy: role-based projection allow-lists
- FilterSpec: typed range/set/date filters
- QueryBuilder: search, filters, multi-key sort and pagination
- BaseRepository: CRUD, list, bulk and transaction operations
- CRUDFactory: generic handler raising NotFoundError for missing entities
"""

from .errors import InvalidIdentifierError, MappingError
from .mapper import EntityMapper, SchemaMapper
from .identifiers import (
    IdentifierValidationConfig,
    IdentifierValidationStrategy,
    coerce_identifier,
    validate_identifier_filters,
)
from .projection import FieldAccessPolicy
from .filters import (
    DateExactFilter,
    EqualsFilter,
    Filter,
    FilterSpec,
    RangeFilter,
    SetFilter,
)
from .listing import ListQuery, PaginatedResult, PaginationMeta
from .query_builder import QueryBuilder, QueryPlan, parse_sort
from .repository import BaseRepository, EntityDefinition, FieldConfig
from .factory import CRUDConfig, CRUDFactory

__all__ = [
    # Errors
    "InvalidIdentifierError",
    "MappingError",
    # Mapping
    "EntityMapper",
    "SchemaMapper",
    # Identifier Guard
    "IdentifierValidationConfig",
    "IdentifierValidationStrategy",
    "coerce_identifier",
    "validate_identifier_filters",
    # Projection
    "FieldAccessPolicy",
    # Filters
    "DateExactFilter",
    "EqualsFilter",
    "Filter",
    "FilterSpec",
    "RangeFilter",
    "SetFilter",
    # Listing
    "ListQuery",
    "PaginatedResult",
    "PaginationMeta",
    # Query Builder
    "QueryBuilder",
    "QueryPlan",
    "parse_sort",
    # Repository
    "BaseRepository",
    "EntityDefinition",
    "FieldConfig",
    # Factory
    "CRUDConfig",
    "CRUDFactory",
]
