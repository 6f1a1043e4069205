"""
Repository Core: CRUD, list, bulk and transaction operations over one table.

Usage:
    from erp_api.services.crud.repository import BaseRepository

    repo = DrugLotRepository(db)

    lot = repo.find_by_id(lot_id)                      # DrugLotOutput | None
    page = repo.list(ListQuery(page=1, limit=20, sort="expiry_date:asc"))
    lot = repo.create(DrugLotCreate(...), actor_id=user_id)
    lot = repo.update(lot_id, DrugLotUpdate(quantity_available=0), actor_id=user_id)
    deleted = repo.delete(lot_id)                      # bool

    # All-or-nothing unit of work
    repo.with_transaction(lambda tx: [tx.delete(a), tx.create(b)])

Contract:
    - Not found is None (single entity) or False (delete), never an exception
    - Malformed identifiers follow the repository's IdentifierValidationConfig;
      under GRACEFUL and WARN a malformed id answers "not found" without
      issuing a statement
    - Storage errors (sqlalchemy.exc.*) propagate unchanged; nothing is retried
    - Outside with_transaction every write commits on its own; on failure
      the session is rolled back before the error is re-raised
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import Table, Uuid, delete, exists as sql_exists, func, insert, select, update
from sqlalchemy.orm import Session

from shared.config.logging import get_logger, mask_user_id
from shared.infrastructure.db import transaction_scope
from shared.utils.validators import is_valid_uuid

from erp_api.services.crud.filters import FilterSpec
from erp_api.services.crud.identifiers import (
    IdentifierValidationConfig,
    coerce_identifier,
    coerce_identifiers,
    normalize_identifier,
)
from erp_api.services.crud.listing import ListQuery, PaginatedResult, PaginationMeta
from erp_api.services.crud.mapper import EntityMapper
from erp_api.services.crud.projection import FieldAccessPolicy
from erp_api.services.crud.query_builder import QueryBuilder

logger = get_logger(__name__)

EntityT = TypeVar("EntityT", bound=BaseModel)
ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class FieldConfig:
    """Audit columns present on a table and their names."""

    has_created_at: bool = True
    has_updated_at: bool = True
    has_created_by: bool = False
    has_updated_by: bool = False
    created_at_column: str = "created_at"
    updated_at_column: str = "updated_at"
    created_by_column: str = "created_by"
    updated_by_column: str = "updated_by"

    def declared_columns(self) -> list[str]:
        columns = []
        if self.has_created_at:
            columns.append(self.created_at_column)
        if self.has_updated_at:
            columns.append(self.updated_at_column)
        if self.has_created_by:
            columns.append(self.created_by_column)
        if self.has_updated_by:
            columns.append(self.updated_by_column)
        return columns


@dataclass
class EntityDefinition(Generic[EntityT]):
    """
    Everything the engine needs to know about one module's entity.

    Attributes:
        name: Human-readable entity name ("Drug lot")
        model: SQLAlchemy model class
        mapper: Row <-> entity mapper
        search_fields: Columns matched by free-text search
        filter_spec: Range/set/date filter declarations
        sort_fields: API sort names -> columns
        field_config: Audit columns
        identifier_fields: Extra identifier-typed filter keys
        exempt_fields: Keys never treated as identifiers by name
        field_access: Role allow-lists for projections (None: unrestricted)
    """

    name: str
    model: type
    mapper: EntityMapper[EntityT]
    search_fields: Sequence[str] = ()
    filter_spec: FilterSpec = field(default_factory=FilterSpec)
    sort_fields: Mapping[str, str] = field(default_factory=dict)
    field_config: FieldConfig = field(default_factory=FieldConfig)
    identifier_fields: Iterable[str] = ()
    exempt_fields: Iterable[str] = ()
    field_access: FieldAccessPolicy | None = None

    @property
    def table(self) -> Table:
        return self.model.__table__


class BaseRepository(Generic[EntityT]):
    """
    Generic repository for one entity.

    Subclasses usually just set `definition`; it can also be passed in.
    The identifier policy defaults to the process-wide settings and can be
    changed per repository with configure_identifiers().
    """

    definition: EntityDefinition[EntityT] | None = None

    def __init__(
        self,
        session: Session,
        definition: EntityDefinition[EntityT] | None = None,
        identifier_config: IdentifierValidationConfig | None = None,
    ):
        definition = definition or self.definition
        if definition is None:
            raise ValueError(f"{type(self).__name__} has no entity definition")

        self._session = session
        self.definition = definition
        self.table = definition.table
        self.mapper = definition.mapper
        self.field_config = definition.field_config
        self._in_transaction = False

        missing = [name for name in self.field_config.declared_columns() if name not in self.table.c]
        if missing:
            raise ValueError(f"Table {self.table.name} is missing audit columns: {missing}")

        self.builder = QueryBuilder(
            self.table,
            search_fields=definition.search_fields,
            filter_spec=definition.filter_spec,
            sort_fields=definition.sort_fields,
            created_at_column=(
                self.field_config.created_at_column if self.field_config.has_created_at else None
            ),
        )

        pk_columns = list(self.table.primary_key.columns)
        self._pk = pk_columns[0]

        # Native identifier columns are always validated
        typed_fields = {column.name for column in self.table.c if isinstance(column.type, Uuid)}
        self._identifier_columns = frozenset(typed_fields)
        config = identifier_config or IdentifierValidationConfig.from_settings()
        self._identifier_config = config.with_changes(
            identifier_fields=config.identifier_fields | typed_fields | set(definition.identifier_fields),
            exempt_fields=config.exempt_fields | set(definition.exempt_fields),
        )

    @property
    def session(self) -> Session:
        """The database session."""
        return self._session

    @property
    def identifier_config(self) -> IdentifierValidationConfig:
        return self._identifier_config

    # =========================================================================
    # Identifier policy
    # =========================================================================

    def configure_identifiers(self, **changes: Any) -> None:
        """
        Replace parts of the identifier policy (strategy, allow_any_version, ...).

        The config object is swapped, never mutated. Uuid-typed columns stay
        in the identifier set whatever it is replaced with.
        """
        if "identifier_fields" in changes:
            changes["identifier_fields"] = set(changes["identifier_fields"]) | self._identifier_columns
        self._identifier_config = self._identifier_config.with_changes(**changes)

    def add_identifier_fields(self, *fields: str) -> None:
        """Treat more filter keys as identifiers."""
        self._identifier_config = self._identifier_config.with_identifier_fields(fields)

    def set_identifier_fields(self, *fields: str) -> None:
        """Replace the explicit identifier keys (name heuristics still apply)."""
        self._identifier_config = self._identifier_config.with_identifier_fields(
            (*fields, *self._identifier_columns), replace_existing=True
        )

    def _coerce_id(self, entity_id: Any) -> uuid.UUID | Any | None:
        if isinstance(self._pk.type, Uuid):
            return coerce_identifier(entity_id, self._pk.name, self._identifier_config)
        return entity_id

    def _coerce_ids(self, entity_ids: Iterable[Any]) -> list[Any]:
        if isinstance(self._pk.type, Uuid):
            return coerce_identifiers(entity_ids, self._pk.name, self._identifier_config)
        return [entity_id for entity_id in entity_ids if entity_id is not None]

    # =========================================================================
    # Units of work
    # =========================================================================

    @contextmanager
    def _unit_of_work(self) -> Iterator[Session]:
        if self._in_transaction:
            yield self._session
        else:
            with transaction_scope(self._session) as session:
                yield session

    def with_transaction(self, fn: Callable[[BaseRepository[EntityT]], ResultT]) -> ResultT:
        """
        Run fn with a repository whose writes share one transaction.

        The transaction commits when fn returns and rolls back on any
        exception, which is re-raised. Calls through the handle must not
        run concurrently.
        """
        handle = copy.copy(self)
        handle._in_transaction = True
        with transaction_scope(self._session):
            return fn(handle)

    def _actor(self, actor_id: Any) -> Any:
        return normalize_identifier(actor_id) if is_valid_uuid(actor_id) else actor_id

    # =========================================================================
    # Reads
    # =========================================================================

    def find_by_id(self, entity_id: Any) -> EntityT | None:
        """
        Find an entity by primary key.

        Returns:
            The entity, or None when no row matches or the id is malformed
            (GRACEFUL/WARN). STRICT raises InvalidIdentifierError instead.
        """
        key = self._coerce_id(entity_id)
        if key is None:
            return None

        row = self._session.execute(
            select(*self.table.c).where(self._pk == key)
        ).mappings().first()
        return self.mapper.to_entity(row) if row is not None else None

    def exists(self, entity_id: Any) -> bool:
        """Check if an entity exists by primary key."""
        key = self._coerce_id(entity_id)
        if key is None:
            return False
        return bool(self._session.scalar(select(sql_exists().where(self._pk == key))))

    def count(self, filters: Mapping[str, Any] | None = None, search: str | None = None) -> int:
        """Count rows matching filters and search."""
        criteria = self.builder.build_criteria(filters or {}, search, self._identifier_config)
        statement = select(func.count()).select_from(self.table).where(*criteria)
        return self._session.scalar(statement) or 0

    def list(
        self,
        query: ListQuery | None = None,
        *,
        role: str | None = None,
        actor_id: Any = None,
    ) -> PaginatedResult[EntityT]:
        """
        One page of entities plus pagination metadata.

        Args:
            query: Page, limit, search, sort, fields and filters
            role: Caller role, used with the entity's field allow-lists
            actor_id: Caller identity, recorded when fields are dropped

        The count and the page are two statements outside any shared
        transaction; concurrent writes may make them disagree slightly.
        """
        query = query or ListQuery()

        projection: Sequence[str] | None = query.fields or None
        if self.definition.field_access is not None:
            projection = self.definition.field_access.project(role, query.fields, actor_id=actor_id)

        plan = self.builder.build(query, self._identifier_config, projection)

        total = self._session.execute(plan.count_statement).scalar_one()
        rows = self._session.execute(plan.statement).mappings().all()

        return PaginatedResult(
            data=self.mapper.to_entities(rows),
            pagination=PaginationMeta.from_total(plan.page, plan.limit, total),
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def _storage_values(self, data: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
        values = self.mapper.to_storage(data)
        for name in self._identifier_columns.intersection(values):
            if isinstance(values[name], str) and is_valid_uuid(values[name]):
                values[name] = normalize_identifier(values[name])
        return values

    def _create_values(self, data: BaseModel | Mapping[str, Any], actor_id: Any) -> dict[str, Any]:
        values = self._storage_values(data)
        if self.field_config.has_created_by and actor_id is not None:
            values[self.field_config.created_by_column] = self._actor(actor_id)
        return values

    def _update_values(self, data: BaseModel | Mapping[str, Any], actor_id: Any) -> dict[str, Any]:
        values = self._storage_values(data)
        if not values and actor_id is None:
            return values
        if self.field_config.has_updated_at:
            values[self.field_config.updated_at_column] = datetime.now(timezone.utc)
        if self.field_config.has_updated_by and actor_id is not None:
            values[self.field_config.updated_by_column] = self._actor(actor_id)
        return values

    def create(self, data: BaseModel | Mapping[str, Any], actor_id: Any = None) -> EntityT:
        """
        Insert one entity and return it as stored.

        created_at is left to the database default.
        """
        values = self._create_values(data, actor_id)

        with self._unit_of_work() as session:
            row = session.execute(
                insert(self.table).values(**values).returning(*self.table.c)
            ).mappings().one()

        logger.debug(
            "Entity created",
            entity=self.definition.name,
            entity_id=str(row[self._pk.name]),
            actor=mask_user_id(actor_id),
        )
        return self.mapper.to_entity(row)

    def update(self, entity_id: Any, data: BaseModel | Mapping[str, Any], actor_id: Any = None) -> EntityT | None:
        """
        Update the columns present in data.

        Returns:
            The updated entity, or None if no row matched.
        """
        key = self._coerce_id(entity_id)
        if key is None:
            return None

        values = self._update_values(data, actor_id)
        if not values:
            return self.find_by_id(key)

        with self._unit_of_work() as session:
            row = session.execute(
                update(self.table).where(self._pk == key).values(**values).returning(*self.table.c)
            ).mappings().first()

        if row is None:
            return None
        return self.mapper.to_entity(row)

    def delete(self, entity_id: Any) -> bool:
        """Delete by primary key; False when nothing was deleted."""
        key = self._coerce_id(entity_id)
        if key is None:
            return False

        with self._unit_of_work() as session:
            result = session.execute(delete(self.table).where(self._pk == key))

        return result.rowcount > 0

    # =========================================================================
    # Bulk writes (all-or-nothing)
    # =========================================================================

    def create_many(
        self,
        items: Sequence[BaseModel | Mapping[str, Any]],
        actor_id: Any = None,
    ) -> list[EntityT]:
        """
        Insert several entities in one transaction.

        Items supplying the same columns go out as a single executemany
        statement; mixed shapes are inserted one by one.
        """
        if not items:
            return []

        rows_values = [self._create_values(item, actor_id) for item in items]
        uniform = len({frozenset(values) for values in rows_values}) == 1

        with self._unit_of_work() as session:
            if uniform and rows_values[0]:
                rows = session.execute(
                    insert(self.table).returning(*self.table.c, sort_by_parameter_order=True),
                    rows_values,
                ).mappings().all()
            else:
                rows = [
                    session.execute(
                        insert(self.table).values(**values).returning(*self.table.c)
                    ).mappings().one()
                    for values in rows_values
                ]

        logger.info("Bulk create", entity=self.definition.name, count=len(rows))
        return self.mapper.to_entities(rows)

    def update_many(
        self,
        entity_ids: Iterable[Any],
        data: BaseModel | Mapping[str, Any],
        actor_id: Any = None,
    ) -> int:
        """Apply the same update to an id set; returns the number of rows changed."""
        keys = self._coerce_ids(entity_ids)
        values = self._update_values(data, actor_id)
        if not keys or not values:
            return 0

        with self._unit_of_work() as session:
            result = session.execute(update(self.table).where(self._pk.in_(keys)).values(**values))

        logger.info("Bulk update", entity=self.definition.name, count=result.rowcount)
        return result.rowcount

    def delete_many(self, entity_ids: Iterable[Any]) -> int:
        """Delete an id set; returns the number of rows removed."""
        keys = self._coerce_ids(entity_ids)
        if not keys:
            return 0

        with self._unit_of_work() as session:
            result = session.execute(delete(self.table).where(self._pk.in_(keys)))

        logger.info("Bulk delete", entity=self.definition.name, count=result.rowcount)
        return result.rowcount
