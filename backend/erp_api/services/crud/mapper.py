"""
Entity mappers: storage rows to entities and DTOs to storage values.

Each module supplies one mapper. Mappers are pure so the query layer may
call them at any point without side effects.

Usage:
    from erp_api.services.crud.mapper import SchemaMapper

    article_mapper = SchemaMapper(
        ArticleOutput,
        entity_name="Article",
        writable_fields={"title", "content", "author_id"},
    )

    entity = article_mapper.to_entity(row)          # RowMapping -> ArticleOutput
    values = article_mapper.to_storage(update_dto)  # only fields the caller set
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Generic, Type, TypeVar

from pydantic import BaseModel

from erp_api.services.crud.errors import MappingError

EntityT = TypeVar("EntityT", bound=BaseModel)


class EntityMapper(ABC, Generic[EntityT]):
    """
    Contract between a module's entity type and its storage rows.

    Implementations must not touch the database or mutate their inputs.
    """

    entity_name: str = "Entity"

    @abstractmethod
    def to_entity(self, row: Mapping[str, Any] | None) -> EntityT:
        """
        Convert a storage row to an entity.

        Raises:
            MappingError: If the row is None. A synthetic empty entity
                is never returned.
        """
        ...

    @abstractmethod
    def to_storage(self, dto: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
        """
        Convert a create/update DTO to column values.

        Only keys the caller explicitly supplied are returned. A missing key
        means "leave this column alone", never "clear it".
        """
        ...

    def to_entities(self, rows: Iterable[Mapping[str, Any]]) -> list[EntityT]:
        """Map several rows; stops at the first row that cannot be mapped."""
        return [self.to_entity(row) for row in rows]


class SchemaMapper(EntityMapper[EntityT]):
    """
    Mapper driven by a pydantic output schema.

    Features:
    - Auto-maps schema fields to same-named columns
    - Optional field -> column renames
    - Optional per-field converters applied on the way to storage
    - Rows carrying only a projection produce entities with only those
      fields set (see BaseModel.model_fields_set)
    """

    def __init__(
        self,
        entity_class: Type[EntityT],
        *,
        entity_name: str | None = None,
        column_map: Mapping[str, str] | None = None,
        writable_fields: Iterable[str] | None = None,
        converters: Mapping[str, Callable[[Any], Any]] | None = None,
    ):
        """
        Args:
            entity_class: Pydantic model the rows are mapped to
            entity_name: Human-readable name for errors and logs
            column_map: Entity field name -> column name, where they differ
            writable_fields: Entity fields accepted by to_storage (default: all)
            converters: Entity field name -> callable applied before storage
        """
        self.entity_class = entity_class
        self.entity_name = entity_name or entity_class.__name__
        self._column_map = dict(column_map or {})
        self._field_names = tuple(entity_class.model_fields.keys())
        self._writable = (
            frozenset(writable_fields) if writable_fields is not None else frozenset(self._field_names)
        )
        self._converters = dict(converters or {})

    def column_for(self, field_name: str) -> str:
        """Column backing an entity field."""
        return self._column_map.get(field_name, field_name)

    def to_entity(self, row: Mapping[str, Any] | None) -> EntityT:
        if row is None:
            raise MappingError(self.entity_name, "row is None")

        data = {}
        for field_name in self._field_names:
            column = self.column_for(field_name)
            if column in row:
                data[field_name] = row[column]

        return self.entity_class.model_validate(data)

    def to_storage(self, dto: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(dto, BaseModel):
            supplied = dto.model_dump(exclude_unset=True)
        else:
            supplied = dict(dto)

        values = {}
        for field_name, value in supplied.items():
            if field_name not in self._writable:
                continue
            converter = self._converters.get(field_name)
            if converter is not None and value is not None:
                value = converter(value)
            values[self.column_for(field_name)] = value

        return values
