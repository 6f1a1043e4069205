"""
Generic CRUD handler shared by every ERP module.

One CRUDFactory per entity replaces a hand-written controller/service
pair: it builds the module's repository on the request session, turns
"not found" results into NotFoundError and validates raw payloads.

Usage:
    drug_lots = CRUDFactory(CRUDConfig(
        repository=DrugLotRepository,
        create_schema=DrugLotCreate,
        update_schema=DrugLotUpdate,
        write_roles={Roles.ADMIN},
    ))

    @router.get("/drug-lots")
    def list_drug_lots(query: ListQuery = Depends(get_list_query), db: Session = Depends(get_db)):
        return build_envelope(drug_lots.list(db, query, role=user.role, actor_id=user.id))
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Type, TypeVar

import pydantic
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shared.config.logging import get_logger, mask_user_id
from shared.utils.exceptions import ForbiddenError, NotFoundError, ValidationError

from erp_api.services.crud.identifiers import IdentifierValidationConfig
from erp_api.services.crud.listing import ListQuery, PaginatedResult
from erp_api.services.crud.repository import BaseRepository

logger = get_logger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)
CreateT = TypeVar("CreateT", bound=BaseModel)
UpdateT = TypeVar("UpdateT", bound=BaseModel)


@dataclass
class CRUDConfig(Generic[OutputT, CreateT, UpdateT]):
    """Configuration for CRUD factory."""

    # Required
    repository: Type[BaseRepository[OutputT]]
    create_schema: Type[CreateT]
    update_schema: Type[UpdateT]

    # Human-readable name for error messages (defaults to the definition's)
    entity_name: str | None = None

    # Roles allowed to write; None means any caller
    write_roles: Iterable[str] | None = None

    # Per-module identifier policy (defaults to settings)
    identifier_config: IdentifierValidationConfig | None = None


class CRUDFactory(Generic[OutputT, CreateT, UpdateT]):
    """
    Generic CRUD operations for one entity.

    Provides:
    - List with projection allow-lists, search, filters, sort and pagination
    - Get / update / delete by id, raising NotFoundError when missing
    - Create with audit trail
    - Bulk create / update / delete
    """

    def __init__(self, config: CRUDConfig[OutputT, CreateT, UpdateT]):
        self.config = config
        definition = config.repository.definition
        self.entity_name = config.entity_name or (definition.name if definition else "Entity")
        self._write_roles = frozenset(config.write_roles) if config.write_roles is not None else None

    def repository(self, db: Session) -> BaseRepository[OutputT]:
        """Repository bound to the request session."""
        return self.config.repository(db, identifier_config=self.config.identifier_config)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_write(self, role: str | None, action: str) -> None:
        if self._write_roles is not None and role not in self._write_roles:
            raise ForbiddenError(f"{action} {self.entity_name.lower()}", role=role)

    def _validate(self, schema: Type[BaseModel], data: BaseModel | Mapping[str, Any]) -> BaseModel:
        if isinstance(data, schema):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        try:
            return schema.model_validate(data)
        except pydantic.ValidationError as exc:
            errors = exc.errors()
            first = errors[0] if errors else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                f"Invalid {self.entity_name.lower()} data: {location} {first.get('msg', '')}".strip(),
                entity=self.entity_name,
                errors=len(errors),
            )

    # =========================================================================
    # Read Operations
    # =========================================================================

    def list(
        self,
        db: Session,
        query: ListQuery | None = None,
        *,
        role: str | None = None,
        actor_id: Any = None,
    ) -> PaginatedResult[OutputT]:
        """List entities; requested fields are cut to the role's allow-list."""
        return self.repository(db).list(query, role=role, actor_id=actor_id)

    def get_by_id(self, db: Session, entity_id: Any) -> OutputT:
        """
        Get entity by ID.

        Raises:
            NotFoundError: If entity not found (or the id is malformed under
                a lenient identifier policy)
            InvalidIdentifierError: Malformed id under STRICT
        """
        entity = self.repository(db).find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    def count(self, db: Session, filters: Mapping[str, Any] | None = None, search: str | None = None) -> int:
        return self.repository(db).count(filters, search)

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(
        self,
        db: Session,
        data: CreateT | Mapping[str, Any],
        *,
        role: str | None = None,
        actor_id: Any = None,
    ) -> OutputT:
        """Validate and insert a new entity."""
        self._check_write(role, "create")
        payload = self._validate(self.config.create_schema, data)
        entity = self.repository(db).create(payload, actor_id=actor_id)

        logger.info(
            f"{self.entity_name} created",
            entity=self.entity_name,
            actor=mask_user_id(actor_id),
        )
        return entity

    def update(
        self,
        db: Session,
        entity_id: Any,
        data: UpdateT | Mapping[str, Any],
        *,
        role: str | None = None,
        actor_id: Any = None,
    ) -> OutputT:
        """
        Apply a partial update.

        Raises:
            NotFoundError: If entity not found
        """
        self._check_write(role, "update")
        payload = self._validate(self.config.update_schema, data)
        entity = self.repository(db).update(entity_id, payload, actor_id=actor_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)

        logger.info(f"{self.entity_name} updated", entity=self.entity_name, actor=mask_user_id(actor_id))
        return entity

    def delete(
        self,
        db: Session,
        entity_id: Any,
        *,
        role: str | None = None,
        actor_id: Any = None,
    ) -> None:
        """
        Hard delete.

        Raises:
            NotFoundError: If entity not found or already deleted
        """
        self._check_write(role, "delete")
        if not self.repository(db).delete(entity_id):
            raise NotFoundError(self.entity_name, entity_id)

        logger.info(f"{self.entity_name} deleted", entity=self.entity_name, actor=mask_user_id(actor_id))

    # =========================================================================
    # Bulk Operations
    # =========================================================================

    def create_many(
        self,
        db: Session,
        items: Sequence[CreateT | Mapping[str, Any]],
        *,
        role: str | None = None,
        actor_id: Any = None,
    ) -> list[OutputT]:
        """Validate every item first, then insert all of them or none."""
        self._check_write(role, "create")
        payloads = [self._validate(self.config.create_schema, item) for item in items]
        return self.repository(db).create_many(payloads, actor_id=actor_id)

    def update_many(
        self,
        db: Session,
        entity_ids: Iterable[Any],
        data: UpdateT | Mapping[str, Any],
        *,
        role: str | None = None,
        actor_id: Any = None,
    ) -> int:
        self._check_write(role, "update")
        payload = self._validate(self.config.update_schema, data)
        return self.repository(db).update_many(entity_ids, payload, actor_id=actor_id)

    def delete_many(
        self,
        db: Session,
        entity_ids: Iterable[Any],
        *,
        role: str | None = None,
    ) -> int:
        self._check_write(role, "delete")
        return self.repository(db).delete_many(entity_ids)
