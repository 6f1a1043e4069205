"""
Master data endpoints: articles, drug lots and return reasons.

Every module gets the same five routes from one generic builder:
    GET    /{prefix}           paginated list (search, filters, sort, fields)
    GET    /{prefix}/{id}      single entity
    POST   /{prefix}           create
    PATCH  /{prefix}/{id}      partial update
    DELETE /{prefix}/{id}      hard delete
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from shared.config.constants import Roles
from shared.infrastructure.db import get_db

from erp_api.repositories import ArticleRepository, DrugLotRepository, ReturnReasonRepository
from erp_api.routers._common import build_envelope, current_caller, get_list_query
from erp_api.schemas import (
    ArticleCreate,
    ArticleUpdate,
    DrugLotCreate,
    DrugLotUpdate,
    ReturnReasonCreate,
    ReturnReasonUpdate,
)
from erp_api.services.crud import CRUDConfig, CRUDFactory, ListQuery

article_crud = CRUDFactory(CRUDConfig(
    repository=ArticleRepository,
    create_schema=ArticleCreate,
    update_schema=ArticleUpdate,
    write_roles={Roles.ADMIN, Roles.USER},
))

drug_lot_crud = CRUDFactory(CRUDConfig(
    repository=DrugLotRepository,
    create_schema=DrugLotCreate,
    update_schema=DrugLotUpdate,
    write_roles={Roles.ADMIN},
))

return_reason_crud = CRUDFactory(CRUDConfig(
    repository=ReturnReasonRepository,
    create_schema=ReturnReasonCreate,
    update_schema=ReturnReasonUpdate,
    write_roles={Roles.ADMIN},
))


def build_crud_router(crud: CRUDFactory, prefix: str, tag: str) -> APIRouter:
    """Standard list/get/create/update/delete routes for one entity."""
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("")
    def list_entities(
        query: ListQuery = Depends(get_list_query),
        db: Session = Depends(get_db),
        user: dict = Depends(current_caller),
    ) -> dict:
        return build_envelope(crud.list(db, query, role=user["role"], actor_id=user["user_id"]))

    @router.get("/{entity_id}")
    def get_entity(
        entity_id: str,
        db: Session = Depends(get_db),
    ) -> dict:
        return build_envelope(crud.get_by_id(db, entity_id))

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_entity(
        body: dict[str, Any] = Body(...),
        db: Session = Depends(get_db),
        user: dict = Depends(current_caller),
    ) -> dict:
        return build_envelope(crud.create(db, body, role=user["role"], actor_id=user["user_id"]))

    @router.patch("/{entity_id}")
    def update_entity(
        entity_id: str,
        body: dict[str, Any] = Body(...),
        db: Session = Depends(get_db),
        user: dict = Depends(current_caller),
    ) -> dict:
        return build_envelope(
            crud.update(db, entity_id, body, role=user["role"], actor_id=user["user_id"])
        )

    @router.delete("/{entity_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_entity(
        entity_id: str,
        db: Session = Depends(get_db),
        user: dict = Depends(current_caller),
    ) -> None:
        crud.delete(db, entity_id, role=user["role"], actor_id=user["user_id"])

    return router


router = APIRouter()
router.include_router(build_crud_router(article_crud, "/articles", "articles"))
router.include_router(build_crud_router(drug_lot_crud, "/drug-lots", "drug-lots"))
router.include_router(build_crud_router(return_reason_crud, "/return-reasons", "return-reasons"))
