"""
List query parsing and response envelopes shared by all routers.

Usage:
    from erp_api.routers._common.pagination import get_list_query, build_envelope

    @router.get("/drug-lots")
    def list_drug_lots(
        query: ListQuery = Depends(get_list_query),
        db: Session = Depends(get_db),
    ):
        return build_envelope(crud.list(db, query))

    GET /drug-lots?page=2&limit=20&sort=expiry_date:asc&fields=id,lot_number
        &drug_id=...&quantity_available_min=1&lot_number_in=A1&lot_number_in=B2
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import Query, Request
from pydantic import BaseModel

from shared.config.constants import Limits
from shared.config.settings import settings
from shared.infrastructure.correlation import get_request_id

from erp_api.services.crud.listing import ListQuery, PaginatedResult


def get_list_query(
    request: Request,
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(
        default=Limits.DEFAULT_PAGE_SIZE,
        ge=1,
        le=Limits.MAX_PAGE_SIZE,
        description="Maximum number of items to return",
    ),
    search: str | None = Query(default=None, max_length=Limits.MAX_SEARCH_TERM_LENGTH),
    sort: str | None = Query(default=None, description="field[:asc|desc],..."),
    fields: str | None = Query(default=None, description="Comma separated output fields"),
) -> ListQuery:
    """
    FastAPI dependency building a ListQuery from the request query string.

    Every other query parameter is a filter. Repeated parameters
    (lot_number_in=A&lot_number_in=B) arrive as a list.
    """
    params: dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        params[key] = values if len(values) > 1 else values[0]

    params.update(page=page, limit=limit, search=search, sort=sort, fields=fields)
    return ListQuery.from_params(params)


def _meta() -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.api_version,
        "requestId": get_request_id() or None,
        "environment": settings.environment,
    }


def build_envelope(result: PaginatedResult | BaseModel | Any) -> dict[str, Any]:
    """
    Wrap a result in the platform response envelope.

    {success, data, pagination?, meta{timestamp, version, requestId, environment}}
    """
    envelope: dict[str, Any] = {"success": True}

    if isinstance(result, PaginatedResult):
        envelope.update(result.to_dict())
    elif isinstance(result, BaseModel):
        envelope["data"] = result.model_dump(mode="json", exclude_unset=True)
    else:
        envelope["data"] = result

    envelope["meta"] = _meta()
    return envelope
