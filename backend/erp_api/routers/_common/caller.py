"""
Caller identity for engine calls.

Authentication happens at the API gateway, which forwards the verified
identity in request headers. Anonymous requests get the public role.
"""

from fastapi import Header

from shared.config.constants import Roles

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"


def current_caller(
    user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
    role: str | None = Header(default=None, alias=USER_ROLE_HEADER),
) -> dict:
    """
    FastAPI dependency returning {"user_id", "role"}.

    Usage:
        @router.get("/articles")
        def list_articles(user: dict = Depends(current_caller)):
            crud.list(db, query, role=user["role"], actor_id=user["user_id"])
    """
    return {
        "user_id": user_id or None,
        "role": role.strip().lower() if role else Roles.DEFAULT,
    }
