"""
Field Projection Guard: role-based allow-lists for list projections.

Restricted fields are dropped from the projection, not rejected: the
caller gets a degraded success and the attempt is written to the
security audit log.
"""

from collections.abc import Iterable, Mapping, Sequence

from shared.config.constants import Roles
from shared.config.logging import audit_field_access, get_logger

logger = get_logger(__name__)


class FieldAccessPolicy:
    """
    Static role -> allowed output fields mapping for one entity.

    Usage:
        policy = FieldAccessPolicy("Article", {
            Roles.PUBLIC: ("id", "title"),
            Roles.ADMIN: ("id", "title", "author_id", "view_count"),
        })
        fields = policy.project(Roles.PUBLIC, ["id", "author_id"])  # ("id",)
    """

    def __init__(
        self,
        entity_name: str,
        allow_lists: Mapping[str, Iterable[str]],
        default_role: str = Roles.DEFAULT,
    ):
        self.entity_name = entity_name
        self.default_role = default_role
        self._allow_lists = {role: tuple(fields) for role, fields in allow_lists.items()}
        if default_role not in self._allow_lists:
            raise ValueError(f"Allow-list for default role '{default_role}' is missing")

    def resolve_role(self, role: str | None) -> str:
        """Unknown or missing roles get the default role's allow-list."""
        if role in self._allow_lists:
            return role
        if role is not None:
            logger.debug("Unknown role, using default allow-list", role=role, default=self.default_role)
        return self.default_role

    def allowed_fields(self, role: str | None) -> tuple[str, ...]:
        return self._allow_lists[self.resolve_role(role)]

    def project(
        self,
        role: str | None,
        requested: Sequence[str] | None,
        actor_id: object = None,
    ) -> tuple[str, ...] | None:
        """
        Restrict a requested projection to the role's allow-list.

        Args:
            role: Caller role
            requested: Fields the caller asked for (None/empty: no projection)
            actor_id: Caller identity, recorded when fields are dropped

        Returns:
            None when nothing was requested (the full entity is already
            allow-listed for every role). Otherwise the allowed subset in
            request order, or the role's whole allow-list if nothing
            requested was allowed.
        """
        if not requested:
            return None

        resolved = self.resolve_role(role)
        allowed = self._allow_lists[resolved]
        allowed_set = set(allowed)

        kept: list[str] = []
        dropped: list[str] = []
        for name in requested:
            if name in allowed_set:
                if name not in kept:
                    kept.append(name)
            elif name not in dropped:
                dropped.append(name)

        if dropped:
            audit_field_access(
                self.entity_name,
                resolved,
                requested_fields=requested,
                allowed_fields=allowed,
                dropped_fields=dropped,
                user_id=actor_id,
            )

        if not kept:
            return allowed
        return tuple(kept)
