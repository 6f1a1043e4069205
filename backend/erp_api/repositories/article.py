"""
Article Repository - Data access for articles.
"""

from sqlalchemy.orm import Session

from shared.config.constants import Roles
from erp_api.models import Article
from erp_api.schemas import ArticleOutput
from erp_api.services.crud.filters import FilterSpec
from erp_api.services.crud.listing import ListQuery, PaginatedResult
from erp_api.services.crud.mapper import SchemaMapper
from erp_api.services.crud.projection import FieldAccessPolicy
from erp_api.services.crud.repository import BaseRepository, EntityDefinition, FieldConfig

PUBLIC_FIELDS = ("id", "title", "content", "published_at", "created_at")
USER_FIELDS = PUBLIC_FIELDS + ("author_id", "published", "view_count")
ADMIN_FIELDS = USER_FIELDS + ("updated_at",)

article_mapper = SchemaMapper(
    ArticleOutput,
    entity_name="Article",
    writable_fields={"title", "content", "author_id", "published", "published_at", "view_count"},
)

ARTICLE_DEFINITION = EntityDefinition(
    name="Article",
    model=Article,
    mapper=article_mapper,
    search_fields=("title", "content"),
    filter_spec=FilterSpec(
        range_fields={"view_count", "published_at", "created_at"},
        set_fields={"author_id"},
        date_fields={"published_at", "created_at"},
    ),
    sort_fields={
        "title": "title",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
        "publishedAt": "published_at",
        "views": "view_count",
    },
    field_config=FieldConfig(),
    field_access=FieldAccessPolicy(
        "Article",
        {
            Roles.PUBLIC: PUBLIC_FIELDS,
            Roles.USER: USER_FIELDS,
            Roles.ADMIN: ADMIN_FIELDS,
        },
    ),
)


class ArticleRepository(BaseRepository[ArticleOutput]):
    """Repository for Article entities."""

    definition = ARTICLE_DEFINITION

    def find_published(self, page: int = 1, limit: int = 10) -> PaginatedResult[ArticleOutput]:
        """Published articles, newest publication first."""
        return self.list(ListQuery(
            page=page,
            limit=limit,
            sort="publishedAt:desc",
            filters={"published": True},
        ))


def get_article_repository(db: Session) -> ArticleRepository:
    """Factory function for dependency injection."""
    return ArticleRepository(db)
