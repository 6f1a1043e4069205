"""
Query Builder: turns a ListQuery into a data statement and a count statement.

Steps, in order:
    1. projection  - validated column names, or every column
    2. identifiers - filter map passed through the Identifier Guard
    3. search      - OR of case-insensitive partial matches
    4. filters     - typed filters from the entity's FilterSpec
    5. sort        - "field[:asc|desc],..." with primary-key fallback
    6. pagination  - limit/offset on the data statement only

The count statement is derived from the filtered and searched statement
before limit/offset, so both observe the same predicates. No primary-key
tie-breaker is appended to the sort.
"""

import re
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import Column, ColumnElement, Select, Table, Uuid, and_, func, or_, select

from shared.config.constants import (
    FIELD_NAME_PATTERN,
    SORT_DIRECTION_SEPARATOR,
    SORT_PAIR_SEPARATOR,
    Limits,
    SortDirection,
)
from shared.config.logging import get_logger
from shared.utils.exceptions import ValidationError
from shared.utils.validators import escape_like_pattern, sanitize_search_term

from erp_api.services.crud.filters import (
    DateExactFilter,
    EqualsFilter,
    Filter,
    FilterSpec,
    RangeFilter,
    SetFilter,
)
from erp_api.services.crud.identifiers import IdentifierValidationConfig, validate_identifier_filters
from erp_api.services.crud.listing import ListQuery

logger = get_logger(__name__)

_FIELD_NAME_RE = re.compile(FIELD_NAME_PATTERN)
_CAMEL_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def camel_to_snake(name: str) -> str:
    """createdAt -> created_at"""
    return _CAMEL_BOUNDARY_RE.sub("_", name).lower()


def parse_sort(expression: str | None) -> list[tuple[str, str]]:
    """
    Split a sort expression into (field, direction) pairs.

    Missing or unrecognized directions become descending. Empty segments
    are skipped. Field names are returned unresolved.
    """
    if not expression:
        return []

    pairs = []
    for segment in expression.split(SORT_PAIR_SEPARATOR):
        segment = segment.strip()
        if not segment:
            continue
        name, _, direction = segment.partition(SORT_DIRECTION_SEPARATOR)
        direction = direction.strip().lower()
        if direction not in (SortDirection.ASC, SortDirection.DESC):
            direction = SortDirection.DEFAULT
        pairs.append((name.strip(), direction))
    return pairs


@dataclass(frozen=True)
class QueryPlan:
    """Executable statements for one list request."""

    statement: Select
    count_statement: Select
    columns: tuple[str, ...]
    page: int
    limit: int


class QueryBuilder:
    """
    Builds list statements against one table.

    Args:
        table: Target table (Model.__table__)
        search_fields: Columns matched by the free-text search
        filter_spec: Range/set/date declarations for typed filters
        sort_fields: API sort name -> column name (e.g. {"createdAt": "created_at"})
        created_at_column: Column used by the default sort, if the table has it
    """

    def __init__(
        self,
        table: Table,
        *,
        search_fields: Sequence[str] = (),
        filter_spec: FilterSpec | None = None,
        sort_fields: Mapping[str, str] | None = None,
        created_at_column: str | None = "created_at",
    ):
        self.table = table
        self.search_fields = tuple(name for name in search_fields if name in table.c)
        self.filter_spec = filter_spec or FilterSpec()
        self.sort_fields = dict(sort_fields or {})

        pk_columns = list(table.primary_key.columns)
        if not pk_columns:
            raise ValueError(f"Table {table.name} has no primary key")
        self.primary_key: Column = pk_columns[0]

        if created_at_column and created_at_column in table.c:
            self.default_sort_column = table.c[created_at_column]
        else:
            self.default_sort_column = self.primary_key

    # =========================================================================
    # Public API
    # =========================================================================

    def build(
        self,
        query: ListQuery,
        identifier_config: IdentifierValidationConfig,
        projection: Sequence[str] | None = None,
    ) -> QueryPlan:
        """
        Build the data and count statements for a list request.

        Args:
            query: The list request
            identifier_config: Policy for identifier-typed filter values
            projection: Fields allowed by the projection guard (None: all)

        Raises:
            InvalidIdentifierError: STRICT policy and a malformed identifier
            ValidationError: A filter value cannot be read as its column type
        """
        columns = self.select_columns(projection)
        criteria = self.build_criteria(query.filters, query.search, identifier_config)

        base = select(*columns).where(*criteria)
        count_statement = select(func.count()).select_from(base.subquery())

        statement = (
            base.order_by(*self.order_by(query.sort))
            .limit(query.limit)
            .offset(query.offset)
        )

        return QueryPlan(
            statement=statement,
            count_statement=count_statement,
            columns=tuple(column.name for column in columns),
            page=query.page,
            limit=query.limit,
        )

    def build_criteria(
        self,
        filters: Mapping[str, Any],
        search: str | None,
        identifier_config: IdentifierValidationConfig,
    ) -> list[ColumnElement[bool]]:
        """WHERE clauses for filters plus search."""
        checked = validate_identifier_filters(filters, identifier_config)

        criteria = []
        for item in self.filter_spec.parse(checked):
            clause = self._filter_clause(item)
            if clause is not None:
                criteria.append(clause)

        search_clause = self._search_clause(search)
        if search_clause is not None:
            criteria.append(search_clause)

        return criteria

    def select_columns(self, projection: Sequence[str] | None) -> list[Column]:
        """Projected columns; names that are malformed or not columns are dropped."""
        if not projection:
            return list(self.table.c)

        columns = []
        for name in projection:
            if not _FIELD_NAME_RE.match(name) or name not in self.table.c:
                logger.debug("Projection field dropped", table=self.table.name, field=name)
                continue
            column = self.table.c[name]
            if column not in columns:
                columns.append(column)

        return columns or list(self.table.c)

    def order_by(self, expression: str | None) -> list[ColumnElement]:
        """ORDER BY clauses; the default is newest first."""
        pairs = parse_sort(expression)
        if not pairs:
            return [self.default_sort_column.desc()]

        clauses = []
        for name, direction in pairs:
            column = self.resolve_sort_column(name)
            clauses.append(column.asc() if direction == SortDirection.ASC else column.desc())
        return clauses

    def resolve_sort_column(self, name: str) -> Column:
        """Sort map, then exact column, then camelCase column; else the primary key."""
        mapped = self.sort_fields.get(name)
        if mapped and mapped in self.table.c:
            return self.table.c[mapped]
        if _FIELD_NAME_RE.match(name):
            if name in self.table.c:
                return self.table.c[name]
            snake = camel_to_snake(name)
            if snake in self.table.c:
                return self.table.c[snake]

        logger.debug("Unknown sort field, using primary key", table=self.table.name, field=name)
        return self.primary_key

    # =========================================================================
    # Clauses
    # =========================================================================

    def _search_clause(self, search: str | None) -> ColumnElement[bool] | None:
        if not search or not self.search_fields:
            return None

        term = sanitize_search_term(search, Limits.MAX_SEARCH_TERM_LENGTH)
        if not term:
            return None

        pattern = f"%{escape_like_pattern(term)}%"
        return or_(*(self.table.c[name].ilike(pattern, escape="\\") for name in self.search_fields))

    def _filter_clause(self, item: Filter) -> ColumnElement[bool] | None:
        if item.field not in self.table.c or not _FIELD_NAME_RE.match(item.field):
            logger.debug("Filter on unknown column skipped", table=self.table.name, field=item.field)
            return None

        column = self.table.c[item.field]

        if isinstance(item, EqualsFilter):
            if isinstance(item.value, (list, tuple, set, frozenset)):
                return column.in_([self._coerce(column, value) for value in item.value])
            return column == self._coerce(column, item.value)

        if isinstance(item, SetFilter):
            values = [self._coerce(column, value) for value in item.values]
            return column.not_in(values) if item.negate else column.in_(values)

        if isinstance(item, RangeFilter):
            bounds = []
            if item.minimum is not None:
                bounds.append(column >= self._coerce(column, item.minimum))
            if item.maximum is not None:
                bounds.append(column <= self._coerce(column, item.maximum))
            return and_(*bounds) if bounds else None

        if isinstance(item, DateExactFilter):
            return self._date_clause(column, item.value)

        return None

    def _date_clause(self, column: Column, value: Any) -> ColumnElement[bool]:
        day = value if isinstance(value, date) and not isinstance(value, datetime) else None
        if day is None:
            parsed = self._parse(column.name, str(value), datetime.fromisoformat)
            day = parsed.date()

        if self._python_type(column) is datetime:
            start = datetime.combine(day, time.min)
            return and_(column >= start, column < start + timedelta(days=1))
        return column == day

    # =========================================================================
    # Value coercion
    # =========================================================================

    @staticmethod
    def _python_type(column: Column) -> type | None:
        try:
            return column.type.python_type
        except NotImplementedError:
            return None

    def _coerce(self, column: Column, value: Any) -> Any:
        """
        Read a filter value as its column's Python type.

        Identifier columns are not touched here: the Identifier Guard has
        already normalized valid values, and under WARN a malformed value
        must reach the database as supplied.
        """
        if isinstance(column.type, Uuid) or isinstance(value, uuid.UUID):
            return value

        python_type = self._python_type(column)
        if python_type is None:
            return value

        if python_type is bool:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValidationError(f"Invalid boolean value for filter '{column.name}'", field=column.name)
        if isinstance(value, python_type) and not isinstance(value, bool):
            return value
        if python_type is int:
            return self._parse(column.name, value, int)
        if python_type is float:
            return self._parse(column.name, value, float)
        if python_type is datetime:
            return self._parse(column.name, str(value), datetime.fromisoformat)
        if python_type is date:
            return self._parse(column.name, str(value)[:10], date.fromisoformat)
        if python_type is str:
            return str(value)
        return value

    @staticmethod
    def _parse(field_name: str, value: Any, parser) -> Any:
        try:
            return parser(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid value for filter '{field_name}'", field=field_name)
