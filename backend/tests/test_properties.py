"""
Property-based Testing with Hypothesis.
"""

import math

from hypothesis import given, settings, strategies as st

from erp_api.models import Article
from erp_api.services.crud.filters import EqualsFilter, FilterSpec, is_reserved_key
from erp_api.services.crud.identifiers import IdentifierValidationConfig, validate_identifier_filters
from erp_api.services.crud.listing import PaginationMeta
from erp_api.services.crud.query_builder import QueryBuilder, parse_sort
from shared.utils.validators import escape_like_pattern

field_names = st.from_regex(r"[a-z][a-z0-9_]{0,20}", fullmatch=True)


class TestPaginationProperties:
    """Property-based tests for pagination arithmetic."""

    @given(
        total=st.integers(min_value=0, max_value=1_000_000),
        limit=st.integers(min_value=1, max_value=1000),
        page=st.integers(min_value=1, max_value=5000),
    )
    @settings(max_examples=200)
    def test_pagination_invariants(self, total, limit, page):
        """Property: totalPages = ceil(total/limit), hasNext <=> page < totalPages, hasPrev <=> page > 1."""
        meta = PaginationMeta.from_total(page, limit, total)

        assert meta.total_pages == math.ceil(total / limit)
        assert meta.has_next == (page < meta.total_pages)
        assert meta.has_prev == (page > 1)


class TestFilterProperties:
    """Property-based tests for filter reservation."""

    @given(
        name=field_names,
        suffix=st.sampled_from(["_min", "_max", "_in", "_not_in", "_at", "_date"]),
        value=st.text(max_size=10),
    )
    def test_reserved_keys_never_equality(self, name, suffix, value):
        """Property: reserved suffixes are never parsed as equality by default."""
        key = name + suffix
        parsed = FilterSpec().parse({key: value})

        assert is_reserved_key(key)
        assert not any(isinstance(item, EqualsFilter) for item in parsed)


class TestSortProperties:
    """Property-based tests for sort handling."""

    @given(expression=st.text(max_size=60))
    def test_parse_sort_never_raises(self, expression):
        """Property: any sort expression parses to (name, asc|desc) pairs."""
        for _, direction in parse_sort(expression):
            assert direction in ("asc", "desc")

    @given(name=st.text(max_size=30))
    def test_unknown_sort_field_resolves_to_a_column(self, name):
        """Property: resolving never fails and always yields a real column."""
        builder = QueryBuilder(Article.__table__)
        column = builder.resolve_sort_column(name)
        assert any(column is candidate for candidate in Article.__table__.c)


class TestIdentifierProperties:
    """Property-based tests for identifier validation."""

    @given(value=st.text(max_size=40))
    def test_graceful_output_is_subset(self, value):
        """Property: GRACEFUL never adds keys and never keeps a malformed identifier."""
        config = IdentifierValidationConfig(strategy="graceful", identifier_fields={"drug_id"})
        result = validate_identifier_filters({"drug_id": value, "name": value}, config)

        assert set(result) <= {"drug_id", "name"}
        assert result["name"] == value
        if "drug_id" in result:
            assert str(result["drug_id"]) == value.strip().lower()


class TestSearchProperties:
    """Property-based tests for LIKE escaping."""

    @given(term=st.text(max_size=50))
    def test_escaped_term_has_no_bare_wildcards(self, term):
        """Property: after escaping, every % and _ is preceded by the escape character."""
        escaped = escape_like_pattern(term)
        i = 0
        while i < len(escaped):
            if escaped[i] == "\\":
                i += 2
                continue
            assert escaped[i] not in "%_"
            i += 1
