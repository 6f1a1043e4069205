"""
Tests for the generic repository against SQLite.
"""

import uuid
from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, StatementError

from erp_api.models import DrugLot, ReturnReason
from erp_api.repositories import ArticleRepository, DrugLotRepository, ReturnReasonRepository
from erp_api.schemas import DrugLotCreate, DrugLotUpdate, ReturnReasonCreate
from erp_api.services.crud.errors import InvalidIdentifierError, MappingError
from erp_api.services.crud.identifiers import IdentifierValidationStrategy
from erp_api.services.crud.listing import ListQuery
from shared.config.constants import Roles


def _row_count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


class TestCreateAndList:
    """Create then list."""

    def test_create_then_list(self, db_session, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)

        created = repo.create(ReturnReasonCreate(reason_code="A", reason_name="A"))
        result = repo.list(ListQuery(page=1, limit=10)).to_dict()

        assert created.id is not None
        assert created.created_at is not None
        assert [item["reason_name"] for item in result["data"]] == ["A"]
        assert result["pagination"] == {
            "page": 1,
            "limit": 10,
            "total": 1,
            "totalPages": 1,
            "hasNext": False,
            "hasPrev": False,
        }

    def test_empty_table(self, db_session, graceful_config):
        result = ReturnReasonRepository(db_session, identifier_config=graceful_config).list()

        assert result.data == []
        assert result.pagination.total == 0
        assert result.pagination.total_pages == 0
        assert result.pagination.has_next is False

    def test_total_reflects_filters(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(limit=1, filters={"drug_id": str(seed_drug_lots["drug_a"])}))

        assert len(result.data) == 1
        assert result.pagination.total == 2
        assert result.pagination.total_pages == 2
        assert result.pagination.has_next is True


class TestSorting:
    """Multi-key sort and fallbacks."""

    def test_multi_sort(self, db_session, seed_articles, graceful_config):
        repo = ArticleRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(sort="title:asc,createdAt:desc"))

        ids = seed_articles["ids"]
        assert [a.id for a in result.data] == [ids["A-t2"], ids["A-t1"], ids["B-t1"]]

    def test_default_sort_newest_first(self, db_session, seed_articles, graceful_config):
        result = ArticleRepository(db_session, identifier_config=graceful_config).list()
        assert result.data[0].id == seed_articles["ids"]["A-t2"]

    def test_unknown_sort_field_does_not_fail(self, db_session, seed_articles, graceful_config):
        result = ArticleRepository(db_session, identifier_config=graceful_config).list(
            ListQuery(sort="doesNotExist:asc")
        )
        assert sorted(a.id for a in result.data) == [a.id for a in result.data]

    def test_sort_map_alias(self, db_session, seed_articles, graceful_config):
        result = ArticleRepository(db_session, identifier_config=graceful_config).list(
            ListQuery(sort="views:asc")
        )
        assert [a.view_count for a in result.data] == [5, 50, 500]


class TestFiltering:
    """Equality, typed filters and search."""

    def test_range_filter(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(filters={"quantity_available_min": "1", "quantity_available_max": 100}))

        assert [lot.lot_number for lot in result.data] == ["A-1"]

    def test_set_filters(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)

        included = repo.list(ListQuery(sort="lot_number:asc", filters={"lot_number_in": ["A-1", "B-1"]}))
        excluded = repo.list(ListQuery(filters={"lot_number_not_in": "A-1,B-1"}))

        assert [lot.lot_number for lot in included.data] == ["A-1", "B-1"]
        assert [lot.lot_number for lot in excluded.data] == ["A-2"]

    def test_date_exact_filter(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(filters={"expiry_date": "2025-06-30"}))

        assert [lot.lot_number for lot in result.data] == ["A-2"]

    def test_date_exact_on_timestamp_column(self, db_session, seed_articles, graceful_config):
        repo = ArticleRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(filters={"created_at": "2024-01-01"}))

        assert result.pagination.total == 3

    def test_boolean_equality_from_string(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(filters={"is_active": "false"}))

        assert [lot.lot_number for lot in result.data] == ["B-1"]

    def test_undeclared_range_key_not_applied_as_equality(self, db_session, seed_return_reasons, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(filters={"reason_name_min": "zzz"}))

        assert result.pagination.total == 3

    def test_search_is_case_insensitive(self, db_session, seed_return_reasons, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(search="EXPIR"))

        assert [r.reason_code for r in result.data] == ["EXP"]

    def test_search_wildcards_are_literal(self, db_session, seed_return_reasons, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)

        assert [r.reason_code for r in repo.list(ListQuery(search="100%")).data] == ["PCT"]
        assert repo.list(ListQuery(search="%")).pagination.total == 1

    def test_list_expiring(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        result = repo.list_expiring(date(2025, 12, 31))

        assert [lot.lot_number for lot in result.data] == ["A-1", "A-2"]


class TestIdentifierPolicy:
    """Malformed identifiers in filters and lookups."""

    def test_strict_list_issues_no_statements(self, db_session, seed_drug_lots, strict_config, statements):
        repo = DrugLotRepository(db_session, identifier_config=strict_config)
        statements.clear()

        with pytest.raises(InvalidIdentifierError):
            repo.list(ListQuery(filters={"drug_id": "not-a-uuid"}))

        assert statements == []

    def test_strict_find_by_id_issues_no_statements(self, db_session, strict_config, statements):
        repo = DrugLotRepository(db_session, identifier_config=strict_config)
        statements.clear()

        with pytest.raises(InvalidIdentifierError):
            repo.find_by_id("not-a-uuid")

        assert statements == []

    def test_graceful_equals_query_without_key(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)

        with_bad = repo.list(ListQuery(filters={"drug_id": "not-a-uuid", "is_active": True}))
        without = repo.list(ListQuery(filters={"is_active": True}))

        assert with_bad.to_dict() == without.to_dict()

    def test_graceful_lookup_is_not_found(self, db_session, graceful_config, statements):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        statements.clear()

        assert repo.find_by_id("not-a-uuid") is None
        assert repo.exists("not-a-uuid") is False
        assert repo.delete("not-a-uuid") is False
        assert repo.update("not-a-uuid", {"notes": "x"}) is None
        assert statements == []

    @pytest.mark.parametrize("config_name", ["graceful_config", "strict_config"])
    def test_comma_separated_identifier_set(self, db_session, seed_drug_lots, config_name, request):
        repo = DrugLotRepository(db_session, identifier_config=request.getfixturevalue(config_name))
        drug_a = seed_drug_lots["drug_a"]

        result = repo.list(ListQuery(filters={"drug_id_in": f"{drug_a}, {drug_a}"}, sort="lotNumber:asc"))

        assert result.pagination.total == 2
        assert [lot.lot_number for lot in result.data] == ["A-1", "A-2"]

    def test_comma_separated_set_drops_only_bad_entries(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        drug_b = seed_drug_lots["drug_b"]

        result = repo.list(ListQuery(filters={"drug_id_not_in": f"not-a-uuid,{drug_b}"}))

        assert result.pagination.total == 2

    def test_repeated_equality_value_matches_any(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        drugs = [str(seed_drug_lots["drug_a"]), str(seed_drug_lots["drug_b"])]

        assert repo.list(ListQuery(filters={"drug_id": drugs})).pagination.total == 3

    def test_replacing_identifier_fields_keeps_uuid_columns(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)

        repo.set_identifier_fields("location_id")
        assert {"created_by", "drug_id", "id"} <= repo.identifier_config.identifier_fields

        repo.configure_identifiers(identifier_fields={"lot_number"})
        assert {"created_by", "lot_number"} <= repo.identifier_config.identifier_fields

        result = repo.list(ListQuery(filters={"created_by": "not-a-uuid"}))
        assert result.pagination.total == 3

    def test_warn_lets_storage_reject(self, db_session, seed_drug_lots, warn_config):
        repo = DrugLotRepository(db_session, identifier_config=warn_config)

        with pytest.raises(StatementError):
            repo.list(ListQuery(filters={"drug_id": "not-a-uuid"}))

    def test_runtime_reconfiguration(self, db_session, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        before = repo.identifier_config

        repo.configure_identifiers(strategy=IdentifierValidationStrategy.STRICT)

        assert before.strategy is IdentifierValidationStrategy.GRACEFUL
        with pytest.raises(InvalidIdentifierError):
            repo.find_by_id("not-a-uuid")

    def test_identifier_field_management(self, db_session, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)

        repo.add_identifier_fields("external_ref")
        assert "external_ref" in repo.identifier_config.identifier_fields
        assert "id" in repo.identifier_config.identifier_fields

        repo.set_identifier_fields("reason_code")
        assert repo.identifier_config.identifier_fields == frozenset({"reason_code", "id"})


class TestProjection:
    """Role-restricted field projection."""

    def test_projection_limits_columns(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        result = repo.list(
            ListQuery(fields=("id", "lot_number", "unit_cost")),
            role=Roles.PUBLIC,
        )

        for entity in result.data:
            assert entity.model_fields_set == {"id", "lot_number"}
        assert set(result.to_dict()["data"][0]) == {"id", "lot_number"}

    def test_admin_sees_restricted_columns(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        result = repo.list(ListQuery(fields=("id", "unit_cost")), role=Roles.ADMIN)

        assert all(entity.unit_cost is not None for entity in result.data)


class TestWrites:
    """Create, update and delete."""

    def test_create_records_actor(self, db_session, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        actor = uuid.uuid4()

        lot = repo.create(
            DrugLotCreate(drug_id=uuid.uuid4(), lot_number="L-1", expiry_date=date(2030, 1, 1)),
            actor_id=str(actor),
        )

        assert lot.created_by == actor
        assert lot.updated_by is None
        assert lot.created_at is not None

    def test_create_from_raw_mapping(self, db_session, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        drug = uuid.uuid4()

        lot = repo.create({"drug_id": str(drug), "lot_number": "L-2", "expiry_date": "2030-02-01"})

        assert lot.drug_id == drug
        assert lot.expiry_date == date(2030, 2, 1)

    def test_update_injects_actor_and_timestamp(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        lot_id = seed_drug_lots["lots"]["A-1"]
        actor = uuid.uuid4()

        updated = repo.update(lot_id, DrugLotUpdate(quantity_available=3), actor_id=actor)

        assert updated.quantity_available == 3
        assert updated.updated_by == actor
        assert updated.updated_at is not None

    def test_update_without_actor_leaves_updated_by(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        lot_id = seed_drug_lots["lots"]["A-1"]
        actor = uuid.uuid4()
        repo.update(lot_id, {"notes": "first"}, actor_id=actor)

        updated = repo.update(lot_id, {"notes": "second"})

        assert updated.notes == "second"
        assert updated.updated_by == actor

    def test_update_only_touches_supplied_fields(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        lot_id = seed_drug_lots["lots"]["A-1"]

        updated = repo.update(lot_id, DrugLotUpdate(notes=None))

        assert updated.notes is None
        assert updated.quantity_available == 10
        assert updated.lot_number == "A-1"

    def test_update_missing_returns_none(self, db_session, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        assert repo.update(uuid.uuid4(), {"notes": "x"}) is None

    def test_update_with_nothing_returns_current(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        lot_id = seed_drug_lots["lots"]["A-2"]

        assert repo.update(lot_id, DrugLotUpdate()).lot_number == "A-2"

    def test_delete_is_idempotent(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        lot_id = seed_drug_lots["lots"]["A-1"]
        missing = uuid.uuid4()

        assert repo.delete(missing) is False
        assert repo.delete(lot_id) is True
        assert repo.delete(lot_id) is False
        assert repo.find_by_id(lot_id) is None

    def test_storage_errors_propagate(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)

        with pytest.raises(IntegrityError):
            repo.create({"drug_id": seed_drug_lots["drug_a"], "lot_number": "A-1", "expiry_date": date(2031, 1, 1)})

        # Session is usable again after the rollback
        assert repo.count() == 3

    def test_count_and_exists(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)

        assert repo.count() == 3
        assert repo.count({"drug_id": seed_drug_lots["drug_b"]}) == 1
        assert repo.count(search="a-") == 2
        assert repo.exists(seed_drug_lots["lots"]["B-1"]) is True
        assert repo.exists(uuid.uuid4()) is False


class TestBulk:
    """create_many / update_many / delete_many"""

    def test_create_many_applies_actor_to_all(self, db_session, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        drug = uuid.uuid4()
        actor = uuid.uuid4()

        lots = repo.create_many(
            [
                DrugLotCreate(drug_id=drug, lot_number="M-1", expiry_date=date(2030, 1, 1)),
                DrugLotCreate(drug_id=drug, lot_number="M-2", expiry_date=date(2030, 2, 1)),
            ],
            actor_id=actor,
        )

        assert [lot.lot_number for lot in lots] == ["M-1", "M-2"]
        assert all(lot.created_by == actor for lot in lots)

    def test_create_many_mixed_shapes(self, db_session, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)

        reasons = repo.create_many([
            {"reason_code": "R1", "reason_name": "One"},
            {"reason_code": "R2", "reason_name": "Two", "description": "second"},
        ])

        assert [r.reason_code for r in reasons] == ["R1", "R2"]
        assert reasons[1].description == "second"

    def test_create_many_is_all_or_nothing(self, db_session, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)

        with pytest.raises(IntegrityError):
            repo.create_many([
                {"reason_code": "DUP", "reason_name": "First"},
                {"reason_code": "DUP", "reason_name": "Second"},
            ])

        assert _row_count(db_session, ReturnReason) == 0

    def test_update_many_returns_count(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        lots = seed_drug_lots["lots"]

        changed = repo.update_many([lots["A-1"], lots["A-2"], "not-a-uuid"], {"is_active": False})

        assert changed == 2
        assert repo.count({"is_active": False}) == 3

    def test_delete_many_returns_count(self, db_session, seed_drug_lots, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)
        lots = seed_drug_lots["lots"]

        assert repo.delete_many([lots["A-1"], lots["B-1"], uuid.uuid4()]) == 2
        assert repo.delete_many([]) == 0
        assert _row_count(db_session, DrugLot) == 1


class TestTransactions:
    """with_transaction"""

    def test_error_rolls_back_earlier_writes(self, db_session, seed_return_reasons, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)

        def work(tx):
            tx.create({"reason_code": "NEW", "reason_name": "New"})
            tx.delete(seed_return_reasons["DMG"])
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            repo.with_transaction(work)

        assert repo.count() == 3
        assert repo.exists(seed_return_reasons["DMG"]) is True

    def test_commits_on_success(self, db_session, seed_return_reasons, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)

        created = repo.with_transaction(
            lambda tx: tx.create({"reason_code": "NEW", "reason_name": "New"})
        )

        db_session.rollback()
        assert repo.find_by_id(created.id).reason_code == "NEW"


class TestMapper:
    """Row mapping contract."""

    def test_none_row_is_mapping_error(self, db_session, graceful_config):
        repo = ReturnReasonRepository(db_session, identifier_config=graceful_config)

        with pytest.raises(MappingError):
            repo.mapper.to_entity(None)

    def test_to_storage_skips_unset_and_read_only(self, db_session, graceful_config):
        repo = DrugLotRepository(db_session, identifier_config=graceful_config)

        values = repo.mapper.to_storage({"notes": None, "created_at": "2020-01-01", "id": "x"})

        assert values == {"notes": None}
