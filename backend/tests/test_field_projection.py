"""
Tests for role-based projection allow-lists.
"""

import logging

import pytest

from erp_api.services.crud.projection import FieldAccessPolicy
from shared.config.constants import Roles


@pytest.fixture
def policy():
    return FieldAccessPolicy(
        "Widget",
        {
            Roles.PUBLIC: ("id", "name"),
            Roles.ADMIN: ("id", "name", "secret_field"),
        },
    )


def _audit_records(caplog):
    return [r for r in caplog.records if r.name == "security.audit"]


class TestProjection:
    """FieldAccessPolicy.project"""

    def test_restricted_field_dropped_and_logged_once(self, policy, caplog):
        with caplog.at_level(logging.WARNING, logger="security.audit"):
            fields = policy.project(Roles.PUBLIC, ["id", "secret_field"], actor_id="user-42")

        assert fields == ("id",)
        records = _audit_records(caplog)
        assert len(records) == 1
        data = records[0].extra_data
        assert data["event_type"] == "RESTRICTED_FIELDS_REQUESTED"
        assert data["role"] == Roles.PUBLIC
        assert data["requested_fields"] == ["id", "secret_field"]
        assert data["allowed_fields"] == ["id", "name"]
        assert data["dropped_fields"] == ["secret_field"]
        assert data["user_id"] == "us***"

    def test_allowed_request_not_logged(self, policy, caplog):
        with caplog.at_level(logging.WARNING, logger="security.audit"):
            fields = policy.project(Roles.ADMIN, ["secret_field", "id"])

        assert fields == ("secret_field", "id")
        assert _audit_records(caplog) == []

    def test_empty_request_means_no_restriction(self, policy):
        assert policy.project(Roles.PUBLIC, None) is None
        assert policy.project(Roles.PUBLIC, []) is None

    def test_all_fields_dropped_falls_back_to_allow_list(self, policy):
        assert policy.project(Roles.PUBLIC, ["secret_field"]) == ("id", "name")

    def test_unknown_role_uses_default(self, policy):
        assert policy.project("superuser", ["id", "secret_field"]) == ("id",)
        assert policy.project(None, ["secret_field"]) == ("id", "name")

    def test_duplicates_collapsed(self, policy):
        assert policy.project(Roles.ADMIN, ["id", "id", "name"]) == ("id", "name")

    def test_missing_default_role_rejected(self):
        with pytest.raises(ValueError):
            FieldAccessPolicy("Widget", {Roles.ADMIN: ("id",)})
