"""
Unit tests for result storage and state transitions.
"""
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from solarlens.exceptions import (
    AuthorizationError,
    InvalidStateTransitionError,
    ReconciliationFailure,
    ResultNotFoundError,
)
from solarlens.models.result import DERIVED_SECTIONS, Result, ResultStatus
from solarlens.services.result_lifecycle import ResultLifecycle


def full_sections():
    return {name: {"section": name} for name in DERIVED_SECTIONS}


@pytest.fixture
def lifecycle(db_session):
    return ResultLifecycle(db_session)


@pytest.fixture
def pending(lifecycle, user):
    return lifecycle.create_pending(user.id, uuid.uuid4(), uuid.uuid4())


class TestTransitions:
    """Pending results are finalized exactly once."""

    def test_create_pending(self, pending, user):
        assert pending.status == ResultStatus.PENDING
        assert pending.user_id == user.id
        assert pending.processing_errors == []
        assert pending.completed_at is None
        assert set(pending.missing_sections()) == set(DERIVED_SECTIONS)

    def test_complete(self, lifecycle, pending):
        sources = {"production": {"source": "offline", "error": None}}
        result = lifecycle.complete(pending, full_sections(), sources)

        assert result.status == ResultStatus.COMPLETED
        assert result.completed_at is not None
        assert result.missing_sections() == []
        assert result.srec_incentives == {"section": "srec_incentives"}
        assert result.adapter_sources == sources

    def test_complete_requires_every_section(self, lifecycle, pending):
        sections = full_sections()
        sections["monthly_breakdown"] = []

        with pytest.raises(ReconciliationFailure) as exc_info:
            lifecycle.complete(pending, sections)

        assert exc_info.value.details["missing"] == ["monthly_breakdown"]
        assert pending.status == ResultStatus.PENDING

    def test_fail_records_message(self, lifecycle, pending):
        result = lifecycle.fail(pending, "Failed to generate analysis results: boom")

        assert result.status == ResultStatus.ERROR
        assert result.processing_errors == ["Failed to generate analysis results: boom"]
        assert result.solar_savings is None

    def test_completed_result_is_immutable(self, lifecycle, pending):
        lifecycle.complete(pending, full_sections())

        with pytest.raises(InvalidStateTransitionError):
            lifecycle.fail(pending, "late failure")
        with pytest.raises(InvalidStateTransitionError):
            lifecycle.complete(pending, full_sections())

    def test_error_result_is_immutable(self, lifecycle, pending):
        lifecycle.fail(pending, "boom")

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            lifecycle.complete(pending, full_sections())
        assert exc_info.value.error_code == "SLR-301"

    def test_failed_commit_leaves_result_pending(self, lifecycle, pending, fail_next_commit):
        fail_next_commit()

        with pytest.raises(OperationalError):
            lifecycle.complete(pending, full_sections())

        assert pending.status == ResultStatus.PENDING
        assert pending.solar_savings is None
        assert pending.completed_at is None

        result = lifecycle.fail(pending, "Failed to generate analysis results: database is locked")
        assert result.status == ResultStatus.ERROR


class TestAccess:
    """Reading, listing and deleting results."""

    def test_owner_can_read(self, lifecycle, pending, user):
        assert lifecycle.get(pending.id, user).id == pending.id

    def test_admin_can_read(self, lifecycle, pending, admin_user):
        assert lifecycle.get(pending.id, admin_user).id == pending.id

    def test_other_user_is_forbidden(self, lifecycle, pending, other_user):
        with pytest.raises(AuthorizationError):
            lifecycle.get(pending.id, other_user)

    def test_missing_result(self, lifecycle, user):
        with pytest.raises(ResultNotFoundError):
            lifecycle.get(uuid.uuid4(), user)

    def test_list_newest_first(self, lifecycle, user, other_user):
        first = lifecycle.create_pending(user.id, uuid.uuid4(), uuid.uuid4())
        second = lifecycle.create_pending(user.id, uuid.uuid4(), uuid.uuid4())
        lifecycle.create_pending(other_user.id, uuid.uuid4(), uuid.uuid4())

        results = lifecycle.list_for_user(user)

        assert {r.id for r in results} == {first.id, second.id}
        assert results[0].created_at >= results[1].created_at

    def test_only_admins_list_other_users(self, lifecycle, user, other_user, admin_user):
        lifecycle.create_pending(other_user.id, uuid.uuid4(), uuid.uuid4())

        with pytest.raises(AuthorizationError):
            lifecycle.list_for_user(user, owner_id=other_user.id)
        assert len(lifecycle.list_for_user(admin_user, owner_id=other_user.id)) == 1

    def test_delete(self, lifecycle, pending, user, db_session):
        lifecycle.delete(pending.id, user)

        assert db_session.query(Result).count() == 0
        with pytest.raises(ResultNotFoundError):
            lifecycle.get(pending.id, user)

    def test_delete_by_other_user_is_forbidden(self, lifecycle, pending, other_user, db_session):
        with pytest.raises(AuthorizationError):
            lifecycle.delete(pending.id, other_user)
        assert db_session.query(Result).count() == 1
