"""
ORM immutability guards.

MoveRecords are append-only from creation.  A quarterly count and its
records freeze once the count is completed or cancelled.  These tests go
around the services and poke the ORM directly, which is exactly what the
listeners exist to catch.
"""

import pytest

from stock_kernel.domain.dtos import CountEntry
from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.models.inventory import MoveRecord
from stock_kernel.models.quarterly_count import QuarterlyCount, QuarterlyCountRecord


@pytest.fixture
def applied_move(session, part, location_a, stock):
    result = stock(part, location_a, 10)
    return session.get(MoveRecord, result.move.id)


@pytest.fixture
def completed_count(session, part, location_a, stock, count_service, count_selector, test_actor_id):
    stock(part, location_a, 4)
    count = count_service.create("Q1 2024", None, test_actor_id)
    record = count_selector.records(count.id)[0]
    count_service.record_counts(count.id, [CountEntry(record.id, 4)], test_actor_id)
    count_service.complete(count.id, test_actor_id)
    return session.get(QuarterlyCount, count.id)


class TestMoveRecordImmutability:
    def test_update_delta_blocked(self, session, applied_move):
        applied_move.delta_qty = 99
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "MoveRecord"

    def test_update_note_blocked(self, session, applied_move):
        applied_move.note = "rewritten history"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, applied_move):
        session.delete(applied_move)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_violation_is_logged(self, session, applied_move, captured_logs):
        applied_move.reason = "other"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked
        assert blocked[0]["entity_type"] == "MoveRecord"
        assert blocked[0]["operation"] == "UPDATE"


class TestClosedCountImmutability:
    def test_open_count_is_editable(self, session, count_service, test_actor_id):
        count = count_service.create("Draft", None, test_actor_id)
        model = session.get(QuarterlyCount, count.id)
        model.description = "edited while open"
        session.flush()

    def test_closing_transition_allowed(self, completed_count):
        assert completed_count.is_closed

    def test_closed_count_update_blocked(self, session, completed_count):
        completed_count.name = "renamed"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "QuarterlyCount"

    def test_closed_count_delete_blocked(self, session, completed_count):
        session.delete(completed_count)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_record_of_closed_count_update_blocked(self, session, completed_count):
        record = session.query(QuarterlyCountRecord).filter_by(count_id=completed_count.id).one()
        record.counted_qty = 1
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "QuarterlyCountRecord"

    def test_record_of_closed_count_delete_blocked(self, session, completed_count):
        record = session.query(QuarterlyCountRecord).filter_by(count_id=completed_count.id).one()
        session.delete(record)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
