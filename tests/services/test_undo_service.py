"""
UndoService unit tests.

Undo never edits or deletes the original move; it appends the opposite
delta on the same pair and links it with reversal_of_id.
"""

from uuid import uuid4

import pytest

from stock_kernel.exceptions import (
    InsufficientQuantityError,
    InvalidArgumentError,
    MoveNotFoundError,
)
from stock_kernel.models.inventory import MoveRecord


class TestUndo:
    def test_undo_return_appends_opposite_move(
        self, session, move_service, undo_service, inventory_selector, part, location_a, stock, test_actor_id
    ):
        stock(part, location_a, 2)
        returned = move_service.apply_move(test_actor_id, part.id, location_a.id, 8, reason="return")
        assert returned.new_qty == 10

        result = undo_service.undo(test_actor_id, returned.move.id)

        assert result.new_qty == 2
        assert result.compensating_move.delta_qty == -8
        assert result.compensating_move.reversal_of_id == returned.move.id
        assert result.compensating_move.reason == "undo"
        assert result.original_move_id == returned.move.id
        assert inventory_selector.get_quantity(part.id, location_a.id) == 2

        original = session.get(MoveRecord, returned.move.id)
        assert original.delta_qty == 8
        assert original.note == returned.move.note

    def test_undo_pull_restores_stock(
        self, move_service, undo_service, part, location_a, stock, test_actor_id
    ):
        stock(part, location_a, 10)
        pulled = move_service.apply_move(test_actor_id, part.id, location_a.id, -6)

        result = undo_service.undo(test_actor_id, pulled.move.id)

        assert result.new_qty == 10
        assert result.compensating_move.delta_qty == 6

    def test_default_note_names_original_timestamp(
        self, move_service, undo_service, part, location_a, test_actor_id
    ):
        move = move_service.apply_move(test_actor_id, part.id, location_a.id, 3)
        result = undo_service.undo(test_actor_id, move.move.id)
        assert result.compensating_move.note.startswith("Undoing move from ")

    def test_explicit_note(self, move_service, undo_service, part, location_a, test_actor_id):
        move = move_service.apply_move(test_actor_id, part.id, location_a.id, 3)
        result = undo_service.undo(test_actor_id, move.move.id, note="wrong bin")
        assert result.compensating_move.note == "wrong bin"

    def test_undo_rejected_when_stock_already_consumed(
        self, move_service, undo_service, inventory_selector, part, location_a, test_actor_id
    ):
        returned = move_service.apply_move(test_actor_id, part.id, location_a.id, 8)
        move_service.apply_move(test_actor_id, part.id, location_a.id, -5)

        with pytest.raises(InsufficientQuantityError) as exc_info:
            undo_service.undo(test_actor_id, returned.move.id)

        assert exc_info.value.current == 3
        assert exc_info.value.requested == 8
        assert inventory_selector.get_quantity(part.id, location_a.id) == 3

    def test_unknown_move(self, undo_service, test_actor_id):
        with pytest.raises(MoveNotFoundError):
            undo_service.undo(test_actor_id, uuid4())

    def test_missing_actor_rejected(
        self, move_service, undo_service, inventory_selector, part, location_a, test_actor_id
    ):
        returned = move_service.apply_move(test_actor_id, part.id, location_a.id, 8)
        with pytest.raises(InvalidArgumentError):
            undo_service.undo(None, returned.move.id)
        assert inventory_selector.get_quantity(part.id, location_a.id) == 8

    def test_undo_of_undo_restores_again(
        self, move_service, undo_service, move_selector, part, location_a, test_actor_id
    ):
        first = move_service.apply_move(test_actor_id, part.id, location_a.id, 4)
        undone = undo_service.undo(test_actor_id, first.move.id)
        redone = undo_service.undo(test_actor_id, undone.compensating_move.id)

        assert redone.new_qty == 4
        assert redone.compensating_move.delta_qty == 4
        assert move_selector.ledger_sum(part.id, location_a.id) == 4

    def test_undo_applied_logged(
        self, move_service, undo_service, part, location_a, test_actor_id, captured_logs
    ):
        move = move_service.apply_move(test_actor_id, part.id, location_a.id, 3)
        undo_service.undo(test_actor_id, move.move.id)

        logs = [r for r in captured_logs() if r["message"] == "undo_applied"]
        assert logs[0]["original_move_id"] == str(move.move.id)
        assert logs[0]["delta_qty"] == -3
