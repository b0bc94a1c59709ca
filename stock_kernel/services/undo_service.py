"""
UndoService -- compensating inverse moves.

Responsibility:
    Reverses the effect of a prior move by appending a new move with the
    negated delta.  The original MoveRecord is never touched.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Append-only ledger: undo only appends; the compensating move points
      back at the original through ``reversal_of_id``.
    - Non-negativity: a compensation that would drive the quantity below
      zero (stock drawn down since the original move) is rejected.

Failure modes:
    - MoveNotFoundError: unknown move id.
    - InsufficientQuantityError: compensation would go negative.

Undo of an undo is itself a regular undo and restores the state the first
undo removed.  The same move may be undone more than once; non-negativity
bounds how far that can go.
"""

from uuid import UUID

from stock_kernel.domain.dtos import UndoResult
from stock_kernel.exceptions import MoveNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory import MoveReason, MoveRecord
from stock_kernel.services.base import BaseService
from stock_kernel.services.move_service import MoveService

logger = get_logger("services.undo")


class UndoService(BaseService):
    """Appends the inverse of a recorded move."""

    def __init__(self, session, clock=None, move_service: MoveService | None = None):
        super().__init__(session, clock)
        self._moves = move_service or MoveService(session, self.clock)

    def undo(
        self,
        actor_id: UUID,
        move_id: UUID,
        note: str | None = None,
    ) -> UndoResult:
        """
        Apply ``-original.delta_qty`` to the original pair.

        Default note: "Undoing move from <original ts, ISO-8601>".
        """
        self.require_actor(actor_id)
        original = self.session.get(MoveRecord, move_id)
        if original is None:
            raise MoveNotFoundError(str(move_id))

        result = self._moves.apply_move(
            actor_id,
            original.part_id,
            original.location_id,
            -original.delta_qty,
            reason=MoveReason.UNDO,
            note=note or f"Undoing move from {original.ts.isoformat()}",
            reversal_of_id=original.id,
        )

        logger.info(
            "undo_applied",
            extra={
                "original_move_id": str(original.id),
                "compensating_move_id": str(result.move.id),
                "delta_qty": result.move.delta_qty,
                "new_qty": result.new_qty,
            },
        )
        return UndoResult(
            new_qty=result.new_qty,
            compensating_move=result.move,
            original_move_id=original.id,
        )
