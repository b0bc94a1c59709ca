"""
TransferService -- two-leg atomic move of a part between locations.

Responsibility:
    Debits the source location and credits the destination as one logical
    operation.  Both legs go through MoveService.apply_move with
    reason="transfer" and share a ``transfer_id``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Atomic transfer: both legs run inside one savepoint.  A failure after
      the debit rolls the debit back, so material is never left "in
      flight" (debited from the source but not credited to the destination).
    - Deadlock freedom: both rows are locked in sorted order before either
      leg is written.

Failure modes:
    - InvalidArgumentError: qty not a positive int, or source == destination.
    - PartNotFoundError / LocationNotFoundError.
    - InsufficientQuantityError(available, requested) when the source has
      no row or too little stock.
"""

from uuid import UUID, uuid4

from stock_kernel.domain.dtos import TransferResult
from stock_kernel.exceptions import InsufficientQuantityError, InvalidArgumentError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory import MoveReason
from stock_kernel.services.base import BaseService
from stock_kernel.services.catalog_service import (
    get_location_or_raise,
    get_part_or_raise,
)
from stock_kernel.services.move_service import MoveService

logger = get_logger("services.transfer")


class TransferService(BaseService):
    """Moves stock between two locations in one compound operation."""

    def __init__(self, session, clock=None, move_service: MoveService | None = None):
        super().__init__(session, clock)
        self._moves = move_service or MoveService(session, self.clock)

    def transfer(
        self,
        actor_id: UUID,
        part_id: UUID,
        from_location_id: UUID,
        to_location_id: UUID,
        qty: int,
        note: str | None = None,
    ) -> TransferResult:
        """
        Transfer ``qty`` units of a part from one location to another.

        Default notes are "Transferred to <dest>" on the debit leg and
        "Transferred from <source>" on the credit leg; an explicit ``note``
        is written on both legs.

        Returns:
            TransferResult with both new quantities and both moves.
        """
        self.require_actor(actor_id)
        if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
            raise InvalidArgumentError("qty", "must be a positive integer")
        if from_location_id == to_location_id:
            raise InvalidArgumentError(
                "to_location_id", "source and destination must differ"
            )

        get_part_or_raise(self.session, part_id)
        source = get_location_or_raise(self.session, from_location_id)
        dest = get_location_or_raise(self.session, to_location_id)

        locked = self._moves.lock_pairs(part_id, (from_location_id, to_location_id))
        source_record = locked[from_location_id]
        available = source_record.qty if source_record is not None else 0

        if available < qty:
            logger.info(
                "transfer_rejected",
                extra={
                    "part_id": str(part_id),
                    "from_location_id": str(from_location_id),
                    "to_location_id": str(to_location_id),
                    "available": available,
                    "requested": qty,
                },
            )
            raise InsufficientQuantityError(
                part_id=str(part_id),
                location_id=str(from_location_id),
                current=available,
                requested=qty,
            )

        transfer_id = uuid4()
        with self.session.begin_nested():
            debit = self._moves.apply_move(
                actor_id,
                part_id,
                from_location_id,
                -qty,
                reason=MoveReason.TRANSFER,
                note=note or f"Transferred to {dest.location_code}",
                transfer_id=transfer_id,
            )
            credit = self._moves.apply_move(
                actor_id,
                part_id,
                to_location_id,
                qty,
                reason=MoveReason.TRANSFER,
                note=note or f"Transferred from {source.location_code}",
                transfer_id=transfer_id,
            )

        logger.info(
            "transfer_completed",
            extra={
                "transfer_id": str(transfer_id),
                "part_id": str(part_id),
                "from_location_id": str(from_location_id),
                "to_location_id": str(to_location_id),
                "qty": qty,
                "source_qty": debit.new_qty,
                "dest_qty": credit.new_qty,
            },
        )
        return TransferResult(
            source_qty=debit.new_qty,
            dest_qty=credit.new_qty,
            debit_move=debit.move,
            credit_move=credit.move,
            transfer_id=transfer_id,
        )
