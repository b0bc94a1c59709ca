"""
MoveService -- the single "apply move" primitive of the ledger.

Responsibility:
    Every quantity change in the system funnels through this service.  It
    updates the InventoryRecord for a (part, location) pair and appends the
    matching MoveRecord in the caller's transaction, so the store value is
    always the running sum of the ledger.

Architecture position:
    Kernel > Services -- imperative shell.  Used by TransferService,
    UndoService, QuarterlyCountService, LedgerOrchestrator and the
    receiving collaborator.

Invariants enforced:
    - InventoryRecord.qty >= 0: a write that would go negative is rejected
      before anything is written.  A negative delta never creates a row.
    - sum(MoveRecord.delta_qty) == InventoryRecord.qty per pair: the row
      and the move are flushed together.
    - One InventoryRecord per pair: lazy get-or-create inside a savepoint;
      a lost unique-constraint race rolls back the savepoint and re-reads
      the winner's row under lock.

Failure modes:
    - InvalidArgumentError: missing actor; zero, non-integer or boolean
      delta; negative absolute quantity.
    - PartNotFoundError / LocationNotFoundError.
    - InsufficientQuantityError(current, requested).

Concurrency:
    The InventoryRecord row is read with SELECT ... FOR UPDATE.  Concurrent
    writers to the same pair serialize on that lock, so two pulls can never
    both pass the sufficiency check against a stale read.  Compound
    operations lock all their rows up front with ``lock_pairs`` in sorted
    order.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from stock_kernel.domain.dtos import MoveResult, MoveView
from stock_kernel.exceptions import InsufficientQuantityError, InvalidArgumentError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory import InventoryRecord, MoveReason, MoveRecord
from stock_kernel.services.base import BaseService
from stock_kernel.services.catalog_service import (
    get_location_or_raise,
    get_part_or_raise,
)

logger = get_logger("services.move")


def _reason_value(reason: MoveReason | str | None) -> str | None:
    if isinstance(reason, MoveReason):
        return reason.value
    return reason


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class MoveService(BaseService):
    """
    Applies signed quantity changes to the inventory store.

    Guarantees:
        - Either both the InventoryRecord update and the MoveRecord insert
          are flushed, or neither is.
        - Never commits.
    """

    def apply_move(
        self,
        actor_id: UUID,
        part_id: UUID,
        location_id: UUID,
        delta_qty: int,
        reason: MoveReason | str | None = None,
        note: str | None = None,
        *,
        transfer_id: UUID | None = None,
        reversal_of_id: UUID | None = None,
    ) -> MoveResult:
        """
        Apply a signed delta to a (part, location) pair.

        Preconditions:
            - ``delta_qty`` is a non-zero int.
            - Part and location exist.

        Postconditions:
            - InventoryRecord.qty == previous qty + delta_qty (row created
              when missing and delta_qty > 0).
            - One MoveRecord with exactly ``delta_qty`` appended.

        Raises:
            InvalidArgumentError, PartNotFoundError, LocationNotFoundError,
            InsufficientQuantityError.
        """
        self.require_actor(actor_id)
        if not _is_int(delta_qty) or delta_qty == 0:
            raise InvalidArgumentError("delta_qty", "must be a non-zero integer")

        get_part_or_raise(self.session, part_id)
        get_location_or_raise(self.session, location_id)

        record = self._lock_record(part_id, location_id)
        current = record.qty if record is not None else 0

        if current + delta_qty < 0:
            self._reject(part_id, location_id, current, delta_qty, reason)

        if record is None:
            record = self._create_record(part_id, location_id)
            # A concurrent creator may have written first.
            if record.qty + delta_qty < 0:
                self._reject(part_id, location_id, record.qty, delta_qty, reason)

        return self._write(
            record,
            actor_id,
            delta_qty,
            reason,
            note,
            transfer_id=transfer_id,
            reversal_of_id=reversal_of_id,
        )

    def set_quantity(
        self,
        actor_id: UUID,
        part_id: UUID,
        location_id: UUID,
        new_qty: int,
        reason: MoveReason | str | None = MoveReason.COUNT_ADJUSTMENT,
        note: str | None = None,
    ) -> MoveResult | None:
        """
        Write an absolute quantity, recording the actual change as a move.

        The recorded delta is ``new_qty - current`` under lock, so the ledger
        sum still equals the stored value.  Returns None (and writes nothing)
        when the quantity is already ``new_qty``.
        """
        self.require_actor(actor_id)
        if not _is_int(new_qty) or new_qty < 0:
            raise InvalidArgumentError("new_qty", "must be a non-negative integer")

        get_part_or_raise(self.session, part_id)
        get_location_or_raise(self.session, location_id)

        record = self._lock_record(part_id, location_id)
        current = record.qty if record is not None else 0
        if new_qty == current:
            return None

        if record is None:
            record = self._create_record(part_id, location_id)
            if record.qty == new_qty:
                return None

        return self._write(record, actor_id, new_qty - record.qty, reason, note)

    def lock_pairs(
        self,
        part_id: UUID,
        location_ids: Iterable[UUID],
    ) -> dict[UUID, InventoryRecord | None]:
        """
        Lock the existing rows of several pairs of one part.

        Rows are locked in sorted location order so that two compound
        operations touching the same pairs cannot deadlock each other.
        Missing rows map to None.
        """
        locked: dict[UUID, InventoryRecord | None] = {}
        for location_id in sorted(set(location_ids), key=str):
            locked[location_id] = self._lock_record(part_id, location_id)
        return locked

    # =========================================================================
    # Internals
    # =========================================================================

    def _lock_record(self, part_id: UUID, location_id: UUID) -> InventoryRecord | None:
        return self.session.execute(
            select(InventoryRecord)
            .where(
                InventoryRecord.part_id == part_id,
                InventoryRecord.location_id == location_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create_record(self, part_id: UUID, location_id: UUID) -> InventoryRecord:
        """
        Insert a zero-quantity row inside a savepoint.

        On a unique-constraint race the savepoint is rolled back and the row
        the other transaction created is returned, locked.
        """
        savepoint = self.session.begin_nested()
        try:
            record = InventoryRecord(
                part_id=part_id,
                location_id=location_id,
                qty=0,
                updated_at=self.clock.now(),
            )
            self.session.add(record)
            self.session.flush()
            savepoint.commit()
            return record
        except IntegrityError:
            logger.debug(
                "inventory_record_race_retry",
                extra={"part_id": str(part_id), "location_id": str(location_id)},
            )
            savepoint.rollback()
            record = self._lock_record(part_id, location_id)
            if record is None:
                raise
            return record

    def _write(
        self,
        record: InventoryRecord,
        actor_id: UUID,
        delta_qty: int,
        reason: MoveReason | str | None,
        note: str | None,
        *,
        transfer_id: UUID | None = None,
        reversal_of_id: UUID | None = None,
    ) -> MoveResult:
        now = self.clock.now()
        record.qty = record.qty + delta_qty
        record.updated_at = now

        move = MoveRecord(
            ts=now,
            actor_id=actor_id,
            part_id=record.part_id,
            location_id=record.location_id,
            delta_qty=delta_qty,
            reason=_reason_value(reason),
            note=note,
            transfer_id=transfer_id,
            reversal_of_id=reversal_of_id,
        )
        self.session.add(move)
        self.session.flush()

        logger.info(
            "move_applied",
            extra={
                "move_id": str(move.id),
                "part_id": str(record.part_id),
                "location_id": str(record.location_id),
                "delta_qty": delta_qty,
                "new_qty": record.qty,
                "reason": move.reason,
            },
        )
        return MoveResult(new_qty=record.qty, move=MoveView.from_model(move))

    def _reject(self, part_id, location_id, current: int, delta_qty: int, reason) -> None:
        logger.info(
            "move_rejected",
            extra={
                "part_id": str(part_id),
                "location_id": str(location_id),
                "current_qty": current,
                "delta_qty": delta_qty,
                "reason": _reason_value(reason),
            },
        )
        raise InsufficientQuantityError(
            part_id=str(part_id),
            location_id=str(location_id),
            current=current,
            requested=abs(delta_qty),
        )
