"""
QuarterlyCountService -- snapshot / count / reconcile workflow.

Responsibility:
    Drives a physical count from creation to completion:

        create()        snapshot every InventoryRecord into pending records
        record_counts() enter physically counted quantities (batch)
        verify_records()second-person check of counted records (batch)
        add_record() / remove_record()
                        cover items found on the shelf but not in the
                        snapshot, or drop miscounted entries
        complete()      close the count, optionally writing variances back
                        into the inventory store
        cancel() / delete()

Architecture position:
    Kernel > Services -- imperative shell.  Writes stock only through
    MoveService.set_quantity.

State machine:
    Count:  IN_PROGRESS -> COMPLETED | CANCELLED (both terminal)
    Record: PENDING -> COUNTED -> VERIFIED (a re-count goes back to COUNTED)

Invariants enforced:
    - Snapshot immutability: expected_qty is captured once, in a single
      SELECT, and later ledger moves never change it.
    - Completion gating: complete() fails while any record is PENDING.
    - Closed count immutability: every mutating operation requires
      IN_PROGRESS; db/immutability.py backs this up at the ORM level.
    - Ledger-store consistency: adjustments record the actual change
      applied, which equals the variance unless the pair moved during the
      count window.

Failure modes:
    - CountNotFoundError, CountRecordNotFoundError.
    - InvalidStateTransitionError: operation on a closed count.
    - IncompleteCountError(pending).
    - DuplicateCountRecordError.
    - InvalidArgumentError: blank name, negative quantity.
    Batch operations report per-item failures instead of raising.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select

from stock_kernel.domain.dtos import (
    BatchResult,
    CountCompletionResult,
    CountEntry,
    CountRecordView,
    CountView,
    ItemFailure,
)
from stock_kernel.exceptions import (
    CountNotFoundError,
    CountRecordNotFoundError,
    DuplicateCountRecordError,
    IncompleteCountError,
    InvalidArgumentError,
    InvalidStateTransitionError,
    StockKernelError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.inventory import InventoryRecord, MoveReason
from stock_kernel.models.quarterly_count import (
    CountRecordStatus,
    CountStatus,
    QuarterlyCount,
    QuarterlyCountRecord,
)
from stock_kernel.services.base import BaseService
from stock_kernel.services.catalog_service import (
    get_location_or_raise,
    get_part_or_raise,
)
from stock_kernel.services.move_service import MoveService

logger = get_logger("services.quarterly_count")


def _status_value(status) -> str:
    return getattr(status, "value", status)


def _failure(item_id, exc: StockKernelError) -> ItemFailure:
    return ItemFailure(item_id=str(item_id), code=exc.code, message=str(exc))


class QuarterlyCountService(BaseService):
    """Owns the quarterly count lifecycle."""

    def __init__(self, session, clock=None, move_service: MoveService | None = None):
        super().__init__(session, clock)
        self._moves = move_service or MoveService(session, self.clock)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create(
        self,
        name: str,
        description: str | None,
        creator_id: UUID,
    ) -> CountView:
        """
        Open a count and snapshot every InventoryRecord into it.

        The snapshot is one SELECT over inventory_records, so each record
        reflects a quantity that really existed at one instant.
        """
        self.require_actor(creator_id, "creator_id")
        if not isinstance(name, str) or not name.strip():
            raise InvalidArgumentError("name", "must be a non-empty string")

        count = QuarterlyCount(
            name=name.strip(),
            description=description,
            status=CountStatus.IN_PROGRESS,
            created_by_id=creator_id,
            created_at=self.clock.now(),
            adjustments_applied=False,
        )
        self.session.add(count)
        self.session.flush()

        snapshot = self.session.execute(
            select(
                InventoryRecord.part_id,
                InventoryRecord.location_id,
                InventoryRecord.qty,
            )
        ).all()

        self.session.add_all(
            QuarterlyCountRecord(
                count_id=count.id,
                part_id=row.part_id,
                location_id=row.location_id,
                expected_qty=row.qty,
                status=CountRecordStatus.PENDING,
            )
            for row in snapshot
        )
        self.session.flush()

        logger.info(
            "count_created",
            extra={
                "count_id": str(count.id),
                "count_name": count.name,
                "record_count": len(snapshot),
            },
        )
        return CountView.from_model(count)

    def complete(
        self,
        count_id: UUID,
        actor_id: UUID,
        apply_adjustments: bool = False,
    ) -> CountCompletionResult:
        """
        Close a count.

        With ``apply_adjustments`` every record with a non-zero variance is
        written to the store as an absolute quantity (the counted value is
        authoritative) with reason "quarterly count adjustment" and note
        "Count: <name>[ - <record notes>]".

        Raises:
            InvalidStateTransitionError: count not IN_PROGRESS.
            IncompleteCountError: at least one record is still PENDING.
        """
        self.require_actor(actor_id)
        count = self._get_count(count_id, lock=True)
        self._require_open(count, "complete")

        pending = self._pending_count(count.id)
        if pending:
            logger.info(
                "count_completion_blocked",
                extra={"count_id": str(count.id), "pending": pending},
            )
            raise IncompleteCountError(str(count.id), pending)

        records = self.session.execute(
            select(QuarterlyCountRecord)
            .where(QuarterlyCountRecord.count_id == count.id)
            .order_by(QuarterlyCountRecord.part_id, QuarterlyCountRecord.location_id)
        ).scalars().all()

        with_variance = [
            r for r in records if r.counted_qty is not None and r.variance
        ]
        total_variance = sum(r.variance for r in records if r.variance is not None)

        adjustments = []
        if apply_adjustments:
            with LogContext.bind(count_id=str(count.id)):
                for record in with_variance:
                    note = f"Count: {count.name}"
                    if record.notes:
                        note = f"{note} - {record.notes}"
                    result = self._moves.set_quantity(
                        actor_id,
                        record.part_id,
                        record.location_id,
                        record.counted_qty,
                        reason=MoveReason.COUNT_ADJUSTMENT,
                        note=note,
                    )
                    if result is not None:
                        adjustments.append(result.move)

        count.status = CountStatus.COMPLETED
        count.completed_at = self.clock.now()
        count.closed_by_id = actor_id
        count.adjustments_applied = bool(apply_adjustments)
        self.session.flush()

        logger.info(
            "count_completed",
            extra={
                "count_id": str(count.id),
                "total_records": len(records),
                "records_with_variance": len(with_variance),
                "total_variance": total_variance,
                "adjustments_written": len(adjustments),
            },
        )
        return CountCompletionResult(
            count=CountView.from_model(count),
            total_records=len(records),
            records_with_variance=len(with_variance),
            total_variance=total_variance,
            adjustments=tuple(adjustments),
        )

    def cancel(self, count_id: UUID, actor_id: UUID) -> CountView:
        """Close a count without touching the store."""
        self.require_actor(actor_id)
        count = self._get_count(count_id, lock=True)
        self._require_open(count, "cancel")

        count.status = CountStatus.CANCELLED
        count.completed_at = self.clock.now()
        count.closed_by_id = actor_id
        self.session.flush()

        logger.info("count_cancelled", extra={"count_id": str(count.id)})
        return CountView.from_model(count)

    def delete(self, count_id: UUID) -> None:
        """Delete an IN_PROGRESS count and its records."""
        count = self._get_count(count_id, lock=True)
        self._require_open(count, "delete")

        self.session.delete(count)
        self.session.flush()
        logger.warning("count_deleted", extra={"count_id": str(count_id)})

    # =========================================================================
    # Records
    # =========================================================================

    def record_counts(
        self,
        count_id: UUID,
        entries: Iterable[CountEntry],
        actor_id: UUID,
    ) -> BatchResult:
        """
        Enter counted quantities.  Each entry succeeds or fails on its own.

        Per-item failures: COUNT_RECORD_NOT_FOUND (unknown record, or a
        record of another count) and INVALID_ARGUMENT (counted_qty not a
        non-negative int).  Records not in the batch stay as they are.
        """
        self.require_actor(actor_id)
        count = self._get_count(count_id, lock=True)
        self._require_open(count, "record counts on")

        now = self.clock.now()
        succeeded: list[UUID] = []
        failures: list[ItemFailure] = []

        for entry in entries:
            qty = entry.counted_qty
            if not isinstance(qty, int) or isinstance(qty, bool) or qty < 0:
                failures.append(
                    _failure(
                        entry.record_id,
                        InvalidArgumentError(
                            "counted_qty", "must be a non-negative integer"
                        ),
                    )
                )
                continue

            record = self._find_record(count.id, entry.record_id)
            if record is None:
                failures.append(
                    _failure(entry.record_id, CountRecordNotFoundError(str(entry.record_id)))
                )
                continue

            record.record_count(qty, actor_id, now, entry.notes)
            succeeded.append(record.id)

        self.session.flush()
        logger.info(
            "count_records_recorded",
            extra={
                "count_id": str(count.id),
                "succeeded": len(succeeded),
                "failed": len(failures),
            },
        )
        return BatchResult(succeeded=tuple(succeeded), failures=tuple(failures))

    def verify_records(
        self,
        count_id: UUID,
        record_ids: Iterable[UUID],
        actor_id: UUID,
    ) -> BatchResult:
        """Mark COUNTED records VERIFIED.  PENDING records fail per item."""
        self.require_actor(actor_id)
        count = self._get_count(count_id, lock=True)
        self._require_open(count, "verify records on")

        now = self.clock.now()
        succeeded: list[UUID] = []
        failures: list[ItemFailure] = []

        for record_id in record_ids:
            record = self._find_record(count.id, record_id)
            if record is None:
                failures.append(_failure(record_id, CountRecordNotFoundError(str(record_id))))
                continue
            if record.status == CountRecordStatus.PENDING:
                failures.append(
                    _failure(
                        record_id,
                        InvalidArgumentError("status", "record has not been counted"),
                    )
                )
                continue
            if record.status != CountRecordStatus.VERIFIED:
                record.status = CountRecordStatus.VERIFIED
                record.verified_by_id = actor_id
                record.verified_at = now
            succeeded.append(record.id)

        self.session.flush()
        logger.info(
            "count_records_verified",
            extra={
                "count_id": str(count.id),
                "succeeded": len(succeeded),
                "failed": len(failures),
            },
        )
        return BatchResult(succeeded=tuple(succeeded), failures=tuple(failures))

    def add_record(
        self,
        count_id: UUID,
        part_id: UUID,
        location_id: UUID,
        actor_id: UUID,
        expected_qty: int | None = None,
    ) -> CountRecordView:
        """
        Add a pair that was not in the snapshot.

        An item found on the shelf during counting has no snapshot baseline,
        so ``expected_qty`` defaults to 0.
        """
        self.require_actor(actor_id)
        count = self._get_count(count_id, lock=True)
        self._require_open(count, "add records to")

        part = get_part_or_raise(self.session, part_id)
        location = get_location_or_raise(self.session, location_id)

        if expected_qty is None:
            expected_qty = 0
        elif not isinstance(expected_qty, int) or isinstance(expected_qty, bool) or expected_qty < 0:
            raise InvalidArgumentError("expected_qty", "must be a non-negative integer")

        duplicate = self.session.execute(
            select(QuarterlyCountRecord.id).where(
                QuarterlyCountRecord.count_id == count.id,
                QuarterlyCountRecord.part_id == part_id,
                QuarterlyCountRecord.location_id == location_id,
            )
        ).first()
        if duplicate is not None:
            raise DuplicateCountRecordError(str(count.id), str(part_id), str(location_id))

        record = QuarterlyCountRecord(
            count_id=count.id,
            part_id=part_id,
            location_id=location_id,
            expected_qty=expected_qty,
            status=CountRecordStatus.PENDING,
        )
        self.session.add(record)
        self.session.flush()

        logger.info(
            "count_record_added",
            extra={
                "count_id": str(count.id),
                "record_id": str(record.id),
                "added_by": str(actor_id),
                "expected_qty": expected_qty,
            },
        )
        return CountRecordView.from_model(record, part=part, location=location)

    def remove_record(self, count_id: UUID, record_id: UUID) -> None:
        count = self._get_count(count_id, lock=True)
        self._require_open(count, "remove records from")

        record = self._find_record(count.id, record_id)
        if record is None:
            raise CountRecordNotFoundError(str(record_id))

        self.session.delete(record)
        self.session.flush()
        logger.info(
            "count_record_removed",
            extra={"count_id": str(count.id), "record_id": str(record_id)},
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_count(self, count_id: UUID, lock: bool = False) -> QuarterlyCount:
        stmt = select(QuarterlyCount).where(QuarterlyCount.id == count_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        count = self.session.execute(stmt).scalar_one_or_none()
        if count is None:
            raise CountNotFoundError(str(count_id))
        return count

    @staticmethod
    def _require_open(count: QuarterlyCount, operation: str) -> None:
        if count.status != CountStatus.IN_PROGRESS:
            raise InvalidStateTransitionError(
                count_id=str(count.id),
                status=_status_value(count.status),
                operation=operation,
            )

    def _find_record(self, count_id: UUID, record_id: UUID) -> QuarterlyCountRecord | None:
        record = self.session.get(QuarterlyCountRecord, record_id)
        if record is None or record.count_id != count_id:
            return None
        return record

    def _pending_count(self, count_id: UUID) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(QuarterlyCountRecord)
            .where(
                QuarterlyCountRecord.count_id == count_id,
                QuarterlyCountRecord.status == CountRecordStatus.PENDING,
            )
        ).scalar_one()
