"""
LedgerOrchestrator -- the transaction boundary of the stock kernel.

Responsibility:
    Each public method is one compound operation: it runs the kernel
    services inside the session's transaction, commits once on success and
    rolls back on any failure.  Nothing is ever half-applied: a move and its
    ledger row, both legs of a transfer, or a count completion and all of
    its adjustments persist together or not at all.

Architecture position:
    Kernel > Services -- the only kernel class that commits.  Callers (an
    HTTP layer, a kiosk backend, a script) create one orchestrator per
    session.

Retry:
    PostgreSQL may abort a transaction with a serialization failure
    (SQLSTATE 40001) or a deadlock (40P01).  Those are rolled back and the
    whole operation is replayed, up to ``max_attempts`` times, after which
    ConcurrencyConflictError is raised.  Retry requires auto_commit, since
    the orchestrator must own the transaction it replays.

Logging:
    Every call binds correlation_id, actor_id and operation into LogContext.
    Typed kernel errors (expected, user-recoverable) are logged at INFO as
    ``operation_rejected``; anything else at ERROR as ``operation_failed``.
"""

import time
from collections.abc import Callable, Iterable
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    BatchResult,
    CountCompletionResult,
    CountEntry,
    CountRecordView,
    CountView,
    MoveResult,
    TransferResult,
    UndoResult,
)
from stock_kernel.exceptions import ConcurrencyConflictError, StockKernelError
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.inventory import MoveReason
from stock_kernel.services.move_service import MoveService
from stock_kernel.services.quarterly_count_service import QuarterlyCountService
from stock_kernel.services.transfer_service import TransferService
from stock_kernel.services.undo_service import UndoService

logger = get_logger("services.ledger_orchestrator")

T = TypeVar("T")

# SQLSTATE codes PostgreSQL uses for retryable transaction aborts
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def is_retryable_db_error(exc: OperationalError) -> bool:
    """True for serialization failures and deadlocks."""
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _RETRYABLE_SQLSTATES:
        return True
    message = str(exc).lower()
    return "deadlock" in message or "could not serialize" in message


class LedgerOrchestrator:
    """
    Compound ledger operations with commit/rollback/retry.

    By default every method commits on success and rolls back on failure.
    Set auto_commit=False to delegate transaction control to the caller
    (tests, or a caller composing several operations into one transaction).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
        max_attempts: int = 3,
        retry_backoff_seconds: float = 0.05,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._max_attempts = max_attempts
        self._retry_backoff_seconds = retry_backoff_seconds

        self._moves = MoveService(session, self._clock)
        self._transfers = TransferService(session, self._clock, self._moves)
        self._undo = UndoService(session, self._clock, self._moves)
        self._counts = QuarterlyCountService(session, self._clock, self._moves)

    # =========================================================================
    # Moves
    # =========================================================================

    def apply_move(
        self,
        actor_id: UUID,
        part_id: UUID,
        location_id: UUID,
        delta_qty: int,
        reason: MoveReason | str | None = None,
        note: str | None = None,
    ) -> MoveResult:
        """Pull (negative) or return (positive) stock at one location."""
        return self._run(
            "apply_move",
            actor_id,
            lambda: self._moves.apply_move(
                actor_id, part_id, location_id, delta_qty, reason=reason, note=note
            ),
        )

    def adjust(
        self,
        actor_id: UUID,
        part_id: UUID,
        location_id: UUID,
        delta_qty: int,
        note: str | None = None,
        reason: MoveReason | str | None = MoveReason.ADJUSTMENT,
    ) -> MoveResult:
        """
        Administrative correction.

        Same primitive as apply_move: a positive delta creates the row when
        missing, a negative delta on a missing row is insufficient stock.
        """
        return self._run(
            "adjust",
            actor_id,
            lambda: self._moves.apply_move(
                actor_id, part_id, location_id, delta_qty, reason=reason, note=note
            ),
        )

    def transfer(
        self,
        actor_id: UUID,
        part_id: UUID,
        from_location_id: UUID,
        to_location_id: UUID,
        qty: int,
        note: str | None = None,
    ) -> TransferResult:
        return self._run(
            "transfer",
            actor_id,
            lambda: self._transfers.transfer(
                actor_id, part_id, from_location_id, to_location_id, qty, note=note
            ),
        )

    def undo(self, actor_id: UUID, move_id: UUID, note: str | None = None) -> UndoResult:
        return self._run(
            "undo",
            actor_id,
            lambda: self._undo.undo(actor_id, move_id, note=note),
            move_id=str(move_id),
        )

    # =========================================================================
    # Quarterly counts
    # =========================================================================

    def create_count(
        self,
        name: str,
        description: str | None,
        creator_id: UUID,
    ) -> CountView:
        return self._run(
            "create_count",
            creator_id,
            lambda: self._counts.create(name, description, creator_id),
        )

    def record_counts(
        self,
        count_id: UUID,
        entries: Iterable[CountEntry],
        actor_id: UUID,
    ) -> BatchResult:
        entries = tuple(entries)
        return self._run(
            "record_counts",
            actor_id,
            lambda: self._counts.record_counts(count_id, entries, actor_id),
            count_id=str(count_id),
        )

    def verify_records(
        self,
        count_id: UUID,
        record_ids: Iterable[UUID],
        actor_id: UUID,
    ) -> BatchResult:
        record_ids = tuple(record_ids)
        return self._run(
            "verify_records",
            actor_id,
            lambda: self._counts.verify_records(count_id, record_ids, actor_id),
            count_id=str(count_id),
        )

    def add_count_record(
        self,
        count_id: UUID,
        part_id: UUID,
        location_id: UUID,
        actor_id: UUID,
        expected_qty: int | None = None,
    ) -> CountRecordView:
        return self._run(
            "add_count_record",
            actor_id,
            lambda: self._counts.add_record(
                count_id, part_id, location_id, actor_id, expected_qty=expected_qty
            ),
            count_id=str(count_id),
        )

    def remove_count_record(
        self,
        count_id: UUID,
        record_id: UUID,
        actor_id: UUID,
    ) -> None:
        return self._run(
            "remove_count_record",
            actor_id,
            lambda: self._counts.remove_record(count_id, record_id),
            count_id=str(count_id),
        )

    def complete_count(
        self,
        count_id: UUID,
        actor_id: UUID,
        apply_adjustments: bool = False,
    ) -> CountCompletionResult:
        return self._run(
            "complete_count",
            actor_id,
            lambda: self._counts.complete(
                count_id, actor_id, apply_adjustments=apply_adjustments
            ),
            count_id=str(count_id),
        )

    def cancel_count(self, count_id: UUID, actor_id: UUID) -> CountView:
        return self._run(
            "cancel_count",
            actor_id,
            lambda: self._counts.cancel(count_id, actor_id),
            count_id=str(count_id),
        )

    def delete_count(self, count_id: UUID, actor_id: UUID) -> None:
        return self._run(
            "delete_count",
            actor_id,
            lambda: self._counts.delete(count_id),
            count_id=str(count_id),
        )

    # =========================================================================
    # Transaction boundary
    # =========================================================================

    def _run(
        self,
        operation: str,
        actor_id: UUID | None,
        work: Callable[[], T],
        **context: str,
    ) -> T:
        correlation_id = str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=str(actor_id) if actor_id else None,
            operation=operation,
            **context,
        ):
            t0 = time.monotonic()
            attempt = 0
            while True:
                attempt += 1
                try:
                    result = work()
                    if self._auto_commit:
                        self._session.commit()
                    logger.info(
                        "operation_completed",
                        extra={
                            "attempts": attempt,
                            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                        },
                    )
                    return result

                except OperationalError as exc:
                    if self._auto_commit:
                        self._session.rollback()
                    if not (self._auto_commit and is_retryable_db_error(exc)):
                        logger.error("operation_failed", exc_info=True)
                        raise
                    if attempt >= self._max_attempts:
                        logger.error(
                            "operation_retries_exhausted",
                            extra={"attempts": attempt},
                        )
                        raise ConcurrencyConflictError(operation, attempt) from exc
                    logger.warning(
                        "operation_retry",
                        extra={"attempt": attempt, "max_attempts": self._max_attempts},
                    )
                    time.sleep(self._retry_backoff_seconds * attempt)

                except StockKernelError:
                    if self._auto_commit:
                        self._session.rollback()
                    logger.info(
                        "operation_rejected",
                        extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                        exc_info=True,
                    )
                    raise

                except Exception:
                    if self._auto_commit:
                        self._session.rollback()
                    logger.error(
                        "operation_failed",
                        extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                        exc_info=True,
                    )
                    raise
