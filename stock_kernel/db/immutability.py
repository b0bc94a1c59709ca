"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The move ledger is the audit trail of the stock room.  A move, once written,
is a fact: corrections are new compensating moves, never edits.  A closed
quarterly count is a permanent record of what the system expected versus
what was physically on the shelf.

QuarterlyCountService and MoveService already refuse these operations.  This
module catches everything else that goes through the ORM (a stray attribute
assignment, a session.delete() in a script) before the SQL reaches the
database.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                | When Immutable                       | Operations blocked
----------------------|--------------------------------------|------------------
MoveRecord            | ALWAYS (from creation)               | UPDATE, DELETE
QuarterlyCount        | After status = COMPLETED / CANCELLED | UPDATE, DELETE
QuarterlyCountRecord  | When parent count is closed          | UPDATE, DELETE

Bulk ``update()`` / ``delete()`` statements and database-level cascades
(deleting a part or location) do not fire mapper events and are not covered.

===============================================================================
USAGE
===============================================================================

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_move_record_immutability(mapper, connection, target):
    """Moves are append-only: no field may change after insert."""
    from stock_kernel.models.inventory import MoveRecord

    if not isinstance(target, MoveRecord):
        return

    _blocked(
        "MoveRecord",
        target.id,
        "UPDATE",
        "Moves are append-only; record a compensating move instead",
    )


def _check_move_record_delete(mapper, connection, target):
    from stock_kernel.models.inventory import MoveRecord

    if not isinstance(target, MoveRecord):
        return

    _blocked(
        "MoveRecord",
        target.id,
        "DELETE",
        "Moves cannot be deleted",
    )


def _was_closed_before(target) -> bool:
    """
    Whether the count was already COMPLETED/CANCELLED before this flush.

    The closing transition itself (IN_PROGRESS -> terminal) is allowed; any
    change after it is not.  Attribute history tells the two apart.
    """
    from stock_kernel.models.quarterly_count import TERMINAL_COUNT_STATUSES

    status_history = get_history(target, "status")

    if status_history.deleted:
        return status_history.deleted[0] in TERMINAL_COUNT_STATUSES
    if status_history.added:
        # First assignment on a fresh object; nothing was persisted before.
        return False
    return target.status in TERMINAL_COUNT_STATUSES


def _check_count_immutability(mapper, connection, target):
    """Block any change to a count that was already closed."""
    from sqlalchemy import inspect

    from stock_kernel.models.quarterly_count import QuarterlyCount

    if not isinstance(target, QuarterlyCount):
        return

    if not _was_closed_before(target):
        return

    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key == "records":
            continue
        if attr.history.has_changes():
            _blocked(
                "QuarterlyCount",
                target.id,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on a closed count",
                field=attr.key,
            )


def _check_count_delete(mapper, connection, target):
    from stock_kernel.models.quarterly_count import (
        TERMINAL_COUNT_STATUSES,
        QuarterlyCount,
    )

    if not isinstance(target, QuarterlyCount):
        return

    if target.status in TERMINAL_COUNT_STATUSES:
        _blocked(
            "QuarterlyCount",
            target.id,
            "DELETE",
            "Closed counts are permanent audit records",
        )


def _parent_count_closed(target) -> bool:
    from stock_kernel.models.quarterly_count import TERMINAL_COUNT_STATUSES

    count = target.count
    return count is not None and count.status in TERMINAL_COUNT_STATUSES


def _check_count_record_immutability(mapper, connection, target):
    from stock_kernel.models.quarterly_count import QuarterlyCountRecord

    if not isinstance(target, QuarterlyCountRecord):
        return

    if _parent_count_closed(target):
        _blocked(
            "QuarterlyCountRecord",
            target.id,
            "UPDATE",
            "Count records cannot be modified after the count is closed",
        )


def _check_count_record_delete(mapper, connection, target):
    from stock_kernel.models.quarterly_count import QuarterlyCountRecord

    if not isinstance(target, QuarterlyCountRecord):
        return

    if _parent_count_closed(target):
        _blocked(
            "QuarterlyCountRecord",
            target.id,
            "DELETE",
            "Count records cannot be deleted after the count is closed",
        )


def _listeners():
    from stock_kernel.models.inventory import MoveRecord
    from stock_kernel.models.quarterly_count import (
        QuarterlyCount,
        QuarterlyCountRecord,
    )

    return (
        (MoveRecord, "before_update", _check_move_record_immutability),
        (MoveRecord, "before_delete", _check_move_record_delete),
        (QuarterlyCount, "before_update", _check_count_immutability),
        (QuarterlyCount, "before_delete", _check_count_delete),
        (QuarterlyCountRecord, "before_update", _check_count_record_immutability),
        (QuarterlyCountRecord, "before_delete", _check_count_record_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent.  Call once at startup, after the models are importable.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """Remove the listeners.  FOR TESTING ONLY."""
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
