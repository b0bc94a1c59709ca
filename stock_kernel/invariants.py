"""
Kernel Invariants Contract.

These invariants are structural law.  No configuration value may switch
them off.  This module only declares them; enforcement is distributed across
MoveService, QuarterlyCountService, the database constraints in
stock_kernel.models, and the ORM guards in stock_kernel.db.immutability.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    NON_NEGATIVE_QUANTITY = "non_negative_quantity"
    """InventoryRecord.qty never drops below zero.  Enforced by
    MoveService before the write and by a CHECK constraint."""

    LEDGER_STORE_CONSISTENCY = "ledger_store_consistency"
    """For every (part, location) the sum of MoveRecord.delta_qty equals
    InventoryRecord.qty.  Enforced by funnelling every write through
    MoveService, which updates the row and appends the move together.
    Audited by MoveSelector.ledger_discrepancies()."""

    SINGLE_RECORD_PER_PAIR = "single_record_per_pair"
    """At most one InventoryRecord per (part, location).  Enforced by a
    unique constraint and the savepoint get-or-create in MoveService."""

    APPEND_ONLY_LEDGER = "append_only_ledger"
    """MoveRecords are never updated or deleted; undo and count
    adjustments append compensating rows.  Enforced by
    stock_kernel.db.immutability."""

    CLOSED_COUNT_IMMUTABILITY = "closed_count_immutability"
    """A completed or cancelled QuarterlyCount and its records never
    change and the count is never deleted.  Enforced by
    QuarterlyCountService and stock_kernel.db.immutability."""

    ATOMIC_TRANSFER = "atomic_transfer"
    """Both legs of a transfer commit together or not at all.  Enforced by
    TransferService with a savepoint around the two legs."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "stock_services",
    "stock_config",
)
