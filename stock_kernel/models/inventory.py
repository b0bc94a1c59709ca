"""
Module: stock_kernel.models.inventory
Responsibility: ORM persistence for the inventory store (current quantity per
    part and location) and the move ledger (append-only log of every
    quantity change).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one InventoryRecord per (part, location)
      (uq_inventory_part_location).
    - InventoryRecord.qty >= 0 (ck_inventory_qty_non_negative).
    - MoveRecord.delta_qty <> 0 (ck_move_delta_non_zero).
    - MoveRecord rows are append-only (db/immutability.py).

Failure modes:
    - IntegrityError on a duplicate (part, location) insert; MoveService
      resolves the race inside a savepoint and re-reads the winner's row.
    - IntegrityError if a write bypasses MoveService and drives qty below 0.
    - ImmutabilityViolationError on UPDATE/DELETE of a MoveRecord.

Audit relevance:
    For every pair, sum(MoveRecord.delta_qty) == InventoryRecord.qty.  The
    move ledger is the only way to reconstruct who changed what, when and why.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UUIDString


class MoveReason(str, Enum):
    """Reason codes written by the kernel and its collaborators."""

    PULL = "pull"
    RETURN = "return"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    UNDO = "undo"
    COUNT_ADJUSTMENT = "quarterly count adjustment"
    RECEIVING = "receiving"
    IMPORT = "import"


class InventoryRecord(Base):
    """
    Current quantity of one part at one location.

    Contract:
        Created lazily on the first write to the pair.  A quantity of zero
        keeps the row: zero is distinct from "never stocked here".
    """

    __tablename__ = "inventory_records"

    __table_args__ = (
        UniqueConstraint("part_id", "location_id", name="uq_inventory_part_location"),
        CheckConstraint("qty >= 0", name="ck_inventory_qty_non_negative"),
        Index("idx_inventory_location", "location_id"),
    )

    part_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("parts.id", ondelete="CASCADE"),
        nullable=False,
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
    )

    qty: Mapped[int] = mapped_column(default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<InventoryRecord {self.part_id}@{self.location_id}: {self.qty}>"


class MoveRecord(Base):
    """
    One signed quantity change against a (part, location) pair.

    Contract:
        Immutable once flushed.  Undo and count adjustments append new rows;
        they never touch existing ones.  The two legs of a transfer share a
        ``transfer_id``; an undo points at the move it compensates through
        ``reversal_of_id``.
    """

    __tablename__ = "move_records"

    __table_args__ = (
        CheckConstraint("delta_qty <> 0", name="ck_move_delta_non_zero"),
        Index("idx_move_ts", "ts"),
        Index("idx_move_pair", "part_id", "location_id"),
        Index("idx_move_actor", "actor_id"),
        Index("idx_move_transfer", "transfer_id"),
    )

    ts: Mapped[datetime] = mapped_column(nullable=False)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    part_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("parts.id", ondelete="CASCADE"),
        nullable=False,
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Negative = removed, positive = added
    delta_qty: Mapped[int] = mapped_column(nullable=False)

    reason: Mapped[str | None] = mapped_column(String(50), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    transfer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("move_records.id", ondelete="CASCADE"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<MoveRecord {self.part_id}@{self.location_id}: "
            f"{self.delta_qty:+d} ({self.reason})>"
        )

    @property
    def is_pull(self) -> bool:
        return self.delta_qty < 0

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None
