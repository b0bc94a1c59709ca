"""
Module: stock_kernel.models.quarterly_count
Responsibility: ORM persistence for the quarterly physical-count workflow --
    the count session and one snapshot record per (part, location).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one record per (count, part, location) (uq_count_record_pair).
    - A COMPLETED or CANCELLED count and its records are immutable and the
      count cannot be deleted (QuarterlyCountService + db/immutability.py).

Failure modes:
    - IntegrityError on a duplicate record triple; the service raises
      DuplicateCountRecordError before the insert.
    - ImmutabilityViolationError on any change to a closed count.

Audit relevance:
    expected_qty is captured once, at count creation.  Later ledger moves do
    not touch it, so a completed count is a permanent record of what the
    system believed versus what was physically on the shelf.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base, UUIDString


class CountStatus(str, Enum):
    """Lifecycle of a count session.

    Contract: IN_PROGRESS -> COMPLETED | CANCELLED.  Both targets are terminal.
    """

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_COUNT_STATUSES = frozenset({CountStatus.COMPLETED, CountStatus.CANCELLED})


class CountRecordStatus(str, Enum):
    """PENDING -> COUNTED -> VERIFIED.  A re-count moves VERIFIED back to COUNTED."""

    PENDING = "pending"
    COUNTED = "counted"
    VERIFIED = "verified"


class QuarterlyCount(Base):
    """
    A named physical-count session.

    Contract:
        Records are snapshotted when the count is created.  Status changes
        only through QuarterlyCountService.
    """

    __tablename__ = "quarterly_counts"

    __table_args__ = (Index("idx_count_status", "status"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[CountStatus] = mapped_column(
        String(20),
        default=CountStatus.IN_PROGRESS,
        nullable=False,
    )

    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    closed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Whether completion wrote variances back into the inventory store
    adjustments_applied: Mapped[bool] = mapped_column(default=False, nullable=False)

    records: Mapped[list["QuarterlyCountRecord"]] = relationship(
        back_populates="count",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<QuarterlyCount {self.name}: {self.status}>"

    @property
    def is_open(self) -> bool:
        return self.status == CountStatus.IN_PROGRESS

    @property
    def is_closed(self) -> bool:
        return self.status in TERMINAL_COUNT_STATUSES


class QuarterlyCountRecord(Base):
    """
    Expected versus counted quantity for one pair within a count.

    variance = counted_qty - expected_qty, set when a count is recorded.
    """

    __tablename__ = "quarterly_count_records"

    __table_args__ = (
        UniqueConstraint(
            "count_id", "part_id", "location_id", name="uq_count_record_pair"
        ),
        Index("idx_count_record_status", "count_id", "status"),
    )

    count_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("quarterly_counts.id", ondelete="CASCADE"),
        nullable=False,
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

    expected_qty: Mapped[int] = mapped_column(nullable=False)
    counted_qty: Mapped[int | None] = mapped_column(nullable=True)
    variance: Mapped[int | None] = mapped_column(nullable=True)

    status: Mapped[CountRecordStatus] = mapped_column(
        String(20),
        default=CountRecordStatus.PENDING,
        nullable=False,
    )

    counted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    counted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    verified_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    count: Mapped[QuarterlyCount] = relationship(back_populates="records")

    def __repr__(self) -> str:
        return (
            f"<QuarterlyCountRecord {self.part_id}@{self.location_id}: "
            f"{self.expected_qty} -> {self.counted_qty} ({self.status})>"
        )

    def record_count(
        self,
        counted_qty: int,
        actor_id: UUID,
        counted_at: datetime,
        notes: str | None = None,
    ) -> None:
        """Set the physical count.

        Postconditions: variance recomputed, status COUNTED (a verified
        record drops back to COUNTED).  ``notes`` replaces the previous
        notes only when given.
        """
        self.counted_qty = counted_qty
        self.variance = counted_qty - self.expected_qty
        self.status = CountRecordStatus.COUNTED
        self.counted_by_id = actor_id
        self.counted_at = counted_at
        self.verified_by_id = None
        self.verified_at = None
        if notes is not None:
            self.notes = notes
