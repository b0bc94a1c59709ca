"""
DTOs -- Immutable data transfer objects returned by kernel services and
selectors.

Responsibility:
    Callers outside the kernel never receive ORM entities.  Every write
    returns a result DTO and every read returns a view DTO, detached from
    the session that produced it.

Architecture position:
    Kernel > Domain -- zero I/O.  from_model() class methods are boundary
    converters invoked only from services/ and selectors/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from stock_kernel.models.catalog import Location, Part
    from stock_kernel.models.inventory import InventoryRecord, MoveRecord
    from stock_kernel.models.quarterly_count import (
        QuarterlyCount,
        QuarterlyCountRecord,
    )


# =============================================================================
# Catalog
# =============================================================================


@dataclass(frozen=True)
class PartView:
    id: UUID
    part_code: str
    name: str
    color: str | None = None
    category: str | None = None
    job_number: str | None = None
    width: Decimal | None = None
    length: Decimal | None = None
    thickness: Decimal | None = None
    brand: str | None = None
    pallet: str | None = None
    unit: str | None = None

    @classmethod
    def from_model(cls, model: Part) -> PartView:
        return cls(
            id=model.id,
            part_code=model.part_code,
            name=model.name,
            color=model.color,
            category=model.category,
            job_number=model.job_number,
            width=model.width,
            length=model.length,
            thickness=model.thickness,
            brand=model.brand,
            pallet=model.pallet,
            unit=model.unit,
        )


@dataclass(frozen=True)
class LocationView:
    id: UUID
    location_code: str
    location_type: str | None = None
    zone: str | None = None

    @classmethod
    def from_model(cls, model: Location) -> LocationView:
        return cls(
            id=model.id,
            location_code=model.location_code,
            location_type=model.location_type,
            zone=model.zone,
        )


@dataclass(frozen=True)
class PartSearchHit:
    """A catalog hit with the part's total quantity across all locations."""

    part: PartView
    total_qty: int


@dataclass(frozen=True)
class LocationSummary:
    """A location with the number of distinct parts stored there."""

    location: LocationView
    part_count: int


# =============================================================================
# Inventory store
# =============================================================================


@dataclass(frozen=True)
class InventoryRecordView:
    part_id: UUID
    location_id: UUID
    qty: int
    updated_at: datetime

    @classmethod
    def from_model(cls, model: InventoryRecord) -> InventoryRecordView:
        return cls(
            part_id=model.part_id,
            location_id=model.location_id,
            qty=model.qty,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class LocationQuantity:
    """Quantity of one part at one location (row of PartStock)."""

    location_id: UUID
    location_code: str
    qty: int
    updated_at: datetime


@dataclass(frozen=True)
class PartStock:
    """Every location holding a part, with the derived total."""

    part_id: UUID
    locations: tuple[LocationQuantity, ...]

    @property
    def total(self) -> int:
        return sum(row.qty for row in self.locations)


@dataclass(frozen=True)
class PartQuantity:
    """Quantity of one part at a location (row of LocationStock)."""

    part_id: UUID
    part_code: str
    name: str
    qty: int
    updated_at: datetime


@dataclass(frozen=True)
class LocationStock:
    """Every part present at a location, zero rows included."""

    location_id: UUID
    items: tuple[PartQuantity, ...]

    @property
    def total(self) -> int:
        return sum(row.qty for row in self.items)


@dataclass(frozen=True)
class StockLevel:
    part_id: UUID
    part_code: str
    location_id: UUID
    location_code: str
    qty: int


# =============================================================================
# Move ledger
# =============================================================================


@dataclass(frozen=True)
class MoveView:
    """An immutable MoveRecord fact."""

    id: UUID
    ts: datetime
    actor_id: UUID
    part_id: UUID
    location_id: UUID
    delta_qty: int
    reason: str | None = None
    note: str | None = None
    transfer_id: UUID | None = None
    reversal_of_id: UUID | None = None

    @classmethod
    def from_model(cls, model: MoveRecord) -> MoveView:
        return cls(
            id=model.id,
            ts=model.ts,
            actor_id=model.actor_id,
            part_id=model.part_id,
            location_id=model.location_id,
            delta_qty=model.delta_qty,
            reason=model.reason,
            note=model.note,
            transfer_id=model.transfer_id,
            reversal_of_id=model.reversal_of_id,
        )


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a single applied move."""

    new_qty: int
    move: MoveView


@dataclass(frozen=True)
class TransferResult:
    source_qty: int
    dest_qty: int
    debit_move: MoveView
    credit_move: MoveView
    transfer_id: UUID


@dataclass(frozen=True)
class UndoResult:
    new_qty: int
    compensating_move: MoveView
    original_move_id: UUID


@dataclass(frozen=True)
class MoveHistoryPage:
    """One page of move history, newest first."""

    moves: tuple[MoveView, ...]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.moves) < self.total


@dataclass(frozen=True)
class LedgerDiscrepancy:
    """A pair whose stored quantity differs from the sum of its moves."""

    part_id: UUID
    location_id: UUID
    store_qty: int
    ledger_sum: int


# =============================================================================
# Batches
# =============================================================================


@dataclass(frozen=True)
class ItemFailure:
    """One rejected item of a batch operation."""

    item_id: str
    code: str
    message: str


@dataclass(frozen=True)
class BatchResult:
    succeeded: tuple[UUID, ...] = ()
    failures: tuple[ItemFailure, ...] = ()

    @property
    def all_succeeded(self) -> bool:
        return not self.failures


# =============================================================================
# Quarterly count
# =============================================================================


@dataclass(frozen=True)
class CountEntry:
    """One physically counted quantity submitted to record_counts()."""

    record_id: UUID
    counted_qty: int
    notes: str | None = None


@dataclass(frozen=True)
class CountView:
    id: UUID
    name: str
    description: str | None
    status: str
    created_by_id: UUID
    created_at: datetime
    completed_at: datetime | None = None
    closed_by_id: UUID | None = None
    adjustments_applied: bool = False

    @classmethod
    def from_model(cls, model: QuarterlyCount) -> CountView:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            status=str(getattr(model.status, "value", model.status)),
            created_by_id=model.created_by_id,
            created_at=model.created_at,
            completed_at=model.completed_at,
            closed_by_id=model.closed_by_id,
            adjustments_applied=model.adjustments_applied,
        )


@dataclass(frozen=True)
class CountRecordView:
    id: UUID
    count_id: UUID
    part_id: UUID
    location_id: UUID
    expected_qty: int
    counted_qty: int | None
    variance: int | None
    status: str
    counted_by_id: UUID | None = None
    counted_at: datetime | None = None
    verified_by_id: UUID | None = None
    verified_at: datetime | None = None
    notes: str | None = None
    part_code: str | None = None
    part_name: str | None = None
    location_code: str | None = None

    @classmethod
    def from_model(
        cls,
        model: QuarterlyCountRecord,
        part: Part | None = None,
        location: Location | None = None,
    ) -> CountRecordView:
        return cls(
            id=model.id,
            count_id=model.count_id,
            part_id=model.part_id,
            location_id=model.location_id,
            expected_qty=model.expected_qty,
            counted_qty=model.counted_qty,
            variance=model.variance,
            status=str(getattr(model.status, "value", model.status)),
            counted_by_id=model.counted_by_id,
            counted_at=model.counted_at,
            verified_by_id=model.verified_by_id,
            verified_at=model.verified_at,
            notes=model.notes,
            part_code=part.part_code if part is not None else None,
            part_name=part.name if part is not None else None,
            location_code=location.location_code if location is not None else None,
        )


@dataclass(frozen=True)
class CountSummary:
    """Progress of a count: records per status."""

    count_id: UUID
    pending: int
    counted: int
    verified: int

    @property
    def total(self) -> int:
        return self.pending + self.counted + self.verified

    @property
    def is_ready_to_complete(self) -> bool:
        return self.pending == 0


@dataclass(frozen=True)
class LocationCountGroup:
    """Count records at one location, as the count sheet is walked."""

    location_id: UUID
    location_code: str
    records: tuple[CountRecordView, ...]


@dataclass(frozen=True)
class CountDetail:
    count: CountView
    summary: CountSummary
    locations: tuple[LocationCountGroup, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CountCompletionResult:
    """Outcome of complete(): totals plus the adjustment moves written."""

    count: CountView
    total_records: int
    records_with_variance: int
    total_variance: int
    adjustments: tuple[MoveView, ...] = ()

    @property
    def adjustments_written(self) -> int:
        return len(self.adjustments)
