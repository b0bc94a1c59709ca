"""
Module: stock_kernel.selectors.inventory_selector
Responsibility: Read-only queries over the inventory store -- quantity of a
    pair, every location holding a part, every part at a location, low stock.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - "Never stocked" (no row) and "zero" (row with qty 0) are different
      answers: get_record() returns None for the first and a view with
      qty == 0 for the second.  get_quantity() returns 0 for both.
    - Totals are derived by summing rows, never stored.
"""

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import (
    InventoryRecordView,
    LocationQuantity,
    LocationStock,
    PartQuantity,
    PartStock,
    StockLevel,
)
from stock_kernel.models.catalog import Location, Part
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector):
    """Read-only access to current quantities."""

    def get_quantity(self, part_id: UUID, location_id: UUID) -> int:
        """Current quantity of a pair (0 when never stocked)."""
        qty = self.session.execute(
            select(InventoryRecord.qty).where(
                InventoryRecord.part_id == part_id,
                InventoryRecord.location_id == location_id,
            )
        ).scalar_one_or_none()
        return qty or 0

    def get_record(self, part_id: UUID, location_id: UUID) -> InventoryRecordView | None:
        record = self.session.execute(
            select(InventoryRecord).where(
                InventoryRecord.part_id == part_id,
                InventoryRecord.location_id == location_id,
            )
        ).scalar_one_or_none()
        return InventoryRecordView.from_model(record) if record is not None else None

    def get_quantities_by_part(self, part_id: UUID) -> PartStock:
        """All locations holding a part, ordered by location code."""
        rows = self.session.execute(
            select(
                InventoryRecord.location_id,
                Location.location_code,
                InventoryRecord.qty,
                InventoryRecord.updated_at,
            )
            .join(Location, Location.id == InventoryRecord.location_id)
            .where(InventoryRecord.part_id == part_id)
            .order_by(Location.location_code)
        ).all()

        return PartStock(
            part_id=part_id,
            locations=tuple(
                LocationQuantity(
                    location_id=row.location_id,
                    location_code=row.location_code,
                    qty=row.qty,
                    updated_at=row.updated_at,
                )
                for row in rows
            ),
        )

    def get_quantities_by_location(self, location_id: UUID) -> LocationStock:
        """All parts present at a location (zero rows included), by part code."""
        rows = self.session.execute(
            select(
                InventoryRecord.part_id,
                Part.part_code,
                Part.name,
                InventoryRecord.qty,
                InventoryRecord.updated_at,
            )
            .join(Part, Part.id == InventoryRecord.part_id)
            .where(InventoryRecord.location_id == location_id)
            .order_by(Part.part_code)
        ).all()

        return LocationStock(
            location_id=location_id,
            items=tuple(
                PartQuantity(
                    part_id=row.part_id,
                    part_code=row.part_code,
                    name=row.name,
                    qty=row.qty,
                    updated_at=row.updated_at,
                )
                for row in rows
            ),
        )

    def low_stock(self, threshold: int, location_id: UUID | None = None) -> tuple[StockLevel, ...]:
        """Rows at or below ``threshold``, lowest first."""
        stmt = (
            select(
                InventoryRecord.part_id,
                Part.part_code,
                InventoryRecord.location_id,
                Location.location_code,
                InventoryRecord.qty,
            )
            .join(Part, Part.id == InventoryRecord.part_id)
            .join(Location, Location.id == InventoryRecord.location_id)
            .where(InventoryRecord.qty <= threshold)
            .order_by(InventoryRecord.qty, Part.part_code, Location.location_code)
        )
        if location_id is not None:
            stmt = stmt.where(InventoryRecord.location_id == location_id)

        return tuple(
            StockLevel(
                part_id=row.part_id,
                part_code=row.part_code,
                location_id=row.location_id,
                location_code=row.location_code,
                qty=row.qty,
            )
            for row in self.session.execute(stmt).all()
        )

    def all_levels(self) -> tuple[StockLevel, ...]:
        """Every inventory row, ordered by location then part (export order)."""
        rows = self.session.execute(
            select(
                InventoryRecord.part_id,
                Part.part_code,
                InventoryRecord.location_id,
                Location.location_code,
                InventoryRecord.qty,
            )
            .join(Part, Part.id == InventoryRecord.part_id)
            .join(Location, Location.id == InventoryRecord.location_id)
            .order_by(Location.location_code, Part.part_code)
        ).all()
        return tuple(
            StockLevel(
                part_id=row.part_id,
                part_code=row.part_code,
                location_id=row.location_id,
                location_code=row.location_code,
                qty=row.qty,
            )
            for row in rows
        )
