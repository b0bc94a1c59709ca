"""
Module: stock_kernel.selectors.catalog_selector
Responsibility: Read-only catalog lookups and search, as used by the query
    assistant and the kiosk item screen.
Architecture position: Kernel > Selectors.

Search matches case-insensitively across the text attributes of a part and
reports each hit with its total quantity across all locations (derived by
query, not stored).
"""

from uuid import UUID

from sqlalchemy import func, or_, select

from stock_kernel.domain.dtos import (
    LocationSummary,
    LocationView,
    PartSearchHit,
    PartView,
)
from stock_kernel.models.catalog import Location, Part
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.selectors.base import BaseSelector

_SEARCHABLE_PART_COLUMNS = (
    Part.part_code,
    Part.name,
    Part.color,
    Part.category,
    Part.job_number,
    Part.brand,
    Part.pallet,
    Part.unit,
)


class CatalogSelector(BaseSelector):
    """Read-only access to parts and locations."""

    def get_part(self, part_id: UUID) -> PartView | None:
        part = self.session.get(Part, part_id)
        return PartView.from_model(part) if part is not None else None

    def get_part_by_code(self, part_code: str) -> PartView | None:
        part = self.session.execute(
            select(Part).where(Part.part_code == part_code)
        ).scalar_one_or_none()
        return PartView.from_model(part) if part is not None else None

    def get_location(self, location_id: UUID) -> LocationView | None:
        location = self.session.get(Location, location_id)
        return LocationView.from_model(location) if location is not None else None

    def get_location_by_code(self, location_code: str) -> LocationView | None:
        location = self.session.execute(
            select(Location).where(Location.location_code == location_code)
        ).scalar_one_or_none()
        return LocationView.from_model(location) if location is not None else None

    def search_parts(
        self,
        query: str | None = None,
        category: str | None = None,
        limit: int = 20,
    ) -> tuple[PartSearchHit, ...]:
        """Parts matching ``query`` (any text attribute) and ``category``."""
        totals = (
            select(
                InventoryRecord.part_id.label("part_id"),
                func.sum(InventoryRecord.qty).label("total"),
            )
            .group_by(InventoryRecord.part_id)
            .subquery()
        )

        stmt = (
            select(Part, func.coalesce(totals.c.total, 0).label("total"))
            .outerjoin(totals, totals.c.part_id == Part.id)
            .order_by(Part.part_code)
            .limit(max(1, limit))
        )
        if query and query.strip():
            term = query.strip()
            stmt = stmt.where(
                or_(*(col.icontains(term, autoescape=True) for col in _SEARCHABLE_PART_COLUMNS))
            )
        if category:
            stmt = stmt.where(func.lower(Part.category) == category.strip().lower())

        return tuple(
            PartSearchHit(part=PartView.from_model(part), total_qty=int(total))
            for part, total in self.session.execute(stmt).all()
        )

    def list_categories(self, query: str | None = None) -> tuple[str, ...]:
        """Distinct non-empty categories, sorted."""
        stmt = (
            select(Part.category)
            .where(Part.category.is_not(None), Part.category != "")
            .distinct()
            .order_by(Part.category)
        )
        if query:
            stmt = stmt.where(Part.category.icontains(query, autoescape=True))
        return tuple(self.session.execute(stmt).scalars())

    def list_brands(self, query: str | None = None) -> tuple[str, ...]:
        """Distinct non-empty brands, sorted."""
        stmt = (
            select(Part.brand)
            .where(Part.brand.is_not(None), Part.brand != "")
            .distinct()
            .order_by(Part.brand)
        )
        if query:
            stmt = stmt.where(Part.brand.icontains(query, autoescape=True))
        return tuple(self.session.execute(stmt).scalars())

    def list_locations(self, query: str | None = None) -> tuple[LocationSummary, ...]:
        """Locations by code, each with the number of distinct parts stored."""
        part_count = func.count(func.distinct(InventoryRecord.part_id))
        stmt = (
            select(Location, part_count.label("part_count"))
            .outerjoin(InventoryRecord, InventoryRecord.location_id == Location.id)
            .group_by(Location.id)
            .order_by(Location.location_code)
        )
        if query:
            stmt = stmt.where(
                or_(
                    Location.location_code.icontains(query, autoescape=True),
                    Location.location_type.icontains(query, autoescape=True),
                    Location.zone.icontains(query, autoescape=True),
                )
            )
        return tuple(
            LocationSummary(location=LocationView.from_model(loc), part_count=count)
            for loc, count in self.session.execute(stmt).all()
        )

    def list_parts(self) -> tuple[PartView, ...]:
        """Every part, by code."""
        return tuple(
            PartView.from_model(p)
            for p in self.session.execute(select(Part).order_by(Part.part_code)).scalars()
        )
