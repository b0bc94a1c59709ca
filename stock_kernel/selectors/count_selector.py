"""
Module: stock_kernel.selectors.count_selector
Responsibility: Read-only queries over quarterly counts -- progress summary,
    list of counts, and the count sheet grouped by location.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import func, select

from stock_kernel.domain.dtos import (
    CountDetail,
    CountRecordView,
    CountSummary,
    CountView,
    LocationCountGroup,
)
from stock_kernel.exceptions import CountNotFoundError
from stock_kernel.models.catalog import Location, Part
from stock_kernel.models.quarterly_count import (
    CountRecordStatus,
    QuarterlyCount,
    QuarterlyCountRecord,
)
from stock_kernel.selectors.base import BaseSelector


class CountSelector(BaseSelector):
    """Read-only access to quarterly counts."""

    def get_count(self, count_id: UUID) -> CountView | None:
        count = self.session.get(QuarterlyCount, count_id)
        return CountView.from_model(count) if count is not None else None

    def list_counts(self, status: str | None = None) -> tuple[CountView, ...]:
        """All counts, newest first."""
        stmt = select(QuarterlyCount).order_by(QuarterlyCount.created_at.desc())
        if status is not None:
            stmt = stmt.where(QuarterlyCount.status == status)
        return tuple(
            CountView.from_model(c) for c in self.session.execute(stmt).scalars()
        )

    def summary(self, count_id: UUID) -> CountSummary:
        """
        Records per status.

        Raises:
            CountNotFoundError: unknown count.
        """
        self._require_count(count_id)

        rows = self.session.execute(
            select(QuarterlyCountRecord.status, func.count())
            .where(QuarterlyCountRecord.count_id == count_id)
            .group_by(QuarterlyCountRecord.status)
        ).all()
        by_status = {str(getattr(status, "value", status)): n for status, n in rows}

        return CountSummary(
            count_id=count_id,
            pending=by_status.get(CountRecordStatus.PENDING.value, 0),
            counted=by_status.get(CountRecordStatus.COUNTED.value, 0),
            verified=by_status.get(CountRecordStatus.VERIFIED.value, 0),
        )

    def records(
        self,
        count_id: UUID,
        status: str | None = None,
    ) -> tuple[CountRecordView, ...]:
        """Records of a count with part and location codes, in sheet order."""
        stmt = (
            select(QuarterlyCountRecord, Part, Location)
            .join(Part, Part.id == QuarterlyCountRecord.part_id)
            .join(Location, Location.id == QuarterlyCountRecord.location_id)
            .where(QuarterlyCountRecord.count_id == count_id)
            .order_by(Location.location_code, Part.part_code)
        )
        if status is not None:
            stmt = stmt.where(QuarterlyCountRecord.status == status)

        return tuple(
            CountRecordView.from_model(record, part=part, location=location)
            for record, part, location in self.session.execute(stmt).all()
        )

    def detail(self, count_id: UUID) -> CountDetail:
        """
        The count, its summary, and its records grouped by location.

        Raises:
            CountNotFoundError: unknown count.
        """
        count = self._require_count(count_id)

        groups: dict[UUID, list[CountRecordView]] = {}
        codes: dict[UUID, str] = {}
        for record in self.records(count_id):
            groups.setdefault(record.location_id, []).append(record)
            codes[record.location_id] = record.location_code or ""

        return CountDetail(
            count=CountView.from_model(count),
            summary=self.summary(count_id),
            locations=tuple(
                LocationCountGroup(
                    location_id=location_id,
                    location_code=codes[location_id],
                    records=tuple(records),
                )
                for location_id, records in groups.items()
            ),
        )

    def _require_count(self, count_id: UUID) -> QuarterlyCount:
        count = self.session.get(QuarterlyCount, count_id)
        if count is None:
            raise CountNotFoundError(str(count_id))
        return count
