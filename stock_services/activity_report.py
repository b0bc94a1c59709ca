"""
Daily activity report over the move ledger.

Collects every move recorded during one local calendar day, counts pulls
(negative deltas) and returns (positive deltas), and renders the one-line
summary used by the end-of-day notification.  Read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from uuid import UUID

import pytz
from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import MoveView
from stock_kernel.logging_config import get_logger
from stock_kernel.models.catalog import Location, Part
from stock_kernel.selectors.move_selector import MoveSelector

logger = get_logger("services.activity")

NO_ACTIVITY = "No inventory activity today"


@dataclass(frozen=True)
class ActivityLine:
    """A move with the business keys it touched."""

    move: MoveView
    part_code: str
    part_name: str
    location_code: str


@dataclass(frozen=True)
class DailyActivityReport:
    day: date
    timezone: str
    window_start: datetime
    window_end: datetime
    lines: tuple[ActivityLine, ...]

    @property
    def total_moves(self) -> int:
        return len(self.lines)

    @property
    def pulls(self) -> int:
        return sum(1 for line in self.lines if line.move.delta_qty < 0)

    @property
    def returns(self) -> int:
        return sum(1 for line in self.lines if line.move.delta_qty > 0)

    @property
    def summary(self) -> str:
        if not self.lines:
            return NO_ACTIVITY
        return f"{self.total_moves} moves: {self.pulls} pulls, {self.returns} returns"


def day_window(day: date, timezone: str) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day, expressed in UTC."""
    tz = pytz.timezone(timezone)
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(UTC), end.astimezone(UTC)


def daily_activity(session: Session, day: date, timezone: str = "UTC") -> DailyActivityReport:
    """
    Build the activity report of one local day, oldest move first.

    Raises:
        pytz.UnknownTimeZoneError: unknown timezone name.
    """
    start, end = day_window(day, timezone)
    moves = MoveSelector(session).moves_between(start, end)

    part_ids: set[UUID] = {m.part_id for m in moves}
    location_ids: set[UUID] = {m.location_id for m in moves}
    parts = {
        p.id: p
        for p in session.execute(select(Part).where(Part.id.in_(part_ids))).scalars()
    } if part_ids else {}
    locations = {
        loc.id: loc
        for loc in session.execute(
            select(Location).where(Location.id.in_(location_ids))
        ).scalars()
    } if location_ids else {}

    lines = tuple(
        ActivityLine(
            move=m,
            part_code=parts[m.part_id].part_code,
            part_name=parts[m.part_id].name,
            location_code=locations[m.location_id].location_code,
        )
        for m in moves
    )
    report = DailyActivityReport(
        day=day,
        timezone=timezone,
        window_start=start,
        window_end=end,
        lines=lines,
    )
    logger.info(
        "daily_activity_built",
        extra={
            "day": day.isoformat(),
            "timezone": timezone,
            "moves": report.total_moves,
            "pulls": report.pulls,
            "returns": report.returns,
        },
    )
    return report
