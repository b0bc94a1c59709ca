"""
Module: stock_kernel.selectors.move_selector
Responsibility: Read-only queries over the move ledger -- filtered, paged
    history; moves in a time window; and the ledger-versus-store audit.
Architecture position: Kernel > Selectors.

Audit relevance:
    ledger_discrepancies() re-derives every pair's quantity from the move
    ledger and reports any pair whose stored quantity differs.  An empty
    result is the proof that the store is exactly the running sum of the
    ledger.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from stock_kernel.domain.dtos import LedgerDiscrepancy, MoveHistoryPage, MoveView
from stock_kernel.models.inventory import InventoryRecord, MoveRecord
from stock_kernel.selectors.base import BaseSelector

MAX_PAGE_SIZE = 500


class MoveSelector(BaseSelector):
    """Read-only access to the move ledger."""

    def get_move(self, move_id: UUID) -> MoveView | None:
        move = self.session.get(MoveRecord, move_id)
        return MoveView.from_model(move) if move is not None else None

    def history(
        self,
        part_id: UUID | None = None,
        location_id: UUID | None = None,
        actor_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
        reason: str | None = None,
    ) -> MoveHistoryPage:
        """
        One page of moves matching all given filters, newest first.

        ``start`` is inclusive, ``end`` exclusive.  ``limit`` is clamped to
        1..MAX_PAGE_SIZE and ``offset`` to >= 0.
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)

        conditions = []
        if part_id is not None:
            conditions.append(MoveRecord.part_id == part_id)
        if location_id is not None:
            conditions.append(MoveRecord.location_id == location_id)
        if actor_id is not None:
            conditions.append(MoveRecord.actor_id == actor_id)
        if start is not None:
            conditions.append(MoveRecord.ts >= start)
        if end is not None:
            conditions.append(MoveRecord.ts < end)
        if reason is not None:
            conditions.append(MoveRecord.reason == reason)

        total = self.session.execute(
            select(func.count()).select_from(MoveRecord).where(*conditions)
        ).scalar_one()

        moves = self.session.execute(
            select(MoveRecord)
            .where(*conditions)
            .order_by(MoveRecord.ts.desc(), MoveRecord.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        return MoveHistoryPage(
            moves=tuple(MoveView.from_model(m) for m in moves),
            total=total,
            limit=limit,
            offset=offset,
        )

    def moves_between(self, start: datetime, end: datetime) -> tuple[MoveView, ...]:
        """Every move with start <= ts < end, oldest first."""
        moves = self.session.execute(
            select(MoveRecord)
            .where(MoveRecord.ts >= start, MoveRecord.ts < end)
            .order_by(MoveRecord.ts, MoveRecord.id)
        ).scalars().all()
        return tuple(MoveView.from_model(m) for m in moves)

    def last_move_for_part(self, part_id: UUID) -> MoveView | None:
        move = self.session.execute(
            select(MoveRecord)
            .where(MoveRecord.part_id == part_id)
            .order_by(MoveRecord.ts.desc(), MoveRecord.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        return MoveView.from_model(move) if move is not None else None

    def transfer_legs(self, transfer_id: UUID) -> tuple[MoveView, ...]:
        """Both legs of a transfer, debit first."""
        moves = self.session.execute(
            select(MoveRecord)
            .where(MoveRecord.transfer_id == transfer_id)
            .order_by(MoveRecord.delta_qty)
        ).scalars().all()
        return tuple(MoveView.from_model(m) for m in moves)

    def ledger_sum(self, part_id: UUID, location_id: UUID) -> int:
        """Sum of every delta recorded for a pair."""
        return self.session.execute(
            select(func.coalesce(func.sum(MoveRecord.delta_qty), 0)).where(
                MoveRecord.part_id == part_id,
                MoveRecord.location_id == location_id,
            )
        ).scalar_one()

    def ledger_discrepancies(self) -> tuple[LedgerDiscrepancy, ...]:
        """Every pair whose stored quantity differs from its ledger sum."""
        sums = (
            select(
                MoveRecord.part_id.label("part_id"),
                MoveRecord.location_id.label("location_id"),
                func.sum(MoveRecord.delta_qty).label("ledger_sum"),
            )
            .group_by(MoveRecord.part_id, MoveRecord.location_id)
            .subquery()
        )

        ledger_total = func.coalesce(sums.c.ledger_sum, 0)
        store_side = self.session.execute(
            select(
                InventoryRecord.part_id,
                InventoryRecord.location_id,
                InventoryRecord.qty,
                ledger_total.label("ledger_sum"),
            )
            .outerjoin(
                sums,
                (sums.c.part_id == InventoryRecord.part_id)
                & (sums.c.location_id == InventoryRecord.location_id),
            )
            .where(InventoryRecord.qty != ledger_total)
        ).all()

        # Moves whose pair has no inventory row at all
        orphan_side = self.session.execute(
            select(sums.c.part_id, sums.c.location_id, sums.c.ledger_sum)
            .outerjoin(
                InventoryRecord,
                (sums.c.part_id == InventoryRecord.part_id)
                & (sums.c.location_id == InventoryRecord.location_id),
            )
            .where(InventoryRecord.id.is_(None), sums.c.ledger_sum != 0)
        ).all()

        found = [
            LedgerDiscrepancy(
                part_id=row.part_id,
                location_id=row.location_id,
                store_qty=row.qty,
                ledger_sum=int(row.ledger_sum),
            )
            for row in store_side
        ]
        found.extend(
            LedgerDiscrepancy(
                part_id=row.part_id,
                location_id=row.location_id,
                store_qty=0,
                ledger_sum=int(row.ledger_sum),
            )
            for row in orphan_side
        )
        return tuple(found)
