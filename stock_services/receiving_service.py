"""
ReceivingService -- batch intake of delivered stock.

Responsibility:
    Books a delivery list into the ledger.  For each line the location and
    the part are created on first sight, then the received quantity is
    added with a ``receiving`` move.

Architecture position:
    Services -- composes CatalogService and MoveService in the caller's
    session.  Flushes; never commits.

Invariants enforced:
    - Each line runs in its own savepoint: a rejected line leaves no
      partial writes, and the lines before and after it still apply.
    - Existing parts keep their populated fields; only empty ones are
      filled from the delivery line.
    - Every quantity increase is a MoveRecord, so received stock stays
      consistent with the ledger.

Failure modes:
    Per line, reported in ReceivingReport.errors:
    - INVALID_ARGUMENT: blank part code, name or location code; quantity
      not a positive integer; unknown or malformed attribute.
    - Any other StockKernelError raised by the kernel, by its ``code``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from stock_kernel.domain.dtos import ItemFailure
from stock_kernel.exceptions import InvalidArgumentError, StockKernelError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory import MoveReason
from stock_kernel.services.base import BaseService
from stock_kernel.services.catalog_service import CatalogService
from stock_kernel.services.move_service import MoveService

logger = get_logger("services.receiving")


@dataclass(frozen=True)
class ReceivingItem:
    """One line of a delivery."""

    part_code: str
    name: str
    location_code: str
    quantity: int
    category: str | None = None
    color: str | None = None
    job_number: str | None = None
    width: Decimal | float | None = None
    length: Decimal | float | None = None
    thickness: Decimal | float | None = None
    brand: str | None = None
    unit: str | None = None
    pallet: str | None = None

    def attributes(self) -> dict:
        return {
            "category": self.category,
            "color": self.color,
            "job_number": self.job_number,
            "width": self.width,
            "length": self.length,
            "thickness": self.thickness,
            "brand": self.brand,
            "unit": self.unit,
            "pallet": self.pallet,
        }


@dataclass(frozen=True)
class ReceivingReport:
    parts_created: int = 0
    items_received: int = 0
    errors: tuple[ItemFailure, ...] = field(default_factory=tuple)

    @property
    def all_received(self) -> bool:
        return not self.errors


class ReceivingService(BaseService):
    """Create-on-write intake of delivery lines."""

    def __init__(
        self,
        session,
        clock=None,
        catalog: CatalogService | None = None,
        move_service: MoveService | None = None,
    ):
        super().__init__(session, clock)
        self._catalog = catalog or CatalogService(session, self.clock)
        self._moves = move_service or MoveService(session, self.clock)

    def receive(self, actor_id: UUID, items: Iterable[ReceivingItem]) -> ReceivingReport:
        """
        Book every line of a delivery.

        Raises:
            InvalidArgumentError: the delivery has no lines.
        """
        items = tuple(items)
        if not items:
            raise InvalidArgumentError("items", "must not be empty")

        parts_created = 0
        received = 0
        errors: list[ItemFailure] = []

        for index, item in enumerate(items):
            item_id = (item.part_code or "").strip() or f"item {index + 1}"
            try:
                with self.session.begin_nested():
                    created = self._receive_one(actor_id, item)
            except StockKernelError as exc:
                logger.info(
                    "receiving_item_rejected",
                    extra={"item": item_id, "error_code": exc.code},
                )
                errors.append(ItemFailure(item_id=item_id, code=exc.code, message=str(exc)))
                continue
            parts_created += int(created)
            received += 1

        logger.info(
            "receiving_completed",
            extra={
                "items": len(items),
                "items_received": received,
                "parts_created": parts_created,
                "errors": len(errors),
            },
        )
        return ReceivingReport(
            parts_created=parts_created,
            items_received=received,
            errors=tuple(errors),
        )

    def _receive_one(self, actor_id: UUID, item: ReceivingItem) -> bool:
        quantity = item.quantity
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise InvalidArgumentError("quantity", "must be a positive integer")

        location, _ = self._catalog.get_or_create_location(
            item.location_code,
            location_type=item.category,
        )
        part, created = self._catalog.get_or_create_part(
            item.part_code,
            item.name,
            **item.attributes(),
        )
        self._moves.apply_move(
            actor_id,
            part.id,
            location.id,
            quantity,
            reason=MoveReason.RECEIVING,
            note=f"Received {quantity} units of {part.part_code}",
        )
        return created
