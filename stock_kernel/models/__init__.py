"""Domain models for the stock kernel."""

from stock_kernel.models.catalog import (
    LOCATION_ATTRIBUTES,
    PART_ATTRIBUTES,
    Location,
    Part,
)
from stock_kernel.models.inventory import InventoryRecord, MoveReason, MoveRecord
from stock_kernel.models.quarterly_count import (
    TERMINAL_COUNT_STATUSES,
    CountRecordStatus,
    CountStatus,
    QuarterlyCount,
    QuarterlyCountRecord,
)

__all__ = [
    "Part",
    "Location",
    "PART_ATTRIBUTES",
    "LOCATION_ATTRIBUTES",
    "InventoryRecord",
    "MoveRecord",
    "MoveReason",
    "QuarterlyCount",
    "QuarterlyCountRecord",
    "CountStatus",
    "CountRecordStatus",
    "TERMINAL_COUNT_STATUSES",
]
