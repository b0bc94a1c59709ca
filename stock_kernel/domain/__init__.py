"""
Pure domain layer.

Data transfer objects and the injectable clock, with NO dependencies on the
ORM, the database or other I/O.
"""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.dtos import (
    BatchResult,
    CountCompletionResult,
    CountDetail,
    CountEntry,
    CountRecordView,
    CountSummary,
    CountView,
    InventoryRecordView,
    ItemFailure,
    LedgerDiscrepancy,
    LocationCountGroup,
    LocationQuantity,
    LocationStock,
    LocationSummary,
    LocationView,
    MoveHistoryPage,
    MoveResult,
    MoveView,
    PartQuantity,
    PartSearchHit,
    PartStock,
    PartView,
    StockLevel,
    TransferResult,
    UndoResult,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "PartView",
    "LocationView",
    "PartSearchHit",
    "LocationSummary",
    "InventoryRecordView",
    "LocationQuantity",
    "PartStock",
    "PartQuantity",
    "LocationStock",
    "StockLevel",
    "MoveView",
    "MoveResult",
    "TransferResult",
    "UndoResult",
    "MoveHistoryPage",
    "LedgerDiscrepancy",
    "ItemFailure",
    "BatchResult",
    "CountEntry",
    "CountView",
    "CountRecordView",
    "CountSummary",
    "LocationCountGroup",
    "CountDetail",
    "CountCompletionResult",
]
