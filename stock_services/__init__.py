"""
stock_services -- Package init and public API.

Responsibility:
    Outer collaborators built on the ledger kernel: runtime bootstrap,
    receiving, flat-file export and the daily activity report.  This is
    the layer that combines configuration with kernel construction.

Architecture position:
    Services -- orchestration over stock_kernel and stock_config.

    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        stock_services/ -> stock_kernel/   (allowed)
        stock_services/ -> stock_config/   (allowed)
        stock_kernel/   -> stock_services/ (FORBIDDEN)
        stock_kernel/   -> stock_config/   (FORBIDDEN)

Invariants enforced:
    - Every quantity change made here goes through MoveService.apply_move,
      so the store and the move ledger stay in step.
    - Reports and exports are read-only.
"""

from stock_kernel.logging_config import get_logger

logger = get_logger("services")

from stock_services.activity_report import DailyActivityReport, daily_activity
from stock_services.bootstrap import StockRuntime, bootstrap, make_orchestrator
from stock_services.export_service import ExportService
from stock_services.receiving_service import (
    ReceivingItem,
    ReceivingReport,
    ReceivingService,
)

__all__ = [
    "DailyActivityReport",
    "ExportService",
    "ReceivingItem",
    "ReceivingReport",
    "ReceivingService",
    "StockRuntime",
    "bootstrap",
    "daily_activity",
    "make_orchestrator",
]
