"""Service layer - imperative shell around the ledger."""

from stock_kernel.services.catalog_service import CatalogService
from stock_kernel.services.ledger_orchestrator import LedgerOrchestrator
from stock_kernel.services.move_service import MoveService
from stock_kernel.services.quarterly_count_service import QuarterlyCountService
from stock_kernel.services.transfer_service import TransferService
from stock_kernel.services.undo_service import UndoService

__all__ = [
    "CatalogService",
    "LedgerOrchestrator",
    "MoveService",
    "QuarterlyCountService",
    "TransferService",
    "UndoService",
]
