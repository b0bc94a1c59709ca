"""Selector layer - read-only queries returning DTOs."""

from stock_kernel.selectors.catalog_selector import CatalogSelector
from stock_kernel.selectors.count_selector import CountSelector
from stock_kernel.selectors.inventory_selector import InventorySelector
from stock_kernel.selectors.move_selector import MoveSelector

__all__ = [
    "CatalogSelector",
    "CountSelector",
    "InventorySelector",
    "MoveSelector",
]
