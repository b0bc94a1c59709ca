"""
Stock Kernel

The inventory ledger core:
- Per (part, location) quantities with a non-negative guarantee
- Append-only move ledger that always sums to the stored quantity
- Atomic two-leg transfers
- Compensating undo
- Quarterly physical-count reconciliation
"""

__version__ = "0.1.0"
