"""
Module: stock_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors form the "Q" side of the kernel, providing structured read
    access to the catalog, the inventory store, the move ledger and counts.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/dtos.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit(), or session.flush().
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Derived aggregates (totals per part, part counts per location) are
      computed by queries; there is no second stored source of truth.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Accept a Session from the caller, perform read-only queries, and
        return DTOs.  The caller owns the session and its transaction scope.
    """

    def __init__(self, session: Session):
        self.session = session
