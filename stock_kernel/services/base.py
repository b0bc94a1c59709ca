"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service in the kernel layer.  All concrete services receive
    a SQLAlchemy ``Session`` and a ``Clock``; they persist through
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  The caller
    (LedgerOrchestrator, a collaborator in stock_services, or a test)
    owns commit/rollback, which is what lets a transfer or a count
    completion run as one atomic compound operation.
"""

from abc import ABC

from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import InvalidArgumentError


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - Every timestamp written comes from ``self.clock``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    @staticmethod
    def require_actor(actor_id, field: str = "actor_id") -> None:
        """Reject a missing actor before any row is read or written."""
        if actor_id is None:
            raise InvalidArgumentError(field, "is required")
