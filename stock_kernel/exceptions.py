"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected ledger operation must tell the caller exactly why it failed
and carry the data needed to correct it (current quantity, pending record
count, offending field).  Callers catch by TYPE and read ATTRIBUTES; they
never parse messages.

    try:
        orchestrator.apply_move(actor_id, part_id, location_id, -5)
    except InsufficientQuantityError as e:
        show(f"Only {e.current} left, you asked for {e.requested}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- NotFoundError
    |   +-- PartNotFoundError
    |   +-- LocationNotFoundError
    |   +-- MoveNotFoundError
    |   +-- CountNotFoundError
    |   +-- CountRecordNotFoundError
    |
    +-- InvalidArgumentError
    |
    +-- InsufficientQuantityError
    |
    +-- CatalogError
    |   +-- DuplicateCatalogKeyError
    |
    +-- CountError
    |   +-- IncompleteCountError
    |   +-- InvalidStateTransitionError
    |   +-- DuplicateCountRecordError
    |
    +-- ImmutabilityViolationError
    |
    +-- ConcurrencyConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                      | When Raised
--------------|---------------------------|---------------------------------------
Lookup        | NOT_FOUND                 | Part/location/move/count id unknown
              | PART_NOT_FOUND            |
              | LOCATION_NOT_FOUND        |
              | MOVE_NOT_FOUND            |
              | COUNT_NOT_FOUND           |
              | COUNT_RECORD_NOT_FOUND    |
--------------|---------------------------|---------------------------------------
Validation    | INVALID_ARGUMENT          | Zero delta, non-positive qty, same
              |                           | source/destination, blank field
--------------|---------------------------|---------------------------------------
Quantity      | INSUFFICIENT_QUANTITY     | Write would drive a quantity below 0
--------------|---------------------------|---------------------------------------
Catalog       | DUPLICATE_CATALOG_KEY     | part_code / location_code taken
--------------|---------------------------|---------------------------------------
Count         | INCOMPLETE_COUNT          | Completion with pending records
              | INVALID_STATE_TRANSITION  | Mutating or deleting a closed count
              | DUPLICATE_COUNT_RECORD    | (count, part, location) already there
--------------|---------------------------|---------------------------------------
Audit         | IMMUTABILITY_VIOLATION    | UPDATE/DELETE of an append-only row
--------------|---------------------------|---------------------------------------
Concurrency   | CONCURRENCY_CONFLICT      | Serialization retries exhausted

===============================================================================
DESIGN DECISIONS
===============================================================================

1. InsufficientQuantityError is NOT a bug signal.  It is the expected,
   user-recoverable outcome of pulling more than is on the shelf; log it at
   INFO, not ERROR.

2. NotFoundError subclasses share the NOT_FOUND family so an outer layer can
   map the whole group to one response while still reading ``entity_id``.

3. Context lives in attributes, so the structured log formatter can emit
   every field of a failed operation as ``exc_<field>``.
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Lookup failures


class NotFoundError(StockKernelError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"
    entity_type: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class PartNotFoundError(NotFoundError):
    code: str = "PART_NOT_FOUND"
    entity_type: str = "Part"


class LocationNotFoundError(NotFoundError):
    code: str = "LOCATION_NOT_FOUND"
    entity_type: str = "Location"


class MoveNotFoundError(NotFoundError):
    code: str = "MOVE_NOT_FOUND"
    entity_type: str = "Move"


class CountNotFoundError(NotFoundError):
    code: str = "COUNT_NOT_FOUND"
    entity_type: str = "Quarterly count"


class CountRecordNotFoundError(NotFoundError):
    code: str = "COUNT_RECORD_NOT_FOUND"
    entity_type: str = "Count record"


# Validation


class InvalidArgumentError(StockKernelError):
    """Argument rejected before any state was touched."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InsufficientQuantityError(StockKernelError):
    """
    The write would drive a quantity below zero.

    ``current`` is what is on the shelf right now, ``requested`` is the
    absolute amount the caller tried to remove.
    """

    code: str = "INSUFFICIENT_QUANTITY"

    def __init__(
        self,
        part_id: str,
        location_id: str,
        current: int,
        requested: int,
    ):
        self.part_id = part_id
        self.location_id = location_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Insufficient quantity. Current: {current}, Requested: {requested}"
        )


# Catalog


class CatalogError(StockKernelError):
    """Base exception for catalog errors."""

    code: str = "CATALOG_ERROR"


class DuplicateCatalogKeyError(CatalogError):
    """A part or location with this business key already exists."""

    code: str = "DUPLICATE_CATALOG_KEY"

    def __init__(self, entity_type: str, key: str):
        self.entity_type = entity_type
        self.key = key
        super().__init__(f"{entity_type} already exists: {key}")


# Quarterly count


class CountError(StockKernelError):
    """Base exception for quarterly count workflow errors."""

    code: str = "COUNT_ERROR"


class IncompleteCountError(CountError):
    """Completion attempted while records are still pending."""

    code: str = "INCOMPLETE_COUNT"

    def __init__(self, count_id: str, pending: int):
        self.count_id = count_id
        self.pending = pending
        super().__init__(
            f"Cannot complete count: {pending} records not yet counted"
        )


class InvalidStateTransitionError(CountError):
    """The count's current status does not allow the operation."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, count_id: str, status: str, operation: str):
        self.count_id = count_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} count {count_id} in status '{status}'"
        )


class DuplicateCountRecordError(CountError):
    """A record for this part and location already exists in the count."""

    code: str = "DUPLICATE_COUNT_RECORD"

    def __init__(self, count_id: str, part_id: str, location_id: str):
        self.count_id = count_id
        self.part_id = part_id
        self.location_id = location_id
        super().__init__(
            "Record already exists for this part and location"
        )


# Audit


class ImmutabilityViolationError(StockKernelError):
    """Attempt to modify or delete an append-only or closed record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Concurrency


class ConcurrencyConflictError(StockKernelError):
    """Database kept reporting serialization failures; retries exhausted."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"{operation} aborted after {attempts} conflicting attempts"
        )
