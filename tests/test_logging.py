"""
Tests for the structured logging system (stock_kernel/logging_config.py).

The formatter and LogContext are checked directly; the rest of the module
drives real kernel operations and inspects the JSON records they emit.
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from stock_kernel.db.engine import session_scope
from stock_kernel.domain.dtos import CountEntry
from stock_kernel.exceptions import InsufficientQuantityError, PartNotFoundError
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from stock_kernel.models.inventory import MoveReason
from stock_kernel.services.move_service import MoveService


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite config."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _events(records: list[dict], message: str) -> list[dict]:
    return [r for r in records if r["message"] == message]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_envelope_and_extra(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("move_applied", extra={"delta_qty": -5})

        (record,) = _parse_all_logs(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "move_applied"
        assert record["logger"] == "stock_kernel.test"
        assert record["delta_qty"] == -5
        assert "ts" in record
        assert "correlation_id" not in record

    def test_domain_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        part_id = uuid4()
        get_logger("test").info(
            "part_updated",
            extra={"part_id": part_id, "reason": MoveReason.PULL, "weight": Decimal("1.250")},
        )

        (record,) = _parse_all_logs(stream)
        assert record["part_id"] == str(part_id)
        assert record["reason"] == "pull"
        assert record["weight"] == "1.250"

    def test_plain_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = _parse_all_logs(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "traceback" in record


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_set_clear(self):
        LogContext.set(correlation_id="x", actor_id=None, move_id=uuid4())
        ctx = LogContext.get_all()
        assert set(ctx) == {"correlation_id", "move_id"}
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_values(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", count_id="cnt-1"):
            assert LogContext.get_all() == {"correlation_id": "inner", "count_id": "cnt-1"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(operation="transfer", shelf="A1"):
            assert LogContext.get_all() == {"operation": "transfer"}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert logging.getLogger("stock_kernel").handlers == [h1]

    def test_level_name_accepted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level="debug")
        get_logger("deep.nested.module").debug("hierarchy_test")

        (record,) = _parse_all_logs(stream)
        assert record["logger"] == "stock_kernel.deep.nested.module"


# ---------------------------------------------------------------------------
# Kernel events
# ---------------------------------------------------------------------------


class TestKernelEvents:
    def test_move_rejected_carries_request(
        self, move_service, part, location_a, stock, test_actor_id, captured_logs
    ):
        stock(part, location_a, 2)
        with pytest.raises(InsufficientQuantityError):
            move_service.apply_move(test_actor_id, part.id, location_a.id, -5, reason=MoveReason.PULL)

        (rejected,) = _events(captured_logs(), "move_rejected")
        assert rejected["level"] == "INFO"
        assert rejected["part_id"] == str(part.id)
        assert rejected["current_qty"] == 2
        assert rejected["delta_qty"] == -5
        assert rejected["reason"] == "pull"

    def test_rejection_under_orchestrator_shares_context(
        self, orchestrator, part, location_a, stock, test_actor_id, captured_logs
    ):
        stock(part, location_a, 1)
        with pytest.raises(InsufficientQuantityError):
            orchestrator.apply_move(test_actor_id, part.id, location_a.id, -3)

        records = captured_logs()
        (rejected,) = _events(records, "move_rejected")
        (operation,) = _events(records, "operation_rejected")

        assert rejected["operation"] == operation["operation"] == "apply_move"
        assert rejected["correlation_id"] == operation["correlation_id"]
        assert rejected["actor_id"] == str(test_actor_id)
        assert operation["exc_code"] == "INSUFFICIENT_QUANTITY"
        assert operation["exc_current"] == 1
        assert operation["exc_requested"] == 3
        assert LogContext.get_all() == {}

    def test_count_adjustments_tagged_with_count(
        self, count_service, count_selector, part, location_a, stock, test_actor_id, captured_logs
    ):
        stock(part, location_a, 5)
        count = count_service.create("Q1", None, test_actor_id)
        (record,) = count_selector.records(count.id)
        count_service.record_counts(count.id, [CountEntry(record.id, 3)], test_actor_id)

        count_service.complete(count.id, test_actor_id, apply_adjustments=True)

        adjustments = [
            r for r in _events(captured_logs(), "move_applied") if r.get("delta_qty") == -2
        ]
        assert len(adjustments) == 1
        assert adjustments[0]["count_id"] == str(count.id)

    def test_transaction_rolled_back(self, db_tables, test_actor_id, captured_logs):
        with pytest.raises(PartNotFoundError):
            with session_scope() as session:
                MoveService(session).apply_move(test_actor_id, uuid4(), uuid4(), 1)

        (rolled_back,) = _events(captured_logs(), "transaction_rolled_back")
        assert rolled_back["level"] == "WARNING"
        assert rolled_back["logger"] == "stock_kernel.db.engine"
        assert rolled_back["exc_code"] == "PART_NOT_FOUND"
