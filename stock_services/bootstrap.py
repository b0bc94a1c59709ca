"""
Runtime bootstrap -- turn a StockConfig into a ready kernel.

Responsibility:
    The one place configuration values are passed into kernel
    constructors: logging level, engine parameters, ORM immutability
    listeners and the orchestrator's retry policy.  The kernel itself never
    reads configuration.

Failure modes:
    - sqlalchemy errors from engine creation or create_tables propagate.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from stock_config import StockConfig, get_active_config
from stock_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.clock import Clock
from stock_kernel.logging_config import configure_logging, get_logger
from stock_kernel.services.ledger_orchestrator import LedgerOrchestrator

logger = get_logger("services.bootstrap")


@dataclass(frozen=True)
class StockRuntime:
    """Handles produced by bootstrap()."""

    config: StockConfig
    engine: Engine
    session_factory: sessionmaker[Session]

    def orchestrator(self, session: Session, clock: Clock | None = None) -> LedgerOrchestrator:
        return make_orchestrator(session, self.config, clock=clock)


def bootstrap(
    config: StockConfig | None = None,
    create_schema: bool = False,
) -> StockRuntime:
    """
    Initialize logging, the engine and the immutability listeners.

    Args:
        config: Parsed configuration.  Loaded with get_active_config()
            when omitted.
        create_schema: Create missing tables (development and tests).
    """
    if config is None:
        config = get_active_config()

    configure_logging(level=config.logging.level)

    db = config.database
    engine = init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
    register_immutability_listeners()
    if create_schema:
        create_tables()

    logger.info(
        "runtime_bootstrapped",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "schema_created": create_schema,
        },
    )
    return StockRuntime(
        config=config,
        engine=engine,
        session_factory=get_session_factory(),
    )


def make_orchestrator(
    session: Session,
    config: StockConfig,
    clock: Clock | None = None,
    auto_commit: bool = True,
) -> LedgerOrchestrator:
    """Build a LedgerOrchestrator with the configured retry policy."""
    return LedgerOrchestrator(
        session,
        clock=clock,
        auto_commit=auto_commit,
        max_attempts=config.ledger.max_attempts,
        retry_backoff_seconds=config.ledger.retry_backoff_seconds,
    )
