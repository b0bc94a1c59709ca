"""
StockConfig schema.

The runtime configuration of a stock ledger deployment.  YAML files are
parsed into these frozen types by the loader; services receive the parsed
values, never the file.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Engine parameters passed to stock_kernel.db.init_engine_from_url()."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerSettings:
    """Knobs of the ledger services.  None of them can weaken an invariant."""

    max_attempts: int = 3
    retry_backoff_seconds: float = 0.05
    history_page_size: int = 50
    low_stock_threshold: int = 5
    report_timezone: str = "UTC"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StockConfig:
    """A loaded, validated configuration with its identity checksum."""

    config_id: str
    version: int
    database: DatabaseSettings
    logging: LoggingSettings
    ledger: LedgerSettings
    checksum: str = ""
