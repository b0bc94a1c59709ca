"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``stock_config.schema`` dataclasses.  The single public entry point for
runtime config is ``stock_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values or unknown timezone  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import pytz
import yaml

from stock_config.schema import (
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
    StockConfig,
)

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _positive_int(section: str, key: str, value: Any, minimum: int = 1) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        raise ValueError(f"{section}.{key} must be an integer >= {minimum}, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    """Parse the ``database`` section.  ``url`` is required."""
    url = data["url"]
    if not isinstance(url, str) or not url:
        raise ValueError("database.url must be a non-empty string")
    return DatabaseSettings(
        url=url,
        echo=bool(data.get("echo", False)),
        pool_size=_positive_int("database", "pool_size", data.get("pool_size", 20)),
        max_overflow=_positive_int(
            "database", "max_overflow", data.get("max_overflow", 10), minimum=0
        ),
        pool_timeout=_positive_int("database", "pool_timeout", data.get("pool_timeout", 30)),
        pool_recycle=_positive_int("database", "pool_recycle", data.get("pool_recycle", 1800)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be a logging level name, got {level!r}")
    return LoggingSettings(level=level)


def parse_ledger(data: dict[str, Any]) -> LedgerSettings:
    backoff = data.get("retry_backoff_seconds", 0.05)
    if not isinstance(backoff, (int, float)) or isinstance(backoff, bool) or backoff < 0:
        raise ValueError(f"ledger.retry_backoff_seconds must be >= 0, got {backoff!r}")

    timezone = data.get("report_timezone", "UTC")
    if not isinstance(timezone, str) or timezone not in pytz.all_timezones_set:
        raise ValueError(f"ledger.report_timezone is not a known timezone: {timezone!r}")

    return LedgerSettings(
        max_attempts=_positive_int("ledger", "max_attempts", data.get("max_attempts", 3)),
        retry_backoff_seconds=float(backoff),
        history_page_size=_positive_int(
            "ledger", "history_page_size", data.get("history_page_size", 50)
        ),
        low_stock_threshold=_positive_int(
            "ledger", "low_stock_threshold", data.get("low_stock_threshold", 5), minimum=0
        ),
        report_timezone=timezone,
    )


def parse_config(data: dict[str, Any]) -> StockConfig:
    """
    Parse a full configuration dict.

    Preconditions:
        - ``data`` contains ``config_id``, ``version`` and a ``database``
          section with ``url``.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if values are out of range.
    """
    return StockConfig(
        config_id=data["config_id"],
        version=_positive_int("root", "version", data["version"]),
        database=parse_database(data["database"]),
        logging=parse_logging(data.get("logging") or {}),
        ledger=parse_ledger(data.get("ledger") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
