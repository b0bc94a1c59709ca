"""
stock_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration.  Sits above ``stock_kernel`` and below
    ``stock_services``.  The kernel MUST NEVER import from
    ``stock_config``; ``stock_services.bootstrap`` passes the parsed
    values into kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- a value is out of range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``stock_config_loaded`` log entry with config_id, version and
    checksum.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from stock_config.loader import load_yaml_file, parse_config
from stock_config.schema import (
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
    StockConfig,
)

_logger = logging.getLogger("stock_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Environment variable that overrides database.url (deployment secret)
DATABASE_URL_ENV = "STOCK_DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> StockConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``defaults.yaml``.

    Returns:
        StockConfig with ``checksum`` computed over the file contents.
        When ``STOCK_DATABASE_URL`` is set it replaces ``database.url``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=env_url),
        )

    _logger.info(
        "stock_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "database_url_overridden": bool(env_url),
        },
    )
    return config


__all__ = [
    "get_active_config",
    "DEFAULT_CONFIG_PATH",
    "DATABASE_URL_ENV",
    "StockConfig",
    "DatabaseSettings",
    "LoggingSettings",
    "LedgerSettings",
]
