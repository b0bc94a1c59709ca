"""Tests for stock_config: YAML loading, validation and the environment override."""

from __future__ import annotations

import textwrap

import pytest
import yaml

from stock_config import DATABASE_URL_ENV, get_active_config
from stock_config.loader import compute_checksum, load_yaml_file, parse_config

MINIMAL = {
    "config_id": "test",
    "version": 1,
    "database": {"url": "sqlite://"},
}


def _write(tmp_path, text: str):
    path = tmp_path / "stock.yaml"
    path.write_text(textwrap.dedent(text))
    return path


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch):
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


class TestDefaults:
    def test_packaged_defaults_load(self):
        config = get_active_config()

        assert config.config_id == "stock-ledger-default"
        assert config.ledger.max_attempts == 3
        assert config.ledger.report_timezone == "America/New_York"
        assert config.logging.level == "INFO"
        assert len(config.checksum) == 64

    def test_environment_replaces_database_url(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://stock@db/stock")
        config = get_active_config()
        assert config.database.url == "postgresql://stock@db/stock"
        assert config.database.pool_size == 20

    def test_load_logged(self, captured_logs):
        config = get_active_config()
        loaded = next(r for r in captured_logs() if r["message"] == "stock_config_loaded")
        assert loaded["checksum"] == config.checksum
        assert loaded["database_url_overridden"] is False


class TestParsing:
    def test_minimal_config_gets_section_defaults(self):
        config = parse_config(dict(MINIMAL))
        assert config.database.echo is False
        assert config.ledger.retry_backoff_seconds == 0.05
        assert config.ledger.report_timezone == "UTC"

    def test_checksum_is_order_independent(self):
        reordered = {"database": {"url": "sqlite://"}, "version": 1, "config_id": "test"}
        assert compute_checksum(MINIMAL) == compute_checksum(reordered)
        assert compute_checksum(MINIMAL) != compute_checksum({**MINIMAL, "version": 2})

    @pytest.mark.parametrize("missing", ["config_id", "version", "database"])
    def test_missing_required_key(self, missing):
        data = {k: v for k, v in MINIMAL.items() if k != missing}
        with pytest.raises(KeyError):
            parse_config(data)

    def test_missing_database_url(self):
        with pytest.raises(KeyError):
            parse_config({**MINIMAL, "database": {}})

    @pytest.mark.parametrize(
        "section",
        [
            {"logging": {"level": "LOUD"}},
            {"ledger": {"report_timezone": "Mars/Olympus_Mons"}},
            {"ledger": {"max_attempts": 0}},
            {"ledger": {"retry_backoff_seconds": -1}},
            {"database": {"url": "sqlite://", "pool_size": "big"}},
            {"version": True},
        ],
    )
    def test_out_of_range_values(self, section):
        with pytest.raises(ValueError):
            parse_config({**MINIMAL, **section})

    def test_level_name_is_case_insensitive(self):
        config = parse_config({**MINIMAL, "logging": {"level": "debug"}})
        assert config.logging.level == "DEBUG"


class TestYamlFiles:
    def test_file_round_trip(self, tmp_path):
        path = _write(
            tmp_path,
            """
            config_id: shop
            version: 2
            database:
              url: sqlite:///shop.db
            ledger:
              low_stock_threshold: 0
            """,
        )
        config = get_active_config(path)
        assert (config.config_id, config.version) == ("shop", 2)
        assert config.ledger.low_stock_threshold == 0

    def test_top_level_must_be_mapping(self, tmp_path):
        path = _write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_malformed_yaml(self, tmp_path):
        path = _write(tmp_path, "config_id: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")
