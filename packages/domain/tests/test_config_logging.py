"""Tests for settings and structlog configuration."""

import json
from datetime import timedelta

import pytest
import structlog

from revora_domain.config import LedgerSettings
from revora_domain.logging_config import configure_logging
from revora_domain.ledger import OwnershipLedger, Runtime, SecondaryLedger
from revora_domain.schemas import TrancheConfig

from conftest import make_economics, make_metadata


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("REVORA_UNIT_DECIMALS", "REVORA_DEFAULT_CLAIM_PERIOD_DAYS", "REVORA_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        settings = LedgerSettings()
        assert settings.UNIT_DECIMALS == 18
        assert settings.DEFAULT_CLAIM_PERIOD_DAYS == 30
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_JSON is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("REVORA_UNIT_DECIMALS", "6")
        monkeypatch.setenv("REVORA_LOG_JSON", "true")
        settings = LedgerSettings()
        assert settings.UNIT_DECIMALS == 6
        assert settings.LOG_JSON is True

    def test_module_settings_feed_defaults(self, monkeypatch):
        """Defaults read the module-level settings at construction time."""
        monkeypatch.setattr("revora_domain.config.settings.DEFAULT_CLAIM_PERIOD_DAYS", 7)
        monkeypatch.setattr("revora_domain.config.settings.UNIT_DECIMALS", 0)

        assert TrancheConfig(revora_share_bps=0).claim_period == timedelta(days=7)
        assert SecondaryLedger(address="revora_units", operator="operator").unit_decimals == 0

    def test_explicit_unit_decimals(self):
        runtime = Runtime()
        ledger = runtime.deploy(OwnershipLedger(
            address="chkn_t1",
            operator="operator",
            metadata=make_metadata(),
            economics=make_economics(),
            created_at=runtime.now,
            unit_decimals=6,
        ))
        assert ledger.unit_scale == 10**6


class TestLogging:

    def test_json_output(self, capsys, reset_structlog):
        configure_logging(LedgerSettings(LOG_JSON=True, LOG_LEVEL="INFO"))
        structlog.get_logger().info("distribution_created", distribution_id=3)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "distribution_created"
        assert record["distribution_id"] == 3
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_level_filter(self, capsys, reset_structlog):
        configure_logging(LedgerSettings(LOG_JSON=True, LOG_LEVEL="WARNING"))
        structlog.get_logger().info("hidden")
        structlog.get_logger().warning("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out

    def test_runtime_logs_published_events(self, capsys, reset_structlog):
        configure_logging(LedgerSettings(LOG_JSON=True, LOG_LEVEL="INFO"))
        runtime = Runtime()
        units = runtime.deploy(SecondaryLedger(address="revora_units", operator="operator"))
        units.mint("operator", "staker_bob", 5)

        records = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line]
        minted = [r for r in records if r["event"] == "units_minted"]
        assert len(minted) == 1
        assert minted[0]["emitter"] == "revora_units"
        assert minted[0]["amounts"] == {"units": 5}

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(LedgerSettings(LOG_LEVEL="chatty"))
