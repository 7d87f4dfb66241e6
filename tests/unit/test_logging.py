"""Tests for the endpoint logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from pocket_ledger.service.logging import NOISY_LOGGERS, configure_logging, wants_json

pytestmark = pytest.mark.unit


@pytest.fixture
def root_logger():
    """Root logger, restored after the test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestWantsJson:
    def test_explicit_choice_wins(self, monkeypatch):
        monkeypatch.setenv("LEDGER_LOG_JSON", "1")
        assert wants_json(False) is False
        assert wants_json(True) is True

    def test_env_flag(self, monkeypatch):
        monkeypatch.setenv("LEDGER_LOG_JSON", "1")
        assert wants_json() is True
        monkeypatch.setenv("LEDGER_LOG_JSON", "0")
        assert wants_json() is False


class TestConfigureLogging:
    def test_core_records_rendered_as_json(self, root_logger):
        handler = configure_logging("debug", json_output=True, service_name="ledger-test")
        record = logging.LogRecord(
            "pocket_ledger.ledger.store",
            logging.INFO,
            __file__,
            1,
            "Loaded 2 transactions",
            None,
            None,
        )

        payload = json.loads(handler.format(record))

        assert payload["event"] == "Loaded 2 transactions"
        assert payload["service"] == "ledger-test"
        assert payload["level"] == "info"
        assert payload["logger"] == "pocket_ledger.ledger.store"
        assert root_logger.handlers == [handler]
        assert root_logger.level == logging.DEBUG

    def test_noisy_loggers_quieted(self, root_logger):
        configure_logging("info", json_output=False)
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
