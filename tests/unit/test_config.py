"""Tests for ledger and service configuration."""

from __future__ import annotations

import pytest

from pocket_ledger.config import (
    DEFAULT_STORAGE_KEY,
    BackendKind,
    LedgerConfig,
    ServiceConfig,
)

pytestmark = pytest.mark.unit


class TestLedgerConfig:
    def test_defaults(self):
        config = LedgerConfig()
        assert config.backend is BackendKind.LOCAL
        assert config.cache_window_ms == 100
        assert config.cache_window_seconds == 0.1
        assert config.migration_enabled is True
        assert config.storage_key == DEFAULT_STORAGE_KEY

    def test_backend_string_coerced(self):
        config = LedgerConfig(backend="REMOTE", remote_base_url="http://localhost:3001")
        assert config.backend is BackendKind.REMOTE

    def test_remote_requires_url(self):
        with pytest.raises(ValueError):
            LedgerConfig(backend=BackendKind.REMOTE)

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            LedgerConfig(cache_window_ms=-1)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LEDGER_BACKEND", "remote")
        monkeypatch.setenv("LEDGER_REMOTE_URL", "http://ledger:3001")
        monkeypatch.setenv("LEDGER_CACHE_WINDOW_MS", "250")
        monkeypatch.setenv("LEDGER_MIGRATION_ENABLED", "0")
        monkeypatch.setenv("LEDGER_REMOTE_TIMEOUT", "2.5")

        config = LedgerConfig.from_env()

        assert config.backend is BackendKind.REMOTE
        assert config.remote_base_url == "http://ledger:3001"
        assert config.cache_window_seconds == 0.25
        assert config.migration_enabled is False
        assert config.remote_timeout == 2.5


class TestServiceConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LEDGER_SERVICE_PORT", "8080")
        monkeypatch.setenv("LEDGER_SERVICE_SEED", "false")
        monkeypatch.setenv("LEDGER_LOG_LEVEL", "debug")

        config = ServiceConfig.from_env()

        assert config.port == 8080
        assert config.seed_defaults is False
        assert config.log_level == "DEBUG"

    def test_defaults(self, monkeypatch):
        for name in ("LEDGER_SERVICE_HOST", "LEDGER_SERVICE_PORT", "LEDGER_SERVICE_SEED"):
            monkeypatch.delenv(name, raising=False)
        config = ServiceConfig.from_env()
        assert config.port == 3001
        assert config.seed_defaults is True
