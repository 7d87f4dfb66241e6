"""Configuration primitives for the ledger and its REST endpoint."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


DEFAULT_STORAGE_KEY = "financas_pessoais_transactions"
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024  # 5MiB, the usual local storage budget


class BackendKind(str, Enum):
    """Supported persistence backends."""

    LOCAL = "local"
    REMOTE = "remote"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class LedgerConfig:
    """Options consumed by the ledger core.

    Configuration Sources (priority order):
    1. Direct constructor arguments
    2. Environment variables (LEDGER_*)
    3. Default values

    Attributes:
        backend: Preferred persistence backend (default: local)
        remote_base_url: Base URL of the REST endpoint, without the
            ``/transactions`` suffix (default: None)
        cache_window_ms: Validity window of the cached balance (default: 100)
        migration_enabled: Run the amount->value migration on load (default: True)
        storage_path: SQLite file backing the local key-value slot
        storage_key: Key holding the serialized transaction array
        quota_bytes: Size bound of the local key-value slot (default: 5MiB)
        remote_timeout: Seconds before a remote call is abandoned (default: 10)
    """

    backend: BackendKind = BackendKind.LOCAL
    remote_base_url: str | None = None
    cache_window_ms: int = 100
    migration_enabled: bool = True
    storage_path: str = "data/ledger.db"
    storage_key: str = DEFAULT_STORAGE_KEY
    quota_bytes: int = DEFAULT_QUOTA_BYTES
    remote_timeout: float | None = 10.0

    def __post_init__(self) -> None:
        if isinstance(self.backend, str):
            self.backend = BackendKind(self.backend.lower())
        if self.cache_window_ms < 0:
            raise ValueError("cache_window_ms must be >= 0")
        if self.quota_bytes <= 0:
            raise ValueError("quota_bytes must be positive")
        if self.backend is BackendKind.REMOTE and not self.remote_base_url:
            raise ValueError("remote_base_url is required for the remote backend")

    @property
    def cache_window_seconds(self) -> float:
        return self.cache_window_ms / 1000.0

    @classmethod
    def from_env(cls) -> LedgerConfig:
        """Create configuration from environment variables.

        Optional:
            LEDGER_BACKEND: 'local' or 'remote'
            LEDGER_REMOTE_URL: Base URL of the REST endpoint
            LEDGER_CACHE_WINDOW_MS: Balance cache window in milliseconds
            LEDGER_MIGRATION_ENABLED: '0' disables the legacy migration
            LEDGER_STORAGE_PATH: SQLite file for the local slot
            LEDGER_STORAGE_KEY: Key holding the transaction array
            LEDGER_QUOTA_BYTES: Size bound of the local slot
            LEDGER_REMOTE_TIMEOUT: Remote call timeout in seconds
        """
        timeout = os.environ.get("LEDGER_REMOTE_TIMEOUT", "10.0")
        return cls(
            backend=BackendKind(os.environ.get("LEDGER_BACKEND", "local").lower()),
            remote_base_url=os.environ.get("LEDGER_REMOTE_URL") or None,
            cache_window_ms=int(os.environ.get("LEDGER_CACHE_WINDOW_MS", "100")),
            migration_enabled=_env_flag("LEDGER_MIGRATION_ENABLED", True),
            storage_path=os.environ.get("LEDGER_STORAGE_PATH", "data/ledger.db"),
            storage_key=os.environ.get("LEDGER_STORAGE_KEY", DEFAULT_STORAGE_KEY),
            quota_bytes=int(
                os.environ.get("LEDGER_QUOTA_BYTES", str(DEFAULT_QUOTA_BYTES))
            ),
            remote_timeout=float(timeout) if timeout else None,
        )


@dataclass(slots=True)
class ServiceConfig:
    """Runtime configuration for the REST endpoint.

    Attributes:
        host: Interface to bind (default: 0.0.0.0)
        port: Service port (default: 3001)
        seed_defaults: Start the in-memory array with the default records
        log_level: Root log level name (default: INFO)
    """

    host: str = "0.0.0.0"
    port: int = 3001
    seed_defaults: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ServiceConfig:
        """Create configuration from LEDGER_SERVICE_* environment variables."""
        return cls(
            host=os.environ.get("LEDGER_SERVICE_HOST", "0.0.0.0"),
            port=int(os.environ.get("LEDGER_SERVICE_PORT", "3001")),
            seed_defaults=_env_flag("LEDGER_SERVICE_SEED", True),
            log_level=os.environ.get("LEDGER_LOG_LEVEL", "INFO").upper(),
        )


__all__ = [
    "BackendKind",
    "DEFAULT_QUOTA_BYTES",
    "DEFAULT_STORAGE_KEY",
    "LedgerConfig",
    "ServiceConfig",
]
