"""Backend selection from configuration."""

from __future__ import annotations

import logging

import httpx

from ..config import BackendKind, LedgerConfig
from .base import PersistenceBackend
from .kv_store import KeyValueStore
from .local import LocalBackend
from .remote import RemoteBackend

logger = logging.getLogger(__name__)


def select_backend(
    config: LedgerConfig,
    *,
    kv_store: KeyValueStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PersistenceBackend:
    """Pick the persistence backend for a coordinator.

    The local slot is preferred. It is probed with a live write and delete;
    when the probe fails and a remote URL is configured the remote backend
    is used instead, otherwise the local backend is kept and its writes will
    surface as persistence warnings. There is no per-call failover.

    Args:
        config: Ledger configuration
        kv_store: Pre-built key-value store (default: one at config.storage_path)
        transport: Optional httpx transport for the remote backend
    """
    if config.backend is BackendKind.REMOTE:
        logger.info(f"Using remote ledger at {config.remote_base_url}")
        return _remote(config, transport)

    store = kv_store or KeyValueStore(
        config.storage_path, quota_bytes=config.quota_bytes
    )
    local = LocalBackend(
        store, config.storage_key, migration_enabled=config.migration_enabled
    )
    if local.probe():
        logger.info(f"Using local ledger storage at {store.db_path}")
        return local

    if config.remote_base_url:
        logger.warning(
            f"Local storage unavailable, falling back to remote ledger at "
            f"{config.remote_base_url}"
        )
        return _remote(config, transport)

    logger.warning("Local storage unavailable and no remote configured; changes will not persist")
    return local


def _remote(
    config: LedgerConfig, transport: httpx.AsyncBaseTransport | None
) -> RemoteBackend:
    if not config.remote_base_url:
        raise ValueError("remote_base_url is required for the remote backend")
    return RemoteBackend(
        config.remote_base_url,
        timeout=config.remote_timeout,
        transport=transport,
        migration_enabled=config.migration_enabled,
    )


__all__ = ["select_backend"]
