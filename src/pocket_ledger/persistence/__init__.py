"""Persistence layer - local key-value slot and remote REST backends."""

from .base import PersistenceBackend
from .factory import select_backend
from .kv_store import (
    KeyValueStore,
    KeyValueStoreError,
    QuotaExceededError,
    StorageDisabledError,
)
from .local import LocalBackend
from .remote import RemoteBackend

__all__ = [
    "KeyValueStore",
    "KeyValueStoreError",
    "LocalBackend",
    "PersistenceBackend",
    "QuotaExceededError",
    "RemoteBackend",
    "StorageDisabledError",
    "select_backend",
]
