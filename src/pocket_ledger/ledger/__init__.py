"""Ledger core - transaction records, balance cache and the in-memory store."""

from .balance_cache import BalanceCache, CacheEntry
from .errors import LedgerError, NotFoundError, PersistenceUnavailable, ValidationError
from .migration import migrate_record, migrate_transactions
from .models import (
    DEFAULT_TRANSACTIONS,
    LedgerStatistics,
    Transaction,
    TransactionKind,
    default_transactions,
)
from .store import LedgerStore

__all__ = [
    "BalanceCache",
    "CacheEntry",
    "DEFAULT_TRANSACTIONS",
    "LedgerError",
    "LedgerStatistics",
    "LedgerStore",
    "NotFoundError",
    "PersistenceUnavailable",
    "Transaction",
    "TransactionKind",
    "ValidationError",
    "default_transactions",
    "migrate_record",
    "migrate_transactions",
]
