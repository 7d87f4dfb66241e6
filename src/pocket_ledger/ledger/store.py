"""Ledger Store - authoritative in-memory transaction list.

The store owns the record set for the lifetime of a session. It is loaded
once from the persistence backend (migrating legacy records on the way in),
then every create/update/delete happens in memory and clears the cached
balance. Writing changes through to the backend is the coordinator's job.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable

from .balance_cache import BalanceCache
from .errors import NotFoundError, PersistenceUnavailable, ValidationError
from .migration import migrate_transactions
from .models import (
    Transaction,
    default_transactions,
    normalize_id,
    records_from_raw,
    sanitize_value,
    validate_name,
)

if TYPE_CHECKING:
    from ..persistence.base import PersistenceBackend

logger = logging.getLogger(__name__)


class LedgerStore:
    """In-memory transaction list with a cached balance.

    Example:
        store = LedgerStore(backend)
        await store.load()
        record = store.create({"name": "Freelance", "value": 1200})
        total = store.balance()
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        *,
        cache_window_seconds: float = 0.1,
        migration_enabled: bool = True,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize the store.

        Args:
            backend: Backend the record set is loaded from
            cache_window_seconds: How long a computed balance stays valid
            migration_enabled: Apply the amount->value migration on load
            clock: Wall clock in seconds (default: time.time)
        """
        self._backend = backend
        self.migration_enabled = migration_enabled
        self._transactions: list[Transaction] = []
        self._loaded = False
        self._last_issued_id = 0
        self._balance_cache: BalanceCache[float] = BalanceCache(
            window_seconds=cache_window_seconds, clock=clock
        )

    # -----------------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    async def load(self) -> list[Transaction]:
        """Return the record set, reading the backend on first use."""
        if not self._loaded:
            await self._load_from_backend()
        return self.list()

    async def reload(self) -> list[Transaction]:
        """Discard the in-memory set and read the backend again."""
        self._loaded = False
        return await self.load()

    async def _load_from_backend(self) -> None:
        try:
            raw = await self._backend.load_raw()
        except PersistenceUnavailable as e:
            logger.warning(f"Backend unavailable, using default transactions: {e.message}")
            self._set_records(default_transactions())
            self._loaded = True
            return

        did_migrate = False
        if self.migration_enabled:
            raw, did_migrate = migrate_transactions(raw)
        records = records_from_raw(raw)

        if did_migrate:
            logger.info("Migrated stored transactions from 'amount' to 'value'")
            try:
                await self._backend.save_all(records)
            except PersistenceUnavailable as e:
                logger.warning(f"Could not write migrated transactions back: {e.message}")

        self._set_records(records)
        self._loaded = True
        logger.info(f"Loaded {len(records)} transactions")

    def _set_records(self, records: list[Transaction]) -> None:
        self._transactions = list(records)
        highest = max((t.id for t in self._transactions), default=0)
        self._last_issued_id = max(self._last_issued_id, highest)
        self._balance_cache.invalidate()

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def list(self) -> list[Transaction]:
        """Copies of the records in insertion order."""
        return [replace(t) for t in self._transactions]

    def __len__(self) -> int:
        return len(self._transactions)

    def _find(self, transaction_id: Any) -> tuple[int, Transaction]:
        normalized = normalize_id(transaction_id)
        for index, transaction in enumerate(self._transactions):
            if transaction.id == normalized:
                return index, transaction
        raise NotFoundError(normalized)

    def get(self, transaction_id: Any) -> Transaction:
        """Return a copy of the record with ``transaction_id``."""
        _, transaction = self._find(transaction_id)
        return replace(transaction)

    def balance(self) -> float:
        """Sum of all values, cached for the configured window."""
        return self._balance_cache.get_or_compute(
            lambda: sum(t.value for t in self._transactions)
        )

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def next_id(self) -> int:
        """Next unused id; ids of deleted records are never handed out again."""
        highest = max((t.id for t in self._transactions), default=0)
        return max(highest, self._last_issued_id) + 1

    def create(self, data: dict[str, Any]) -> Transaction:
        """Validate ``data`` and append a new record.

        Raises:
            ValidationError: If the name is missing or blank
        """
        if not isinstance(data, dict):
            raise ValidationError("Invalid transaction", "Expected name and value")
        name = validate_name(data.get("name"))
        value = sanitize_value(data.get("value"))

        transaction = Transaction(id=self.next_id(), name=name, value=value)
        self._last_issued_id = transaction.id
        self._transactions.append(transaction)
        self._balance_cache.invalidate()
        return replace(transaction)

    def update(self, transaction_id: Any, data: dict[str, Any]) -> Transaction:
        """Merge the supplied fields into an existing record.

        Only ``name`` and ``value`` are replaceable; other keys are ignored.

        Raises:
            NotFoundError: If no record has ``transaction_id``
            ValidationError: If a supplied name is blank
        """
        index, current = self._find(transaction_id)
        if not isinstance(data, dict):
            raise ValidationError("Invalid transaction", "Expected name and/or value")

        name = validate_name(data["name"]) if "name" in data else current.name
        value = sanitize_value(data["value"]) if "value" in data else current.value

        updated = Transaction(id=current.id, name=name, value=value)
        self._transactions[index] = updated
        self._balance_cache.invalidate()
        return replace(updated)

    def delete(self, transaction_id: Any) -> None:
        """Remove a record.

        Raises:
            NotFoundError: If no record has ``transaction_id``
        """
        index, _ = self._find(transaction_id)
        del self._transactions[index]
        self._balance_cache.invalidate()

    def replace_all(self, records: list[Transaction]) -> list[Transaction]:
        """Swap in a whole new record set (imports, resets)."""
        seen: set[int] = set()
        for record in records:
            if record.id in seen:
                raise ValidationError(
                    "Invalid transactions", f"Duplicate transaction id {record.id}"
                )
            seen.add(record.id)
        self._set_records([replace(r) for r in records])
        self._loaded = True
        return self.list()

    def reassign_ids(self, mapping: dict[int, int]) -> list[Transaction]:
        """Move records to the ids a backend actually stored them under.

        All renames are applied together, so ``{4: 5, 5: 6}`` is valid.

        Raises:
            ValidationError: If the renamed set would hold a duplicate id
        """
        renamed = [
            replace(t, id=mapping.get(t.id, t.id)) for t in self._transactions
        ]
        seen: set[int] = set()
        for record in renamed:
            if record.id in seen:
                raise ValidationError(
                    "Invalid transactions", f"Duplicate transaction id {record.id}"
                )
            seen.add(record.id)
        self._set_records(renamed)
        return self.list()

    @property
    def balance_cache(self) -> BalanceCache[float]:
        return self._balance_cache


__all__ = ["LedgerStore"]
