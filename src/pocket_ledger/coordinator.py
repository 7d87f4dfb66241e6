"""Transaction Coordinator - the entry point used by a presentation layer.

Ties the in-memory ledger store to a persistence backend. Every mutation is
applied to the store first and then written through to the backend. A failed
write never rolls the store back: the in-memory set stays authoritative for
the session and the failure is reported as a warning, recorded in
``last_persistence_error`` and emitted to subscribers as
``persistence.failed``. The next write after a failure persists the whole
in-memory set. When a backend stores a new record under a different id, the
store adopts that id.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from .config import LedgerConfig
from .ledger.errors import IdConflictError, PersistenceUnavailable, ValidationError
from .ledger.models import (
    LedgerStatistics,
    Transaction,
    TransactionKind,
    default_transactions,
    transactions_from_json,
    transactions_to_json,
)
from .ledger.store import LedgerStore
from .persistence import PersistenceBackend, select_backend

logger = logging.getLogger(__name__)

EVENT_CREATED = "transaction.created"
EVENT_UPDATED = "transaction.updated"
EVENT_DELETED = "transaction.deleted"
EVENT_REPLACED = "transactions.replaced"
EVENT_PERSISTENCE_FAILED = "persistence.failed"


@dataclass
class LedgerEvent:
    """Change notification delivered to subscribers."""

    kind: str
    records: list[Transaction]
    transaction: Transaction | None = None
    error: PersistenceUnavailable | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[LedgerEvent], None]


class TransactionCoordinator:
    """Orchestrates the ledger store and its persistence backend.

    Example:
        coordinator = TransactionCoordinator.from_config(LedgerConfig.from_env())
        await coordinator.start()
        await coordinator.create({"name": "Freelance", "value": 1200})
        print(coordinator.balance())
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        backend: PersistenceBackend | None = None,
        *,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize the coordinator.

        Args:
            config: Ledger configuration (default: LedgerConfig())
            backend: Persistence backend (default: chosen by select_backend)
            clock: Wall clock for the balance cache window (default: time.time)
        """
        self.config = config or LedgerConfig()
        self._backend = backend or select_backend(self.config)
        self._store = LedgerStore(
            self._backend,
            cache_window_seconds=self.config.cache_window_seconds,
            migration_enabled=self.config.migration_enabled,
            clock=clock,
        )
        self._listeners: list[Listener] = []
        self._last_persistence_error: PersistenceUnavailable | None = None

    @classmethod
    def from_config(cls, config: LedgerConfig, **kwargs: Any) -> TransactionCoordinator:
        return cls(config, select_backend(config), **kwargs)

    @property
    def backend(self) -> PersistenceBackend:
        return self._backend

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def last_persistence_error(self) -> PersistenceUnavailable | None:
        """Most recent failed write, cleared by the next successful one."""
        return self._last_persistence_error

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def start(self) -> list[Transaction]:
        """Load the record set once. Safe to call repeatedly."""
        records = await self._store.load()
        logger.info(
            f"Ledger started with {len(records)} transactions "
            f"on the {self._backend.name} backend"
        )
        return records

    async def refresh(self) -> list[Transaction]:
        """Drop the in-memory set and read the backend again."""
        records = await self._store.reload()
        self._emit(EVENT_REPLACED)
        return records

    async def aclose(self) -> None:
        await self._backend.aclose()

    async def __aenter__(self) -> TransactionCoordinator:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    # -----------------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------------

    async def get_all(self) -> list[Transaction]:
        return await self._store.load()

    async def get(self, transaction_id: Any) -> Transaction:
        await self._store.load()
        return self._store.get(transaction_id)

    async def create(self, data: dict[str, Any]) -> Transaction:
        """Add a record and write it through.

        Raises:
            ValidationError: If the name is missing or blank
        """
        await self._store.load()
        transaction = self._store.create(data)
        proposed = transaction.id
        renamed = await self._write_through(
            lambda: self._backend.append(transaction), f"create {proposed}"
        )
        if proposed in renamed:
            transaction = self._store.get(renamed[proposed])
        self._emit(EVENT_CREATED, transaction)
        return transaction

    async def update(self, transaction_id: Any, data: dict[str, Any]) -> Transaction:
        """Merge fields into a record and write them through.

        Raises:
            NotFoundError: If the id is unknown
            ValidationError: If a supplied name is blank
        """
        await self._store.load()
        transaction = self._store.update(transaction_id, data)
        partial = {
            key: getattr(transaction, key)
            for key in ("name", "value")
            if key in data
        }
        if partial:
            await self._write_through(
                lambda: self._backend.update_one(transaction.id, partial),
                f"update {transaction.id}",
            )
        self._emit(EVENT_UPDATED, transaction)
        return transaction

    async def delete(self, transaction_id: Any) -> None:
        """Remove a record and write the removal through.

        Raises:
            NotFoundError: If the id is unknown
        """
        await self._store.load()
        removed = self._store.get(transaction_id)
        self._store.delete(removed.id)
        await self._write_through(
            lambda: self._backend.remove_one(removed.id), f"delete {removed.id}"
        )
        self._emit(EVENT_DELETED, removed)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def balance(self) -> float:
        return self._store.balance()

    def search(self, term: str | None) -> list[Transaction]:
        """Records whose name contains ``term``, ignoring case."""
        records = self._store.list()
        needle = (term or "").strip().lower()
        if not needle:
            return records
        return [t for t in records if needle in t.name.lower()]

    def filter_by_type(self, kind: str | TransactionKind) -> list[Transaction]:
        """Income (value >= 0) or expense (value < 0) records.

        Raises:
            ValidationError: If ``kind`` is neither income nor expense
        """
        wanted = TransactionKind.parse(kind)
        return [t for t in self._store.list() if t.kind is wanted]

    def statistics(self) -> LedgerStatistics:
        records = self._store.list()
        total_income = sum(t.value for t in records if t.value > 0)
        total_expenses = abs(sum(t.value for t in records if t.value < 0))
        balance = total_income - total_expenses
        count = len(records)
        return LedgerStatistics(
            count=count,
            total_income=total_income,
            total_expenses=total_expenses,
            balance=balance,
            average=balance / count if count else 0.0,
        )

    # -----------------------------------------------------------------------
    # Backup and reset
    # -----------------------------------------------------------------------

    def export_json(self) -> str:
        """Serialize the in-memory record set as a JSON backup."""
        return transactions_to_json(self._store.list())

    async def import_json(self, payload: str) -> list[Transaction]:
        """Replace every record with the contents of a JSON backup.

        Raises:
            ValidationError: If the backup cannot be parsed
        """
        records = transactions_from_json(payload)
        return await self._replace(records, "import")

    async def reset_to_defaults(self) -> list[Transaction]:
        """Discard every record and restore the default seed."""
        return await self._replace(default_transactions(), "reset")

    async def _replace(self, records: list[Transaction], action: str) -> list[Transaction]:
        current = self._store.replace_all(records)
        await self._write_through(lambda: self._backend.save_all(current), action)
        current = self._store.list()
        self._emit(EVENT_REPLACED)
        logger.info(f"Ledger {action}: {len(current)} transactions")
        return current

    # -----------------------------------------------------------------------
    # Persistence and events
    # -----------------------------------------------------------------------

    async def _write_through(
        self, write: Callable[[], Any], action: str
    ) -> dict[int, int]:
        """Persist one mutation, or the whole set after an earlier failure.

        Once a write has failed the backend may be missing any number of
        changes, so until a write succeeds again every mutation is persisted
        as a full ``save_all`` of the in-memory set.

        Returns:
            Ids the backend stored new records under in place of the proposed
            ones; the store has already been moved to them
        """
        if self._last_persistence_error is not None:
            write = functools.partial(self._backend.save_all, self._store.list())
            action = f"{action} (resync)"

        try:
            await write()
        except IdConflictError as e:
            try:
                self._store.reassign_ids(e.assigned_ids)
            except ValidationError:
                self._record_failure(e, action)
                return {}
            logger.warning(
                f"The {self._backend.name} backend stored {action} under other ids, "
                f"adopting them: {e.details}"
            )
            self._last_persistence_error = None
            return e.assigned_ids
        except PersistenceUnavailable as e:
            self._record_failure(e, action)
            return {}
        self._last_persistence_error = None
        return {}

    def _record_failure(self, error: PersistenceUnavailable, action: str) -> None:
        self._last_persistence_error = error
        logger.warning(
            f"Persisting {action} to the {self._backend.name} backend failed, "
            f"keeping the in-memory change: {error.message}"
        )
        self._emit(EVENT_PERSISTENCE_FAILED, error=error)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for change events.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(
        self,
        kind: str,
        transaction: Transaction | None = None,
        error: PersistenceUnavailable | None = None,
    ) -> None:
        event = LedgerEvent(
            kind=kind,
            records=self._store.list(),
            transaction=transaction,
            error=error,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener failed while handling {kind}")

    def describe(self) -> dict[str, Any]:
        return {
            **self._backend.describe(),
            "count": len(self._store),
            "loaded": self._store.is_loaded,
            "last_persistence_error": (
                self._last_persistence_error.to_dict()
                if self._last_persistence_error
                else None
            ),
        }


__all__ = [
    "EVENT_CREATED",
    "EVENT_DELETED",
    "EVENT_PERSISTENCE_FAILED",
    "EVENT_REPLACED",
    "EVENT_UPDATED",
    "LedgerEvent",
    "TransactionCoordinator",
]
