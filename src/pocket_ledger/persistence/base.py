"""
Abstract Persistence Backend

The ledger can write through to two very different places: a synchronous
local key-value slot and a remote REST endpoint. Both sit behind this
contract so the coordinator never needs to know which one is active.

Every method is a coroutine. The local backend does its work inline; the
remote backend awaits HTTP calls. Implementations raise
PersistenceUnavailable on any read or write failure; deciding what to do about
it is the caller's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..ledger.migration import migrate_transactions
from ..ledger.models import Transaction, records_from_raw


class PersistenceBackend(ABC):
    """
    Abstract interface for transaction persistence.

    Any backend (local slot, remote endpoint) must implement these methods.
    Mutating methods return the backend's full record list after the change.
    """

    name: str = "backend"
    migration_enabled: bool = True

    @abstractmethod
    async def load_raw(self) -> list[dict[str, Any]]:
        """
        Read the stored records exactly as persisted.

        Returns:
            Stored records, possibly still in the legacy shape

        Raises:
            PersistenceUnavailable: If the backend cannot be read
        """
        pass

    async def load_all(self) -> list[Transaction]:
        """
        Read all records in the current shape.

        When ``migration_enabled`` is set the legacy migration is applied in
        memory only; writing the migrated set back is left to the ledger store.
        """
        raw = await self.load_raw()
        if self.migration_enabled:
            raw, _ = migrate_transactions(raw)
        return records_from_raw(raw)

    @abstractmethod
    async def save_all(self, transactions: list[Transaction]) -> None:
        """
        Replace the stored set with ``transactions``.

        Raises:
            PersistenceUnavailable: If the write fails
        """
        pass

    @abstractmethod
    async def append(self, transaction: Transaction) -> list[Transaction]:
        """
        Persist a new record.

        Args:
            transaction: Record with its id already assigned

        Returns:
            Stored records after the append
        """
        pass

    @abstractmethod
    async def update_one(
        self, transaction_id: int, partial: dict[str, Any]
    ) -> list[Transaction]:
        """
        Merge ``partial`` into the stored record with ``transaction_id``.

        Returns:
            Stored records after the update
        """
        pass

    @abstractmethod
    async def remove_one(self, transaction_id: int) -> list[Transaction]:
        """
        Remove the stored record with ``transaction_id``.

        Returns:
            Stored records after the removal
        """
        pass

    def describe(self) -> dict[str, Any]:
        """Short diagnostic description of the backend."""
        return {"backend": self.name}

    async def aclose(self) -> None:
        """Release any held resources."""
        return None


__all__ = ["PersistenceBackend"]
