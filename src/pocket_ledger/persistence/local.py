"""Local persistence backend over a single key-value slot.

The whole record set lives under one key as a JSON array. An absent key means
the ledger was never initialized: the default records are seeded and written
back. Every mutation is a read-modify-write of the full array; records it
does not touch are written back as stored, so with migration disabled legacy
entries keep their shape. Updating or removing an id the slot does not hold
raises PersistenceUnavailable.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..ledger.errors import PersistenceUnavailable, ValidationError
from ..ledger.migration import migrate_transactions
from ..ledger.models import (
    Transaction,
    default_transactions,
    normalize_id,
    records_from_raw,
    sanitize_value,
    transactions_from_json,
    transactions_to_json,
    validate_name,
)
from .base import PersistenceBackend
from .kv_store import KeyValueStore, KeyValueStoreError, QuotaExceededError

logger = logging.getLogger(__name__)


def _stored_id(item: Any) -> int | None:
    if not isinstance(item, dict):
        return None
    try:
        return normalize_id(item.get("id"))
    except ValidationError:
        return None


def _missing(transaction_id: int) -> PersistenceUnavailable:
    return PersistenceUnavailable(
        "Local storage is out of sync",
        f"Transaction {transaction_id} is not in local storage",
    )


class LocalBackend(PersistenceBackend):
    """Persist transactions in a local, size-bounded key-value slot."""

    name = "local"

    def __init__(
        self,
        store: KeyValueStore,
        storage_key: str,
        *,
        migration_enabled: bool = True,
    ):
        self._store = store
        self.storage_key = storage_key
        self.migration_enabled = migration_enabled

    # -----------------------------------------------------------------------
    # Slot access
    # -----------------------------------------------------------------------

    def probe(self) -> bool:
        """Live write/delete check used when selecting a backend."""
        return self._store.probe()

    def _read_slot(self) -> str | None:
        try:
            return self._store.get_item(self.storage_key)
        except KeyValueStoreError as e:
            raise PersistenceUnavailable("Local storage unavailable", str(e)) from e

    def _write_records(self, records: list[dict[str, Any]]) -> None:
        payload = json.dumps(records, ensure_ascii=False)
        try:
            self._store.set_item(self.storage_key, payload)
        except QuotaExceededError as e:
            raise PersistenceUnavailable("Local storage is full", str(e)) from e
        except KeyValueStoreError as e:
            raise PersistenceUnavailable("Local storage unavailable", str(e)) from e
        logger.debug(f"Saved {len(records)} transactions to '{self.storage_key}'")

    def _seed_defaults(self) -> list[dict[str, Any]]:
        records = [t.to_dict() for t in default_transactions()]
        try:
            self._write_records(records)
        except PersistenceUnavailable as e:
            logger.warning(f"Could not write default transactions: {e.details}")
        return records

    # -----------------------------------------------------------------------
    # Backend contract
    # -----------------------------------------------------------------------

    async def load_raw(self) -> list[dict[str, Any]]:
        stored = self._read_slot()
        if stored is None:
            logger.info("No stored transactions found, seeding defaults")
            return self._seed_defaults()

        try:
            records = json.loads(stored)
        except json.JSONDecodeError as e:
            logger.error(f"Stored transactions are not valid JSON, reseeding: {e}")
            return self._seed_defaults()

        if not isinstance(records, list):
            logger.error("Stored transactions are not a list, reseeding")
            return self._seed_defaults()

        logger.debug(f"Loaded {len(records)} transactions from '{self.storage_key}'")
        return records

    async def save_all(self, transactions: list[Transaction]) -> None:
        self._write_records([t.to_dict() for t in transactions])

    async def _stored_records(self) -> list[Any]:
        raw = await self.load_raw()
        if self.migration_enabled:
            raw, _ = migrate_transactions(raw)
        return raw

    async def append(self, transaction: Transaction) -> list[Transaction]:
        raw = await self._stored_records()
        raw.append(transaction.to_dict())
        self._write_records(raw)
        return records_from_raw(raw)

    async def update_one(
        self, transaction_id: int, partial: dict[str, Any]
    ) -> list[Transaction]:
        raw = await self._stored_records()
        for item in raw:
            if _stored_id(item) == transaction_id:
                if "name" in partial:
                    item["name"] = validate_name(partial["name"])
                if "value" in partial:
                    item["value"] = sanitize_value(partial["value"])
                self._write_records(raw)
                return records_from_raw(raw)
        raise _missing(transaction_id)

    async def remove_one(self, transaction_id: int) -> list[Transaction]:
        raw = await self._stored_records()
        remaining = [item for item in raw if _stored_id(item) != transaction_id]
        if len(remaining) == len(raw):
            raise _missing(transaction_id)
        self._write_records(remaining)
        return records_from_raw(remaining)

    # -----------------------------------------------------------------------
    # Backup helpers
    # -----------------------------------------------------------------------

    async def export_json(self) -> str:
        """Serialized copy of the stored records for backup."""
        records = await self.load_all()
        return transactions_to_json(records)

    async def import_json(self, payload: str) -> list[Transaction]:
        """Replace the stored records with a backup produced by export_json."""
        records = transactions_from_json(payload)
        await self.save_all(records)
        logger.info(f"Imported {len(records)} transactions")
        return records

    def clear(self) -> None:
        """Remove the slot; the next load reseeds the defaults."""
        try:
            self._store.remove_item(self.storage_key)
        except KeyValueStoreError as e:
            raise PersistenceUnavailable("Local storage unavailable", str(e)) from e

    def describe(self) -> dict[str, Any]:
        return {
            "backend": self.name,
            "storage_key": self.storage_key,
            "db_path": self._store.db_path,
            "quota_bytes": self._store.quota_bytes,
        }

    async def aclose(self) -> None:
        self._store.close()


__all__ = ["LocalBackend"]
