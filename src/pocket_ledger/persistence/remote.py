"""Remote persistence backend talking to the ledger REST endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..ledger.errors import IdConflictError, PersistenceUnavailable, ValidationError
from ..ledger.models import Transaction, normalize_id
from .base import PersistenceBackend

logger = logging.getLogger(__name__)

TRANSACTIONS_PATH = "/transactions"


class RemoteBackend(PersistenceBackend):
    """Persist transactions through ``/transactions`` on a REST endpoint.

    A single attempt is made per call: any transport error or non-2xx
    response raises PersistenceUnavailable. Mutations re-read the list so
    callers get the endpoint's view of the record set. When the endpoint
    stores a new record under an id other than the proposed one, the write
    completes and IdConflictError reports the assigned ids.

    Example:
        >>> backend = RemoteBackend("http://localhost:3001")
        >>> records = await backend.load_all()
        >>> await backend.aclose()
    """

    name = "remote"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        migration_enabled: bool = True,
    ):
        self.base_url = base_url.rstrip("/")
        self.migration_enabled = migration_enabled
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> RemoteBackend:
        await self._ensure_client()
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        """Close the client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Issue one request against the transactions resource."""
        client = await self._ensure_client()
        try:
            response = await client.request(
                method, TRANSACTIONS_PATH, json=json, params=params
            )
        except httpx.TimeoutException as e:
            raise PersistenceUnavailable(
                "Remote ledger timed out", f"{method} {TRANSACTIONS_PATH}: {e}"
            ) from e
        except httpx.HTTPError as e:
            raise PersistenceUnavailable(
                "Remote ledger unreachable", f"{method} {TRANSACTIONS_PATH}: {e}"
            ) from e

        if not response.is_success:
            raise PersistenceUnavailable(
                f"Remote ledger returned HTTP {response.status_code}",
                response.text,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise PersistenceUnavailable(
                "Remote ledger sent an invalid response", str(e)
            ) from e

    # -----------------------------------------------------------------------
    # Backend contract
    # -----------------------------------------------------------------------

    async def load_raw(self) -> list[dict[str, Any]]:
        data = await self._request("GET")
        if not isinstance(data, list):
            raise PersistenceUnavailable(
                "Remote ledger sent an invalid response", "Expected a JSON array"
            )
        logger.debug(f"Fetched {len(data)} transactions from {self.base_url}")
        return data

    async def save_all(self, transactions: list[Transaction]) -> None:
        """Make the remote list match ``transactions``.

        The endpoint has no bulk write, so the lists are reconciled record by
        record: stale ids are deleted, changed ones updated, new ones created.
        """
        current = {t.id: t for t in await self.load_all()}
        wanted = {t.id for t in transactions}

        for transaction_id in current:
            if transaction_id not in wanted:
                await self._request("DELETE", params={"id": transaction_id})

        reassigned: dict[int, int] = {}
        for transaction in transactions:
            existing = current.get(transaction.id)
            if existing is None:
                assigned = await self._post(transaction)
                if assigned != transaction.id:
                    reassigned[transaction.id] = assigned
            elif existing != transaction:
                await self._put(transaction.id, transaction.name, transaction.value)

        if reassigned:
            raise IdConflictError(reassigned)

    async def append(self, transaction: Transaction) -> list[Transaction]:
        assigned = await self._post(transaction)
        if assigned != transaction.id:
            raise IdConflictError({transaction.id: assigned})
        return await self.load_all()

    async def update_one(
        self, transaction_id: int, partial: dict[str, Any]
    ) -> list[Transaction]:
        name = partial.get("name")
        value = partial.get("value")
        if name is None or value is None:
            # The endpoint wants both fields; fill the gaps from its copy
            for record in await self.load_all():
                if record.id == transaction_id:
                    name = record.name if name is None else name
                    value = record.value if value is None else value
                    break
        await self._put(transaction_id, name, value)
        return await self.load_all()

    async def remove_one(self, transaction_id: int) -> list[Transaction]:
        await self._request("DELETE", params={"id": transaction_id})
        return await self.load_all()

    async def _post(self, transaction: Transaction) -> int:
        """Create ``transaction`` remotely and return the id it was stored under."""
        created = await self._request("POST", json=transaction.to_dict())
        try:
            assigned = normalize_id(created.get("id") if isinstance(created, dict) else None)
        except ValidationError as e:
            raise PersistenceUnavailable(
                "Remote ledger sent an invalid response", "Created record has no id"
            ) from e
        if assigned != transaction.id:
            logger.warning(
                f"Remote ledger stored transaction {transaction.id} under id {assigned}"
            )
        return assigned

    async def _put(self, transaction_id: int, name: Any, value: Any) -> None:
        await self._request(
            "PUT",
            json={"name": name, "value": value},
            params={"id": transaction_id},
        )

    def describe(self) -> dict[str, Any]:
        return {
            "backend": self.name,
            "base_url": self.base_url,
            "timeout": self.timeout,
        }


__all__ = ["RemoteBackend", "TRANSACTIONS_PATH"]
