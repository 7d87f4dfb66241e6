"""Pydantic models backing the ledger REST API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TransactionPayload(BaseModel):
    """Body of POST/PUT (and optionally DELETE) on ``/transactions``.

    Every field is optional at the schema level; which ones are required
    depends on the operation and is checked by the table, so a missing field
    yields the ledger's own 400 message instead of a schema error.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    name: str | None = None
    value: float | str | None = None


class TransactionOut(BaseModel):
    """A stored transaction as returned by the endpoint."""

    id: int
    name: str
    value: float


class DeleteResponse(BaseModel):
    """Confirmation returned by DELETE."""

    id: int
    deleted: bool = True
    message: str


class HealthResponse(BaseModel):
    """Liveness payload for ``/healthz``."""

    status: str = "ok"
    service: str = "pocket-ledger"
    version: str
    count: int = Field(description="Transactions currently held in memory")


__all__ = [
    "DeleteResponse",
    "HealthResponse",
    "TransactionOut",
    "TransactionPayload",
]
