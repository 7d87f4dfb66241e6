"""FastAPI router for the ledger endpoint.

Implements ``/transactions``:
- GET    list every transaction
- POST   create one (201)
- PUT    replace name and value, id from ``?id=`` or the body
- DELETE remove one, id from ``?id=`` or the body

Ledger errors propagate to the handlers registered in ``app.py``
(ValidationError -> 400, NotFoundError -> 404).
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Query, status

from .logging import get_logger
from .models import DeleteResponse, TransactionOut, TransactionPayload
from .table import TransactionTable

logger = get_logger(__name__)


def build_router(table: TransactionTable) -> APIRouter:
    """Build the transactions router.

    Args:
        table: The in-memory array backing the endpoint

    Returns:
        Configured APIRouter
    """
    router = APIRouter()

    @router.get("/transactions", response_model=list[TransactionOut])
    def list_transactions() -> list[TransactionOut]:
        """List all transactions in insertion order."""
        return [TransactionOut(**row.to_dict()) for row in table.list()]

    @router.post(
        "/transactions",
        response_model=TransactionOut,
        status_code=status.HTTP_201_CREATED,
    )
    def create_transaction(payload: TransactionPayload) -> TransactionOut:
        """Create a transaction from ``{name, value[, id]}``."""
        row = table.create(payload.name, payload.value, proposed_id=payload.id)
        logger.info("transaction_created", transaction_id=row.id)
        return TransactionOut(**row.to_dict())

    @router.put("/transactions", response_model=TransactionOut)
    def update_transaction(
        payload: TransactionPayload,
        query_id: str | None = Query(default=None, alias="id"),
    ) -> TransactionOut:
        """Replace name and value of the transaction with the given id."""
        transaction_id = query_id if query_id is not None else payload.id
        row = table.update(transaction_id, payload.name, payload.value)
        logger.info("transaction_updated", transaction_id=row.id)
        return TransactionOut(**row.to_dict())

    @router.delete("/transactions", response_model=DeleteResponse)
    def delete_transaction(
        query_id: str | None = Query(default=None, alias="id"),
        payload: TransactionPayload | None = Body(default=None),
    ) -> DeleteResponse:
        """Delete the transaction with the given id."""
        transaction_id = query_id
        if transaction_id is None and payload is not None:
            transaction_id = payload.id
        removed = table.delete(transaction_id)
        logger.info("transaction_deleted", transaction_id=removed)
        return DeleteResponse(
            id=removed,
            message=f"Transaction {removed} deleted successfully",
        )

    return router


__all__ = ["build_router"]
