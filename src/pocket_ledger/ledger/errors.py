"""Exceptions raised by the ledger core and its persistence backends."""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base exception for ledger errors.

    Carries a short user-facing ``message`` and optional ``details`` so the
    presentation layer (or the REST endpoint) can display it without
    inspecting the exception type.
    """

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Structured, displayable form of the error."""
        payload: dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError):
    """Missing or invalid name, value, id or filter kind."""
    pass


class NotFoundError(LedgerError):
    """No record with the requested id."""

    def __init__(self, transaction_id: int, details: str | None = None):
        super().__init__(f"Transaction {transaction_id} not found", details)
        self.transaction_id = transaction_id


class PersistenceUnavailable(LedgerError):
    """The active backend could not read or write."""

    def __init__(
        self,
        message: str,
        details: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class IdConflictError(PersistenceUnavailable):
    """The backend stored records under ids other than the ones sent.

    The write itself completed; ``assigned_ids`` maps each proposed id to
    the id the backend actually used.
    """

    def __init__(self, assigned_ids: dict[int, int]):
        pairs = ", ".join(f"{old} -> {new}" for old, new in assigned_ids.items())
        super().__init__("Backend assigned different transaction ids", pairs)
        self.assigned_ids = dict(assigned_ids)


__all__ = [
    "IdConflictError",
    "LedgerError",
    "NotFoundError",
    "PersistenceUnavailable",
    "ValidationError",
]
