"""In-memory transaction array served by the REST endpoint.

The table lives on the application instance, so every app (and every test)
gets its own array. Ids follow the ledger rule: one more than the highest id
ever issued, so a deleted id is not handed out again. A client may propose
its own id on create; it is kept when it is an unused integer.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from ..ledger.errors import NotFoundError, ValidationError
from ..ledger.models import (
    Transaction,
    default_transactions,
    normalize_id,
    sanitize_value,
    validate_name,
)

logger = logging.getLogger(__name__)


class TransactionTable:
    """Mutable list of transactions with ledger id assignment."""

    def __init__(self, seed_defaults: bool = True):
        self._rows: list[Transaction] = default_transactions() if seed_defaults else []
        self._high_water = max((r.id for r in self._rows), default=0)

    def __len__(self) -> int:
        return len(self._rows)

    def list(self) -> list[Transaction]:
        return [replace(r) for r in self._rows]

    def _index_of(self, transaction_id: int) -> int:
        for index, row in enumerate(self._rows):
            if row.id == transaction_id:
                return index
        raise NotFoundError(transaction_id)

    def _next_id(self) -> int:
        highest = max((r.id for r in self._rows), default=0)
        return max(highest, self._high_water) + 1

    def create(self, name: Any, value: Any, proposed_id: Any = None) -> Transaction:
        """Append a row.

        Raises:
            ValidationError: If ``name`` or ``value`` is missing
        """
        if name is None or value is None:
            raise ValidationError("Missing required fields", "Both name and value are required")
        row_name = validate_name(name)
        row_value = sanitize_value(value)

        row_id = self._next_id()
        if proposed_id is not None:
            candidate = normalize_id(proposed_id)
            if candidate > 0 and all(r.id != candidate for r in self._rows):
                row_id = candidate
            else:
                logger.warning(f"Proposed id {proposed_id!r} rejected, assigned {row_id}")

        row = Transaction(id=row_id, name=row_name, value=row_value)
        self._rows.append(row)
        self._high_water = max(self._high_water, row_id)
        return replace(row)

    def update(self, transaction_id: Any, name: Any, value: Any) -> Transaction:
        """Replace the name and value of an existing row.

        Raises:
            ValidationError: If the id, name or value is missing
            NotFoundError: If no row has the id
        """
        if transaction_id is None:
            raise ValidationError("Missing transaction id", "Pass ?id= or an id in the body")
        if name is None or value is None:
            raise ValidationError("Missing required fields", "Both name and value are required")
        row_id = normalize_id(transaction_id)
        row_name = validate_name(name)
        row_value = sanitize_value(value)

        index = self._index_of(row_id)
        self._rows[index] = Transaction(id=row_id, name=row_name, value=row_value)
        return replace(self._rows[index])

    def delete(self, transaction_id: Any) -> int:
        """Remove a row and return its id.

        Raises:
            ValidationError: If the id is missing
            NotFoundError: If no row has the id
        """
        if transaction_id is None:
            raise ValidationError("Missing transaction id", "Pass ?id= or an id in the body")
        row_id = normalize_id(transaction_id)
        del self._rows[self._index_of(row_id)]
        return row_id


__all__ = ["TransactionTable"]
