"""Transaction record and the coercion helpers used at the store boundary."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from .errors import ValidationError
from .migration import migrate_transactions

logger = logging.getLogger(__name__)


class TransactionKind(str, Enum):
    """Classification of a record by the sign of its value."""

    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def parse(cls, value: str | TransactionKind) -> TransactionKind:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise ValidationError(
                f"Unsupported transaction type: {value}",
                "Use 'income' or 'expense'",
            ) from error


@dataclass(slots=True)
class Transaction:
    """A single ledger entry."""

    id: int
    name: str
    value: float

    @property
    def kind(self) -> TransactionKind:
        return TransactionKind.INCOME if self.value >= 0 else TransactionKind.EXPENSE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transaction:
        """Build a record from its stored or wire form.

        Expects the current shape (``value``); legacy ``amount`` records must
        go through :func:`~pocket_ledger.ledger.migration.migrate_transactions`
        first.
        """
        if not isinstance(data, dict):
            raise ValidationError("Invalid transaction", f"Expected an object, got {data!r}")
        return cls(
            id=normalize_id(data.get("id")),
            name=validate_name(data.get("name")),
            value=sanitize_value(data.get("value")),
        )


@dataclass(slots=True)
class LedgerStatistics:
    """Aggregates derived from the current record set."""

    count: int
    total_income: float
    total_expenses: float
    balance: float
    average: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_TRANSACTIONS: tuple[tuple[int, str, float], ...] = (
    (1, "Salário", 5000.0),
    (2, "Mercado", -350.0),
    (3, "Freelance", 1200.0),
)


def default_transactions() -> list[Transaction]:
    """Fresh copies of the seed records used when nothing is stored yet."""
    return [Transaction(id=i, name=n, value=v) for i, n, v in DEFAULT_TRANSACTIONS]


def normalize_id(raw: Any) -> int:
    """Coerce an id to ``int`` or raise :class:`ValidationError`.

    Accepts ints, integral floats and digit strings.
    """
    if isinstance(raw, bool):
        raise ValidationError("Invalid transaction id", f"{raw!r} is not an integer")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            pass
    raise ValidationError("Invalid transaction id", f"{raw!r} is not an integer")


def validate_name(raw: Any) -> str:
    """Trim a name and reject it when empty."""
    if raw is None:
        raise ValidationError("Name is required", "Please fill in all fields")
    name = str(raw).strip()
    if not name:
        raise ValidationError("Name is required", "Please fill in all fields")
    return name


def sanitize_value(raw: Any) -> float:
    """Parse an amount, coercing anything non-numeric to ``0.0``.

    Never raises: invalid input is logged and stored as zero.
    """
    parsed: float | None = None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        parsed = float(raw)
    elif isinstance(raw, str):
        try:
            parsed = float(raw.strip())
        except ValueError:
            parsed = None

    if parsed is None or not math.isfinite(parsed):
        logger.warning(f"Non-numeric transaction value {raw!r} coerced to 0")
        return 0.0
    return parsed


def records_from_raw(raw: list[Any]) -> list[Transaction]:
    """Type stored records, skipping entries that cannot be read.

    Duplicate ids keep their first occurrence.
    """
    records: list[Transaction] = []
    seen: set[int] = set()
    for item in raw:
        try:
            record = Transaction.from_dict(item)
        except ValidationError as e:
            logger.warning(f"Skipping unreadable stored transaction {item!r}: {e.message}")
            continue
        if record.id in seen:
            logger.warning(f"Skipping stored transaction with duplicate id {record.id}")
            continue
        seen.add(record.id)
        records.append(record)
    return records


def transactions_to_json(transactions: list[Transaction]) -> str:
    """Serialize records as an indented JSON array for backup."""
    return json.dumps([t.to_dict() for t in transactions], ensure_ascii=False, indent=2)


def transactions_from_json(payload: str) -> list[Transaction]:
    """Parse a JSON backup, migrating legacy entries and rejecting duplicate ids."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValidationError("Invalid backup file", str(e)) from e
    if not isinstance(data, list):
        raise ValidationError("Invalid backup file", "Expected a JSON array of transactions")

    migrated, _ = migrate_transactions(data)
    records = [Transaction.from_dict(item) for item in migrated]
    seen: set[int] = set()
    for record in records:
        if record.id in seen:
            raise ValidationError("Invalid backup file", f"Duplicate transaction id {record.id}")
        seen.add(record.id)
    return records


__all__ = [
    "DEFAULT_TRANSACTIONS",
    "LedgerStatistics",
    "Transaction",
    "TransactionKind",
    "default_transactions",
    "normalize_id",
    "records_from_raw",
    "sanitize_value",
    "transactions_from_json",
    "transactions_to_json",
    "validate_name",
]
