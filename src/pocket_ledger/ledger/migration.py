"""One-shot migration of legacy ``amount`` records to the ``value`` field.

Early versions of the ledger stored amounts under ``amount``. The migration
is a pure function over the raw stored dictionaries; it returns the migrated
list together with a flag telling the caller whether anything changed, so the
write-back only happens when it is needed. Running it on already migrated data
is a no-op.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

LEGACY_FIELD = "amount"
CURRENT_FIELD = "value"


def migrate_record(record: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    """Migrate a single stored record.

    A record is rewritten only when it has ``amount`` and lacks ``value``.
    Records carrying both keep their ``value`` and drop the stale ``amount``.
    """
    if LEGACY_FIELD not in record:
        return record, False

    migrated = {k: v for k, v in record.items() if k != LEGACY_FIELD}
    if CURRENT_FIELD not in record:
        migrated[CURRENT_FIELD] = record[LEGACY_FIELD]
    return migrated, True


def migrate_transactions(
    records: Iterable[dict[str, Any]],
) -> tuple[list[dict[str, Any]], bool]:
    """Apply :func:`migrate_record` over a stored list in one pass.

    Returns:
        Tuple of (migrated records, did_migrate)
    """
    did_migrate = False
    migrated: list[dict[str, Any]] = []
    for record in records:
        if not isinstance(record, dict):
            migrated.append(record)
            continue
        new_record, changed = migrate_record(record)
        did_migrate = did_migrate or changed
        migrated.append(new_record)
    return migrated, did_migrate


__all__ = ["migrate_record", "migrate_transactions"]
