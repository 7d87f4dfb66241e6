"""Test configuration for pytest."""

from __future__ import annotations

import pytest

from pocket_ledger.config import DEFAULT_STORAGE_KEY
from pocket_ledger.ledger.errors import PersistenceUnavailable
from pocket_ledger.persistence import KeyValueStore, LocalBackend, PersistenceBackend


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "conformance: API contract conformance tests")


class FakeClock:
    """Manually advanced wall clock in seconds."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store():
    """Private in-memory key-value store."""
    store = KeyValueStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def local_backend(kv_store) -> LocalBackend:
    return LocalBackend(kv_store, DEFAULT_STORAGE_KEY)


class MemoryBackend(PersistenceBackend):
    """Backend over a plain list, with switchable failures."""

    name = "memory"

    def __init__(self, raw=None, *, fail_reads=False, fail_writes=False):
        self.raw = list(raw) if raw is not None else []
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.writes: list[str] = []

    def _check_write(self, action: str) -> None:
        if self.fail_writes:
            raise PersistenceUnavailable("Storage is full", f"{action} rejected")
        self.writes.append(action)

    async def load_raw(self):
        if self.fail_reads:
            raise PersistenceUnavailable("Storage unavailable")
        return [dict(r) if isinstance(r, dict) else r for r in self.raw]

    async def save_all(self, transactions):
        self._check_write("save_all")
        self.raw = [t.to_dict() for t in transactions]

    async def append(self, transaction):
        self._check_write("append")
        self.raw.append(transaction.to_dict())
        return await self.load_all()

    async def update_one(self, transaction_id, partial):
        self._check_write("update_one")
        for record in self.raw:
            if record["id"] == transaction_id:
                record.update(partial)
        return await self.load_all()

    async def remove_one(self, transaction_id):
        self._check_write("remove_one")
        self.raw = [r for r in self.raw if r["id"] != transaction_id]
        return await self.load_all()


@pytest.fixture
def make_backend():
    """Factory for MemoryBackend instances."""
    return MemoryBackend


@pytest.fixture
def seed_two():
    """Salário and Mercado, balance 4650."""
    return [
        {"id": 1, "name": "Salário", "value": 5000},
        {"id": 2, "name": "Mercado", "value": -350},
    ]
