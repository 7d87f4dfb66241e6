"""Remote backend against the in-process ledger endpoint.

Requests go through httpx.ASGITransport, so the real FastAPI app handles them
without opening a socket.
"""

from __future__ import annotations

import httpx
import pytest

from pocket_ledger.config import BackendKind, LedgerConfig
from pocket_ledger.coordinator import TransactionCoordinator
from pocket_ledger.ledger.errors import IdConflictError, PersistenceUnavailable
from pocket_ledger.ledger.models import Transaction
from pocket_ledger.persistence import RemoteBackend, select_backend
from pocket_ledger.service.app import create_ledger_app
from pocket_ledger.service.table import TransactionTable

pytestmark = pytest.mark.integration

BASE_URL = "http://ledger.test"


class SwitchableTransport(httpx.AsyncBaseTransport):
    """Forwards to ``inner`` and refuses connections while ``down`` is set."""

    def __init__(self, inner: httpx.AsyncBaseTransport):
        self.inner = inner
        self.down = False

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        return await self.inner.handle_async_request(request)


@pytest.fixture
def table() -> TransactionTable:
    return TransactionTable(seed_defaults=True)


@pytest.fixture
def transport(table) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=create_ledger_app(table=table))


@pytest.fixture
def backend(transport) -> RemoteBackend:
    return RemoteBackend(BASE_URL, transport=transport)


class TestRemoteBackend:
    @pytest.mark.asyncio
    async def test_load_all(self, backend):
        records = await backend.load_all()
        assert [r.name for r in records] == ["Salário", "Mercado", "Freelance"]
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_append_keeps_client_id(self, backend, table):
        records = await backend.append(Transaction(10, "Aluguel", -900.0))
        assert records[-1] == Transaction(10, "Aluguel", -900.0)
        assert len(table) == 4
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_append_under_taken_id_reports_assigned_id(self, backend, table):
        with pytest.raises(IdConflictError) as excinfo:
            await backend.append(Transaction(1, "Aluguel", -900.0))
        assert excinfo.value.assigned_ids == {1: 4}
        assert table.list()[-1] == Transaction(4, "Aluguel", -900.0)
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_partial_update_fills_missing_fields(self, backend):
        records = await backend.update_one(2, {"value": -400.0})
        assert records[1] == Transaction(2, "Mercado", -400.0)
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_remove_one(self, backend):
        records = await backend.remove_one(1)
        assert [r.id for r in records] == [2, 3]
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_remove_unknown_raises_with_status(self, backend):
        with pytest.raises(PersistenceUnavailable) as excinfo:
            await backend.remove_one(999)
        assert excinfo.value.status_code == 404
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_save_all_reconciles(self, backend, table):
        wanted = [
            Transaction(2, "Mercado", -500.0),
            Transaction(3, "Freelance", 1200.0),
            Transaction(8, "Presente", 50.0),
        ]
        await backend.save_all(wanted)
        assert table.list() == wanted
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with RemoteBackend(BASE_URL, transport=httpx.MockTransport(refuse)) as backend:
            with pytest.raises(PersistenceUnavailable) as excinfo:
                await backend.load_all()
        assert excinfo.value.message == "Remote ledger unreachable"

    @pytest.mark.asyncio
    async def test_non_list_response_is_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        async with RemoteBackend(BASE_URL, transport=httpx.MockTransport(handler)) as backend:
            with pytest.raises(PersistenceUnavailable):
                await backend.load_raw()

    @pytest.mark.asyncio
    async def test_legacy_remote_records_migrated(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": 1, "name": "Old", "amount": 9}])

        async with RemoteBackend(BASE_URL, transport=httpx.MockTransport(handler)) as backend:
            assert await backend.load_all() == [Transaction(1, "Old", 9.0)]

    @pytest.mark.asyncio
    async def test_legacy_remote_records_left_alone_when_migration_disabled(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": 1, "name": "Old", "amount": 9}])

        async with RemoteBackend(
            BASE_URL, transport=httpx.MockTransport(handler), migration_enabled=False
        ) as backend:
            assert await backend.load_raw() == [{"id": 1, "name": "Old", "amount": 9}]
            assert await backend.load_all() == [Transaction(1, "Old", 0.0)]


class TestCoordinatorOverRemote:
    @pytest.mark.asyncio
    async def test_example_scenario_end_to_end(self, transport, table):
        config = LedgerConfig(backend=BackendKind.REMOTE, remote_base_url=BASE_URL)
        coordinator = TransactionCoordinator(config, select_backend(config, transport=transport))
        await coordinator.start()
        await coordinator.delete(3)

        assert coordinator.balance() == 4650
        created = await coordinator.create({"name": "Freelance", "value": 1200})
        assert coordinator.balance() == 5850
        await coordinator.delete(2)
        assert coordinator.balance() == 6200

        assert [t.id for t in table.list()] == [1, created.id]
        assert coordinator.last_persistence_error is None
        await coordinator.aclose()

    @pytest.mark.asyncio
    async def test_remote_outage_is_a_warning(self, table):
        def outage(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json=[r.to_dict() for r in table.list()])
            return httpx.Response(503, json={"error": "down"})

        backend = RemoteBackend(BASE_URL, transport=httpx.MockTransport(outage))
        coordinator = TransactionCoordinator(LedgerConfig(), backend)
        await coordinator.start()

        created = await coordinator.create({"name": "Offline", "value": 10})

        assert created in await coordinator.get_all()
        assert coordinator.last_persistence_error.status_code == 503
        await coordinator.aclose()

    @pytest.mark.asyncio
    async def test_unreachable_remote_starts_with_defaults(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        backend = RemoteBackend(BASE_URL, transport=httpx.MockTransport(refuse))
        coordinator = TransactionCoordinator(LedgerConfig(), backend)
        records = await coordinator.start()
        assert len(records) == 3
        await coordinator.aclose()

    @pytest.mark.asyncio
    async def test_remote_id_adopted_when_proposed_id_is_taken(self, transport, table):
        table.create("Other client", 80.0)
        switch = SwitchableTransport(transport)
        switch.down = True
        coordinator = TransactionCoordinator(
            LedgerConfig(), RemoteBackend(BASE_URL, transport=switch)
        )
        await coordinator.start()
        switch.down = False

        created = await coordinator.create({"name": "Mine", "value": 25})

        assert created.id == 5
        assert await coordinator.get(5) == created
        assert table.list()[-1] == Transaction(5, "Mine", 25.0)

        await coordinator.delete(created.id)

        assert [t.name for t in table.list()] == [
            "Salário",
            "Mercado",
            "Freelance",
            "Other client",
        ]
        assert coordinator.last_persistence_error is None
        await coordinator.aclose()


class TestBackendSelection:
    def test_failed_probe_falls_back_to_remote(self, tmp_path, transport):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        config = LedgerConfig(
            storage_path=str(blocker / "ledger.db"),
            remote_base_url=BASE_URL,
        )
        assert isinstance(select_backend(config, transport=transport), RemoteBackend)

    def test_failed_probe_without_remote_keeps_local(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        config = LedgerConfig(storage_path=str(blocker / "ledger.db"))
        assert select_backend(config).name == "local"

    def test_remote_without_url_is_a_value_error(self):
        config = LedgerConfig(backend=BackendKind.REMOTE, remote_base_url=BASE_URL)
        config.remote_base_url = None
        with pytest.raises(ValueError, match="remote_base_url"):
            select_backend(config)

    def test_migration_flag_reaches_backend(self, transport):
        config = LedgerConfig(
            backend=BackendKind.REMOTE, remote_base_url=BASE_URL, migration_enabled=False
        )
        assert select_backend(config, transport=transport).migration_enabled is False
