"""Tests for the local-store adapter: transactions, repair and ordering."""

import asyncio

import pytest

from gatherkids.database.errors import NotFoundError
from gatherkids.database.local_adapter import LocalDatabaseAdapter
from gatherkids.database.mappings import LEGACY_FIELD_EVENT


def _put_raw(adapter, collection, record_id, doc):
    """Write a backend document directly, bypassing the mapper."""
    with adapter.store.session() as s, s.begin():
        adapter.store.insert(s, collection, record_id, doc)


class TestTransactions:
    @pytest.mark.asyncio
    async def test_commit_on_success(self, local_adapter):
        async def work():
            h = await local_adapter.create_household({"name": "Alpha"})
            await local_adapter.create_child({"household_id": h.household_id, "first_name": "Ana"})
            return h.household_id

        household_id = await local_adapter.transaction(work)
        assert await local_adapter.get_household(household_id) is not None
        assert len(await local_adapter.list_children({"household_id": household_id})) == 1

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, local_adapter):
        class Boom(Exception):
            pass

        async def work():
            await local_adapter.create_household({"household_id": "h-tx", "name": "Doomed"})
            assert await local_adapter.get_household("h-tx") is not None
            raise Boom("stop")

        with pytest.raises(Boom):
            await local_adapter.transaction(work)
        assert await local_adapter.get_household("h-tx") is None

    @pytest.mark.asyncio
    async def test_not_found_inside_transaction_rolls_back(self, local_adapter):
        async def work():
            await local_adapter.create_household({"household_id": "h1"})
            await local_adapter.update_child("missing", {"grade": "1"})

        with pytest.raises(NotFoundError):
            await local_adapter.transaction(work)
        assert await local_adapter.get_household("h1") is None

    @pytest.mark.asyncio
    async def test_nested_transaction_joins_outer(self, local_adapter):
        async def inner():
            await local_adapter.create_household({"household_id": "inner"})
            return "inner-done"

        async def outer():
            result = await local_adapter.transaction(inner)
            raise RuntimeError(result)

        with pytest.raises(RuntimeError, match="inner-done"):
            await local_adapter.transaction(outer)
        assert await local_adapter.get_household("inner") is None

    @pytest.mark.asyncio
    async def test_concurrent_writes_are_serialized(self, local_adapter):
        await asyncio.gather(*(
            local_adapter.create_child({"child_id": f"c{i}", "first_name": f"Kid {i}"})
            for i in range(10)
        ))
        assert len(await local_adapter.list_children()) == 10

    @pytest.mark.asyncio
    async def test_other_tasks_wait_for_open_transaction(self, local_adapter):
        release = asyncio.Event()

        async def work():
            await local_adapter.create_household({"household_id": "h-tx"})
            await release.wait()

        tx = asyncio.create_task(local_adapter.transaction(work))
        await asyncio.sleep(0)
        writer = asyncio.create_task(local_adapter.create_child({"child_id": "c-late"}))
        for _ in range(5):
            await asyncio.sleep(0)
        assert not writer.done()

        release.set()
        await asyncio.gather(tx, writer)
        assert await local_adapter.get_household("h-tx") is not None
        assert await local_adapter.get_child("c-late") is not None


class TestRepair:
    @pytest.mark.asyncio
    async def test_updated_at_never_goes_backwards(self, local_adapter):
        future = "2099-01-01T00:00:00.000Z"
        _put_raw(local_adapter, "children", "c1", {
            "child_id": "c1", "first_name": "Ana",
            "created_at": "2024-01-01T00:00:00.000Z", "updated_at": future,
        })
        updated = await local_adapter.update_child("c1", {"grade": "1"})
        assert updated.updated_at == future
        assert updated.grade == "1"

    @pytest.mark.asyncio
    async def test_updated_at_advances(self, local_adapter):
        c = await local_adapter.create_child({"first_name": "Ana"})
        updated = await local_adapter.update_child(c.child_id, {"grade": "1"})
        assert updated.updated_at > c.updated_at

    @pytest.mark.asyncio
    async def test_legacy_document_is_normalized(self, local_adapter, sink):
        _put_raw(local_adapter, "ministries", "m1", {
            "ministry_id": "m1", "label": "Choir", "code": "choir",
            "created_at": "2024-01-01T00:00:00.000Z", "updated_at": "2024-01-01T00:00:00.000Z",
        })
        m = await local_adapter.get_ministry("m1")
        assert m.name == "Choir"
        assert len(sink.named(LEGACY_FIELD_EVENT)) == 1

    @pytest.mark.asyncio
    async def test_missing_timestamps_are_repaired(self, local_adapter, clock):
        _put_raw(local_adapter, "households", "h1", {"household_id": "h1", "city": None})
        h = await local_adapter.get_household("h1")
        assert h.city == ""
        assert h.updated_at and h.created_at == h.updated_at

    @pytest.mark.asyncio
    async def test_update_rewrites_legacy_document_canonically(self, local_adapter, sink):
        _put_raw(local_adapter, "ministries", "m1", {
            "ministry_id": "m1", "label": "Choir",
            "created_at": "2024-01-01T00:00:00.000Z", "updated_at": "2024-01-01T00:00:00.000Z",
        })
        await local_adapter.update_ministry("m1", {"code": "choir"})
        sink.clear()
        m = await local_adapter.get_ministry("m1")
        assert m.name == "Choir"
        assert sink.events == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_subscribe_returns_noop(self, local_adapter):
        calls = []
        unsubscribe = await local_adapter.subscribe_to_table("children", calls.append)
        await local_adapter.create_child({"first_name": "Ana"})
        unsubscribe()
        unsubscribe()
        assert calls == []

    @pytest.mark.asyncio
    async def test_aclose_disposes_and_reopens_lazily(self, sink, clock):
        adapter = LocalDatabaseAdapter("sqlite://", sink=sink, clock=clock)
        assert not adapter.store.is_open
        await adapter.create_household({"name": "A"})
        assert adapter.store.is_open
        await adapter.aclose()
        assert not adapter.store.is_open
