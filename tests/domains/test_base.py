"""Tests for flo.domains.base: write-through ResourceCollection and DomainFacade."""

from datetime import date, datetime

import pytest

from flo.core.constants import TTL_LONG, TTL_SHORT
from flo.core.errors import ConflictError, NotFoundError, TransportError
from flo.domains.base import DomainFacade, ResourceCollection, as_date, contains, numeric, parse_date

from conftest import make_ops

TTL = 300


@pytest.fixture
def ops():
    return make_ops([{"id": "a", "name": "Alpha"}, {"id": "b", "name": "Beta"}])


@pytest.fixture
def collection(ops, clock):
    return ResourceCollection("things", ops, TTL, clock)


# ── Helpers ─────────────────────────────────────────────────────────────


class TestHelpers:
    def test_parse_date_variants(self):
        assert parse_date("2026-03-01") == date(2026, 3, 1)
        assert parse_date("2026-03-01T23:10:00Z") == date(2026, 3, 1)
        assert parse_date("2026-03-01T10:00:00+02:00") == date(2026, 3, 1)
        assert parse_date(None) is None
        assert parse_date("not a date") is None

    def test_as_date_is_strict(self):
        assert as_date("2026-03-01") == date(2026, 3, 1)
        assert as_date(date(2026, 3, 1)) == date(2026, 3, 1)
        assert as_date(datetime(2026, 3, 1, 9, 30)) == date(2026, 3, 1)
        with pytest.raises(ValueError, match="Invalid date"):
            as_date("03/01/2026")
        with pytest.raises(ValueError):
            as_date(None)

    def test_numeric_tolerates_missing_and_strings(self):
        assert numeric({"amount": 10}) == 10.0
        assert numeric({"amount": "12.5"}) == 12.5
        assert numeric({"amount": None}) == 0.0
        assert numeric({}) == 0.0
        assert numeric({"amount": "n/a"}) == 0.0

    def test_contains_is_case_insensitive(self):
        assert contains("Warehouse B", "house b")
        assert not contains(None, "x")


# ── Reads ───────────────────────────────────────────────────────────────


class TestCollectionReads:
    async def test_all_caches_snapshot(self, collection, ops):
        await collection.all()
        await collection.all()
        assert ops.list.await_count == 1

    async def test_force_refresh(self, collection, ops):
        await collection.all()
        await collection.all(force_refresh=True)
        assert ops.list.await_count == 2

    async def test_items_never_fetches(self, collection, ops):
        assert collection.items() == []
        ops.list.assert_not_awaited()

    async def test_find(self, collection):
        await collection.all()
        assert collection.find("b")["name"] == "Beta"
        assert collection.find("zzz") is None

    async def test_get_prefers_valid_snapshot(self, collection, ops):
        await collection.all()
        assert (await collection.get("a"))["name"] == "Alpha"
        ops.get_by_id.assert_not_awaited()

    async def test_get_falls_back_to_network(self, collection, ops):
        ops.get_by_id.return_value = {"id": "c", "name": "Gamma"}
        assert (await collection.get("c"))["name"] == "Gamma"
        ops.get_by_id.assert_awaited_once_with("c")

    async def test_get_ignores_expired_snapshot(self, collection, ops, clock):
        await collection.all()
        clock.advance(TTL + 1)
        ops.get_by_id.return_value = {"id": "a", "name": "Alpha v2"}
        assert (await collection.get("a"))["name"] == "Alpha v2"


# ── Writes ──────────────────────────────────────────────────────────────


class TestCollectionWrites:
    async def test_create_invalidates(self, collection, ops):
        await collection.all()
        ops.create.return_value = {"id": "c", "name": "Gamma"}
        ops.list.return_value = [{"id": "a"}, {"id": "b"}, {"id": "c"}]

        created = await collection.create({"name": "Gamma"})

        assert created["id"] == "c"
        assert collection.store.peek() is None
        assert len(await collection.all()) == 3
        assert ops.list.await_count == 2

    async def test_update_patches_in_place(self, collection, ops):
        await collection.all()
        ops.update.return_value = {"id": "a", "name": "Alpha 2"}

        await collection.update("a", {"name": "Alpha 2"})

        assert collection.find("a")["name"] == "Alpha 2"
        assert await collection.all() == [{"id": "a", "name": "Alpha 2"}, {"id": "b", "name": "Beta"}]
        assert ops.list.await_count == 1

    async def test_update_merges_partial_response(self, collection, ops):
        await collection.all()
        ops.update.return_value = {"id": "a", "status": "archived"}
        await collection.update("a", {"status": "archived"})
        assert collection.find("a") == {"id": "a", "name": "Alpha", "status": "archived"}

    async def test_update_of_unknown_item_invalidates(self, collection, ops):
        await collection.all()
        ops.update.return_value = {"id": "zzz", "name": "Ghost"}
        await collection.update("zzz", {"name": "Ghost"})
        assert collection.store.peek() is None

    async def test_update_with_unknown_shape_invalidates(self, collection, ops):
        await collection.all()
        ops.update.return_value = None
        await collection.update("a", {"name": "x"})
        assert collection.store.peek() is None

    async def test_delete_removes_item(self, collection, ops):
        await collection.all()
        await collection.delete("a")
        assert [i["id"] for i in collection.items()] == ["b"]
        ops.delete.assert_awaited_once_with("a")

    async def test_failed_write_leaves_cache_untouched(self, collection, ops):
        await collection.all()
        ops.update.side_effect = ConflictError("stale", 409)
        ops.delete.side_effect = NotFoundError("gone", 404)
        ops.create.side_effect = TransportError("offline")

        with pytest.raises(ConflictError):
            await collection.update("a", {"name": "x"})
        with pytest.raises(NotFoundError):
            await collection.delete("a")
        with pytest.raises(TransportError):
            await collection.create({"name": "x"})

        assert collection.store.is_valid()
        assert collection.find("a")["name"] == "Alpha"

    async def test_write_without_snapshot_does_not_fetch(self, collection, ops):
        ops.update.return_value = {"id": "a", "name": "x"}
        await collection.update("a", {"name": "x"})
        ops.list.assert_not_awaited()
        assert collection.store.peek() is None

    async def test_apply_patches_action_result(self, collection):
        await collection.all()

        async def archive():
            return {"id": "b", "status": "archived"}

        result = await collection.apply("b", archive)
        assert result["status"] == "archived"
        assert collection.find("b")["status"] == "archived"


# ── Facade ──────────────────────────────────────────────────────────────


class SampleFacade(DomainFacade):
    def __init__(self, client, ops=None):
        super().__init__("sample", client, ops)
        self.things = self.add_collection("things", "/sample/things", TTL_SHORT)
        self.kinds = self.add_collection("kinds", "/sample/kinds", TTL_LONG)


class TestDomainFacade:
    def test_ttl_tiers_from_client(self, client):
        facade = SampleFacade(client)
        assert facade.things.store.ttl == 300
        assert facade.kinds.store.ttl == 900

    def test_default_ops_come_from_rest_resource(self, client):
        facade = SampleFacade(client)
        assert facade.resources["things"].path == "/sample/things"
        assert facade.things.ops.list == facade.resources["things"].list

    def test_duplicate_kind_rejected(self, client):
        facade = SampleFacade(client)
        with pytest.raises(ValueError):
            facade.add_collection("things", "/x", TTL_SHORT)

    def test_unknown_kind(self, client):
        with pytest.raises(KeyError, match="Unknown resource kind"):
            SampleFacade(client).collection("widgets")

    async def test_refresh_data_and_clear_cache(self, client):
        ops = {"things": make_ops([{"id": 1}]), "kinds": make_ops([{"id": 2}])}
        facade = SampleFacade(client, ops=ops)

        await facade.refresh_data()
        assert facade.things.items() == [{"id": 1}]
        assert facade.kinds.items() == [{"id": 2}]

        facade.invalidate_cache("things")
        assert facade.things.store.peek() is None
        assert facade.kinds.store.peek() is not None

        facade.clear_cache()
        assert facade.kinds.store.peek() is None

    async def test_cache_stats(self, client):
        facade = SampleFacade(client, ops={"things": make_ops([{"id": 1}]), "kinds": make_ops()})
        await facade.things.all()
        stats = facade.cache_stats()
        assert stats["things"]["cached"] is True
        assert stats["kinds"]["cached"] is False
