"""InMemoryRecordStore and MemoryQuery."""

from __future__ import annotations

import pytest

from crud_adapter import Comparison, InMemoryRecordStore, IRecordStore, MemoryQuery


@pytest.fixture
async def filled(store):
    await store.insert_many(
        "item",
        "id",
        [
            {"name": "b", "rank": 2},
            {"name": "a", "rank": None},
            {"name": "c", "rank": 1},
            {"name": "d"},
        ],
    )
    return store


class TestMemoryQuery:
    def test_builder_is_immutable(self):
        query = MemoryQuery("item")

        filtered = query.filter("name", Comparison.EQ, "a")

        assert query.filters == ()
        assert filtered.filters == (("name", Comparison.EQ, "a"),)

    def test_missing_field_never_matches(self):
        query = MemoryQuery("item").filter("rank", Comparison.NE, 1)

        assert not query.matches({"name": "x"})
        assert query.matches({"rank": 2})

    def test_ordered_comparison_skips_none_and_mismatched_types(self):
        query = MemoryQuery("item").filter("rank", Comparison.GT, 0)

        assert not query.matches({"rank": None})
        assert not query.matches({"rank": "high"})
        assert query.matches({"rank": 3})

    def test_membership(self):
        assert MemoryQuery("item").filter("x", Comparison.IN, [1, 2]).matches({"x": 2})
        assert MemoryQuery("item").filter("x", Comparison.NOT_IN, [1, 2]).matches({"x": 3})

    def test_none_sorts_last_ascending(self):
        records = [{"rank": None}, {"rank": 2}, {"rank": 1}]

        result = MemoryQuery("item").order("rank").apply(records)

        assert [r["rank"] for r in result] == [1, 2, None]

    def test_mixed_types_sort_by_type_then_value(self):
        records = [{"age": "unknown"}, {"age": 30}, {"age": None}, {"age": 2.5}, {"age": "n/a"}]

        result = MemoryQuery("item").order("age").apply(records)

        assert [r["age"] for r in result] == [2.5, 30, "n/a", "unknown", None]


class TestInMemoryRecordStore:
    def test_satisfies_protocol(self, store):
        assert isinstance(store, IRecordStore)

    @pytest.mark.asyncio
    async def test_keys_are_per_kind(self, store):
        _, users = await store.insert_many("user", "id", [{"n": 1}, {"n": 2}])
        _, posts = await store.insert_many("post", "id", [{"n": 3}])

        assert [u["id"] for u in users] == [1, 2]
        assert [p["id"] for p in posts] == [1]

    @pytest.mark.asyncio
    async def test_custom_id_attribute(self, store):
        meta, records = await store.insert_many("user", "uid", [{"n": 1}])

        assert records == [{"n": 1, "uid": 1}]
        assert meta == {"inserted_ids": [1]}
        assert await store.get("user", "uid", 1) == {"n": 1, "uid": 1}

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, filled):
        record = await filled.get("item", "id", 1)
        record["name"] = "mutated"

        assert (await filled.get("item", "id", 1))["name"] == "b"

    @pytest.mark.asyncio
    async def test_run_query(self, filled):
        query = filled.create_query("item", "id").filter("rank", Comparison.GE, 1).order("rank")

        meta, records = await filled.run_query(query)

        assert meta == {"count": 2}
        assert [r["name"] for r in records] == ["c", "b"]

    @pytest.mark.asyncio
    async def test_run_query_rejects_foreign_builder(self, store):
        with pytest.raises(TypeError, match="Expected MemoryQuery"):
            await store.run_query(object())

    @pytest.mark.asyncio
    async def test_offset_and_limit(self, filled):
        query = filled.create_query("item", "id").order("name").offset(1).limit(2)

        _, records = await filled.run_query(query)

        assert [r["name"] for r in records] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_save_many_replaces(self, filled):
        meta = await filled.save_many("item", "id", [{"id": 1, "name": "B"}])

        assert meta == {"matched": 1}
        assert await filled.get("item", "id", 1) == {"id": 1, "name": "B"}

    @pytest.mark.asyncio
    async def test_delete(self, filled):
        assert await filled.delete("item", 1) == {"deleted": 1}
        assert await filled.delete("item", 1) == {"deleted": 0}
        assert await filled.delete_many("item", [2, 3, 99]) == {"deleted": 2}
        assert len(filled) == 1

    @pytest.mark.asyncio
    async def test_clear(self, filled):
        filled.clear()

        assert len(filled) == 0
        _, records = await filled.insert_many("item", "id", [{}])
        assert records[0]["id"] == 1

    @pytest.mark.asyncio
    async def test_failed_save_publishes_nothing(self, filled, monkeypatch):
        def broken_put(state, kind, record_id, record):
            state.tables[kind][record_id] = record
            if record_id == 2:
                raise RuntimeError("boom")

        monkeypatch.setattr(filled, "_put", broken_put)

        with pytest.raises(RuntimeError):
            await filled.save_many(
                "item", "id", [{"id": 1, "name": "X"}, {"id": 2, "name": "Y"}]
            )

        assert [r["name"] for r in filled.records("item")] == ["b", "a", "c", "d"]


def test_store_starts_empty():
    assert len(InMemoryRecordStore()) == 0
