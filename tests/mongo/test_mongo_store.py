"""MongoRecordStore over mongomock-motor."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from crud_adapter import Comparison, IRecordStore
from crud_adapter.mongo import MongoQuery, MongoQueryError, MongoRecordStore, MongoUnitOfWork
from crud_adapter.mongo import store as store_module


@pytest.fixture
def mongo_store(mongo_connection_with_mock_session):
    return MongoRecordStore(mongo_connection_with_mock_session, require_replica_set=False)


@pytest.fixture
async def seeded(mongo_store):
    await mongo_store.insert_many(
        "users",
        "id",
        [
            {"name": "Ann", "age": 25},
            {"name": "Bob", "age": 35},
            {"name": "Cid", "age": 45},
        ],
    )
    return mongo_store


async def _documents(connection, name):
    return [doc async for doc in connection.get_database().get_collection(name).find({})]


def test_satisfies_protocol(mongo_store):
    assert isinstance(mongo_store, IRecordStore)


def test_create_query(mongo_store):
    assert mongo_store.create_query("users", "uid") == MongoQuery("users", "uid")


@pytest.mark.asyncio
async def test_allocate_ids_is_sequential_per_kind(mongo_store):
    assert await mongo_store.allocate_ids("users", 2) == [1, 2]
    assert await mongo_store.allocate_ids("users", 3) == [3, 4, 5]
    assert await mongo_store.allocate_ids("posts", 1) == [1]


@pytest.mark.asyncio
async def test_insert_many(mongo_store, mongo_connection_with_mock_session):
    meta, records = await mongo_store.insert_many("users", "id", [{"name": "a"}, {"name": "b"}])

    assert meta == {"inserted_ids": [1, 2]}
    assert records == [{"name": "a", "id": 1}, {"name": "b", "id": 2}]
    docs = await _documents(mongo_connection_with_mock_session, "users")
    assert sorted(doc["_id"] for doc in docs) == [1, 2]


@pytest.mark.asyncio
async def test_insert_nothing(mongo_store, mongo_connection_with_mock_session):
    assert await mongo_store.insert_many("users", "id", []) == ({"inserted_ids": []}, [])
    assert await _documents(mongo_connection_with_mock_session, "counters") == []


@pytest.mark.asyncio
async def test_get(seeded):
    assert await seeded.get("users", "id", 2) == {"id": 2, "name": "Bob", "age": 35}
    assert await seeded.get("users", "id", 99) is None


@pytest.mark.asyncio
async def test_run_query(seeded):
    query = (
        seeded.create_query("users", "id")
        .filter("age", Comparison.GE, 30)
        .order("age", descending=True)
    )

    meta, records = await seeded.run_query(query)

    assert meta == {"count": 2}
    assert [r["name"] for r in records] == ["Cid", "Bob"]
    assert all("_id" not in r for r in records)


@pytest.mark.asyncio
async def test_run_query_pagination(seeded):
    query = seeded.create_query("users", "id").order("name").offset(1).limit(1)

    _, records = await seeded.run_query(query)

    assert [r["name"] for r in records] == ["Bob"]


@pytest.mark.asyncio
async def test_run_query_rejects_foreign_builder(mongo_store):
    with pytest.raises(MongoQueryError, match="Expected MongoQuery"):
        await mongo_store.run_query(object())


@pytest.mark.asyncio
async def test_save_many(seeded):
    meta = await seeded.save_many(
        "users", "id", [{"id": 1, "name": "Ann", "age": 26}, {"id": 3, "name": "Cyd"}]
    )

    assert meta["matched"] == 2
    assert await seeded.get("users", "id", 3) == {"id": 3, "name": "Cyd"}


@pytest.mark.asyncio
async def test_delete(seeded):
    assert await seeded.delete("users", 1) == {"deleted": 1}
    assert await seeded.delete("users", 1) == {"deleted": 0}
    assert await seeded.delete_many("users", [2, 3, 4]) == {"deleted": 2}


@pytest.mark.asyncio
async def test_failed_insert_aborts_transaction(
    mongo_connection_with_mock_session, mock_session, monkeypatch
):
    monkeypatch.setattr(MongoUnitOfWork, "_check_replica_set", AsyncMock())

    def broken_record_to_doc(record, id_attribute):
        raise ValueError("cannot encode")

    monkeypatch.setattr(store_module, "record_to_doc", broken_record_to_doc)
    mongo_store = MongoRecordStore(mongo_connection_with_mock_session)

    with pytest.raises(ValueError, match="cannot encode"):
        await mongo_store.insert_many("users", "id", [{"name": "a"}])

    assert mock_session.aborted == 1
    assert mock_session.committed == 0
    assert await _documents(mongo_connection_with_mock_session, "users") == []


@pytest.mark.asyncio
async def test_writes_commit_in_a_transaction(
    mongo_connection_with_mock_session, mock_session, monkeypatch
):
    monkeypatch.setattr(MongoUnitOfWork, "_check_replica_set", AsyncMock())
    mongo_store = MongoRecordStore(mongo_connection_with_mock_session)

    _, records = await mongo_store.insert_many("users", "id", [{"name": "a"}])
    await mongo_store.save_many("users", "id", [{**records[0], "name": "b"}])

    assert mock_session.committed == 2
    assert await mongo_store.get("users", "id", 1) == {"id": 1, "name": "b"}
