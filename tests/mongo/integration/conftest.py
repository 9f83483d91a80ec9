"""Real MongoDB via testcontainers."""

from __future__ import annotations

import contextlib

import pytest

from crud_adapter.mongo import MongoConnectionManager

_COLLECTIONS = ["counters", "user", "post", "comment", "profile", "organizations"]


@pytest.fixture(scope="module")
def mongo_container():
    pytest.importorskip("testcontainers")

    from testcontainers.mongodb import MongoDbContainer

    with MongoDbContainer("mongo:7.0") as mongo:
        yield mongo


@pytest.fixture
async def real_mongo_connection(mongo_container):
    """Function-scoped so each test gets a client bound to its own event loop."""
    connection = MongoConnectionManager(
        url=mongo_container.get_connection_url(), database="crud_adapter_test"
    )
    await connection.connect()
    db = connection.get_database()
    for name in _COLLECTIONS:
        with contextlib.suppress(Exception):
            await db[name].drop()
    yield connection
    connection.close()
