"""Shared fixtures: mapper registry, in-memory adapter, mocked MongoDB."""

from __future__ import annotations

import pytest

from crud_adapter import CrudAdapter, InMemoryRecordStore, MapperRegistry
from crud_adapter.mongo import MongoConnectionManager

pytest_plugins = ["pytest_asyncio"]


class MockSession:
    """Mock MongoDB session for testing with mongomock.

    Motor's ClientSession uses sync start_transaction() and end_session();
    commit_transaction/abort_transaction are async. Match that so the unit of
    work doesn't await the wrong thing.
    """

    def __init__(self):
        self._in_transaction = False
        self.committed = 0
        self.aborted = 0
        self.ended = False

    def in_transaction(self):
        return self._in_transaction

    def start_transaction(self):
        self._in_transaction = True

    async def commit_transaction(self):
        self._in_transaction = False
        self.committed += 1

    async def abort_transaction(self):
        self._in_transaction = False
        self.aborted += 1

    def end_session(self):
        self._in_transaction = False
        self.ended = True


MAPPERS = [
    {
        "name": "user",
        "relations": [
            {"type": "hasMany", "relation": "post", "foreignKey": "userId", "localField": "posts"},
            {"type": "hasOne", "relation": "profile", "foreignKey": "userId", "localField": "profile"},
            {
                "type": "belongsTo",
                "relation": "organization",
                "foreignKey": "organizationId",
                "localField": "organization",
            },
        ],
    },
    {
        "name": "post",
        "relations": [
            {"type": "belongsTo", "relation": "user", "foreignKey": "userId", "localField": "user"},
            {"type": "hasMany", "relation": "comment", "foreignKey": "postId", "localField": "comments"},
            {"type": "hasMany", "relation": "tag", "localKeys": "tagIds", "localField": "tags"},
            {"type": "hasMany", "relation": "tag", "foreignKeys": "postIds", "localField": "taggings"},
        ],
    },
    {
        "name": "comment",
        "relations": [
            {"type": "belongsTo", "relation": "post", "foreignKey": "postId", "localField": "post"},
        ],
    },
    {"name": "profile"},
    {"name": "organization", "kind": "organizations"},
    {"name": "tag"},
]


@pytest.fixture
def registry():
    return MapperRegistry(MAPPERS)


@pytest.fixture
def user_mapper(registry):
    return registry.get("user")


@pytest.fixture
def post_mapper(registry):
    return registry.get("post")


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def adapter(store, registry):
    return CrudAdapter(store, registry=registry)


@pytest.fixture
def mock_session():
    return MockSession()


@pytest.fixture
def mongo_connection():
    """Connection manager backed by mongomock (no sessions)."""
    from mongomock_motor import AsyncMongoMockClient

    connection = MongoConnectionManager("mongodb://mock:27017", database="test_db")
    connection._client = AsyncMongoMockClient()
    return connection


@pytest.fixture
def mongo_connection_with_mock_session(mongo_connection, mock_session):
    """Same as ``mongo_connection`` but ``start_session`` returns ``mock_session``."""

    async def _mock_start_session():
        return mock_session

    mongo_connection.client.start_session = _mock_start_session
    return mongo_connection
