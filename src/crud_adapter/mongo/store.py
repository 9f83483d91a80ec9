"""MongoRecordStore: IRecordStore over a Motor database."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo import ReplaceOne, ReturnDocument

from ..ports import IRecordStore
from .exceptions import MongoQueryError
from .query_builder import MongoQuery
from .serialization import doc_to_record, record_to_doc
from .session_utils import call_with_session
from .uow import MongoUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..ports import IQueryBuilder, Meta, Record
    from .connection import MongoConnectionManager

logger = logging.getLogger("crud_adapter.mongo.store")


class MongoRecordStore(IRecordStore):
    """Store records as documents, one collection per kind.

    Primary keys are integers allocated from a counters collection
    (``{_id: kind, seq: n}``). Key allocation and the insert run in the same
    transaction, as do the replacements of a batch update.
    """

    def __init__(
        self,
        connection: MongoConnectionManager,
        *,
        database: str | None = None,
        counters_collection: str = "counters",
        require_replica_set: bool = True,
    ) -> None:
        self._connection = connection
        self._database = database
        self._counters_collection = counters_collection
        self._require_replica_set = require_replica_set

    def _collection(self, name: str) -> Any:
        return self._connection.get_database(self._database).get_collection(name)

    def _unit_of_work(self) -> MongoUnitOfWork:
        return MongoUnitOfWork(
            connection=self._connection,
            require_replica_set=self._require_replica_set,
        )

    async def allocate_ids(self, kind: str, count: int, session: Any = None) -> list[int]:
        """Reserve *count* consecutive keys for *kind*."""
        counters = self._collection(self._counters_collection)
        doc = await call_with_session(
            counters.find_one_and_update,
            {"_id": kind},
            {"$inc": {"seq": count}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        end = int(doc["seq"])
        return list(range(end - count + 1, end + 1))

    def create_query(self, kind: str, id_attribute: str) -> MongoQuery:
        return MongoQuery(kind, id_attribute)

    async def run_query(self, query: IQueryBuilder) -> tuple[Meta, list[Record]]:
        if not isinstance(query, MongoQuery):
            raise MongoQueryError(f"Expected MongoQuery, got {type(query).__name__}")
        match = query.build_match()
        logger.debug("find on %s: %r %r", query.collection, match, query.find_kwargs())
        cursor = self._collection(query.collection).find(match, **query.find_kwargs())
        records = [doc_to_record(doc, query.id_attribute) async for doc in cursor]
        return {"count": len(records)}, records

    async def get(self, kind: str, id_attribute: str, record_id: Any) -> Record | None:
        doc = await self._collection(kind).find_one({"_id": record_id})
        if doc is None:
            return None
        return doc_to_record(doc, id_attribute)

    async def insert_many(
        self, kind: str, id_attribute: str, records: Sequence[Record]
    ) -> tuple[Meta, list[Record]]:
        if not records:
            return {"inserted_ids": []}, []
        coll = self._collection(kind)
        async with self._unit_of_work() as uow:
            keys = await self.allocate_ids(kind, len(records), uow.session)
            created = [
                {**record, id_attribute: key} for record, key in zip(records, keys)
            ]
            result = await call_with_session(
                coll.insert_many,
                [record_to_doc(record, id_attribute) for record in created],
                session=uow.session,
            )
        logger.debug("Inserted %d document(s) into %s", len(created), kind)
        return {"inserted_ids": list(result.inserted_ids)}, created

    async def save_many(
        self, kind: str, id_attribute: str, records: Sequence[Record]
    ) -> Meta:
        """Replace every record in one ``bulk_write``.

        Falls back to individual ``replace_one`` calls for mongomock
        compatibility.
        """
        if not records:
            return {"matched": 0, "modified": 0}
        coll = self._collection(kind)
        docs = [record_to_doc(record, id_attribute) for record in records]
        async with self._unit_of_work() as uow:
            try:
                result = await call_with_session(
                    coll.bulk_write,
                    [ReplaceOne({"_id": doc["_id"]}, doc) for doc in docs],
                    session=uow.session,
                )
                return {"matched": result.matched_count, "modified": result.modified_count}
            except (NotImplementedError, AttributeError, TypeError) as e:
                # mongomock's bulk builder rejects newer ReplaceOne arguments
                logger.debug("bulk_write not supported (%s), falling back to individual ops", e)
            matched = modified = 0
            for doc in docs:
                single = await call_with_session(
                    coll.replace_one, {"_id": doc["_id"]}, doc, session=uow.session
                )
                matched += single.matched_count
                modified += single.modified_count
        return {"matched": matched, "modified": modified}

    async def delete(self, kind: str, record_id: Any) -> Meta:
        result = await self._collection(kind).delete_one({"_id": record_id})
        return {"deleted": result.deleted_count}

    async def delete_many(self, kind: str, record_ids: Sequence[Any]) -> Meta:
        result = await self._collection(kind).delete_many({"_id": {"$in": list(record_ids)}})
        return {"deleted": result.deleted_count}
