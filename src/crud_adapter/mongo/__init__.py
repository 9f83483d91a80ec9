"""MongoDB record store (Motor).

Includes the connection manager, the session-scoped unit of work, the native
query builder and the store itself.
"""

from __future__ import annotations

from .connection import MongoConnectionManager
from .exceptions import (
    MongoConnectionError,
    MongoPersistenceError,
    MongoQueryError,
    MongoUnitOfWorkError,
)
from .query_builder import MongoQuery
from .serialization import doc_to_record, record_to_doc
from .store import MongoRecordStore
from .uow import MongoUnitOfWork

__all__ = [
    # Core
    "MongoConnectionManager",
    "MongoRecordStore",
    "MongoUnitOfWork",
    "MongoQuery",
    # Utilities
    "doc_to_record",
    "record_to_doc",
    # Exceptions
    "MongoPersistenceError",
    "MongoConnectionError",
    "MongoQueryError",
    "MongoUnitOfWorkError",
]
