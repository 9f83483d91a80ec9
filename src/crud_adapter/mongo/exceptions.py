"""MongoDB store exceptions."""

from __future__ import annotations

from ..exceptions import PersistenceError


class MongoPersistenceError(PersistenceError):
    """Base for MongoDB store errors."""


class MongoConnectionError(MongoPersistenceError):
    """Raised when the Motor client cannot be created or is not connected."""


class MongoQueryError(MongoPersistenceError):
    """Raised when a native query cannot be compiled or executed."""


class MongoUnitOfWorkError(MongoPersistenceError):
    """Raised when a session cannot be created or is used outside its scope."""
