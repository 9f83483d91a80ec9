"""
MongoDB unit of work: one session, one transaction.

Multi-document transactions need a replica set. With
``require_replica_set=False`` the session is opened without a transaction,
which is only suitable for standalone servers and tests.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import MongoUnitOfWorkError
from .session_utils import session_in_transaction

if TYPE_CHECKING:
    from types import TracebackType

    from motor.motor_asyncio import AsyncIOMotorClientSession

    from .connection import MongoConnectionManager

logger = logging.getLogger("crud_adapter.mongo.uow")

_REPLICA_SET_REQUIRED_MSG = (
    "MongoDB multi-document transactions require a Replica Set. "
    "Your MongoDB instance is running in standalone mode.\n\n"
    "Solutions:\n"
    "1. For local development: run a single-node replica set\n"
    "2. For testing: set require_replica_set=False (writes are then not atomic)\n"
    "3. For production: use MongoDB Atlas or a 3-node replica set"
)


class MongoUnitOfWork:
    """
    Async context manager around a session opened from a connection manager::

        async with MongoUnitOfWork(connection) as uow:
            await coll.insert_many(docs, session=uow.session)

    The transaction commits when the block exits normally and aborts when it
    raises; the exception is re-raised either way. The session is always
    ended on exit.
    """

    def __init__(
        self,
        connection: MongoConnectionManager,
        *,
        require_replica_set: bool = True,
    ) -> None:
        """
        Args:
            connection: Connection manager the session is opened from.
            require_replica_set: Verify the server is a replica set and start a
                transaction. Set False for standalone servers and mocks.
        """
        self._connection = connection
        self._require_replica_set = require_replica_set
        self._session: AsyncIOMotorClientSession | None = None

    @property
    def session(self) -> AsyncIOMotorClientSession:
        """The session for this unit of work.

        Raises:
            MongoUnitOfWorkError: If the context has not been entered.
        """
        if self._session is None:
            raise MongoUnitOfWorkError(
                "Session not available. Use the Unit of Work as a context manager first."
            )
        return self._session

    async def _check_replica_set(self) -> None:
        """Raise RuntimeError if the server is not a replica set."""
        try:
            result = await self._connection.client.admin.command("replSetGetStatus")
        except Exception as e:
            raise RuntimeError(_REPLICA_SET_REQUIRED_MSG) from e
        if result.get("ok") != 1:
            raise RuntimeError(_REPLICA_SET_REQUIRED_MSG)

    async def __aenter__(self) -> MongoUnitOfWork:
        session = await self._connection.client.start_session()
        if self._require_replica_set:
            try:
                await self._check_replica_set()
            except RuntimeError:
                session.end_session()
                raise
            if not session_in_transaction(session):
                session.start_transaction()
        self._session = session
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._session is None:
            return
        try:
            if exc_type is None:
                try:
                    await self.commit()
                except Exception:
                    await self.rollback()
                    raise
            else:
                await self.rollback()
        finally:
            self._session.end_session()
            self._session = None

    async def commit(self) -> None:
        """Commit the active transaction; a no-op outside a transaction."""
        if self._session is None:
            return
        if session_in_transaction(self._session):
            await self._session.commit_transaction()
        else:
            logger.debug("MongoDB session not in transaction, commit is no-op")

    async def rollback(self) -> None:
        """Abort the active transaction; a no-op outside a transaction."""
        if self._session is None:
            return
        if session_in_transaction(self._session):
            await self._session.abort_transaction()
            logger.debug("MongoDB transaction aborted")
        else:
            logger.debug("MongoDB session not in transaction, rollback is no-op")
