"""Session helpers shared by the Mongo unit of work and store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from motor.motor_asyncio import AsyncIOMotorClientSession
from pymongo.client_session import ClientSession

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

# Sessions from a real driver; errors raised under them are never retried
_DRIVER_SESSION_TYPES: tuple[type, ...] = (AsyncIOMotorClientSession, ClientSession)


def session_in_transaction(session: Any) -> bool:
    """Return whether *session* is in an active transaction.

    Motor exposes ``in_transaction`` as a property; mocks may use a method.
    """
    in_txn = getattr(session, "in_transaction", False)
    return in_txn() if callable(in_txn) else bool(in_txn)


async def call_with_session(
    method: Callable[..., Awaitable[Any]],
    *args: Any,
    session: Any = None,
    **kwargs: Any,
) -> Any:
    """Await a collection method, bound to *session* when it is in a transaction.

    Only a session that is not a driver session (mongomock's collections
    reject the ``session`` argument) is retried without it; under a driver
    session the error propagates, so a write never leaves its transaction.
    """
    if session is None or not session_in_transaction(session):
        return await method(*args, **kwargs)
    try:
        return await method(*args, session=session, **kwargs)
    except (NotImplementedError, TypeError):
        if isinstance(session, _DRIVER_SESSION_TYPES):
            raise
        # mongomock doesn't support sessions
        return await method(*args, **kwargs)
