"""ShipDesk — Retrying transaction runner."""
import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shipdesk.core.errors import TransactionConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}


class WriteConflict(Exception):
    """Raised inside a transaction body when a conditional write lost a race."""


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, WriteConflict):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in _RETRYABLE_SQLSTATES:
            return True
        return "database is locked" in str(orig).lower()
    return False


async def run_transaction(
    session_maker: async_sessionmaker[AsyncSession],
    body: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: int,
    name: str = "transaction",
) -> T:
    """
    Run ``body`` in a fresh session/transaction and commit.

    Conflicts with concurrent writers roll back and rerun the whole body,
    up to ``max_attempts`` times. Any other exception propagates unchanged.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            async with session_maker() as session:
                async with session.begin():
                    return await body(session)
        except Exception as exc:
            if not is_retryable(exc):
                raise
            logger.debug("%s conflict on attempt %d/%d: %s", name, attempt, max_attempts, exc)
            await asyncio.sleep(random.uniform(0, 0.005 * attempt))
    logger.warning("%s gave up after %d conflicting attempts", name, max_attempts)
    raise TransactionConflictError(f"{name} did not commit after {max_attempts} attempts")
