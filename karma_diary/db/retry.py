"""
Database Retry
==============

Fixed-delay retry for database reads.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (SQLAlchemyError, OSError, ConnectionError)


async def retry_database_operation(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
    delay: float = 1.0,
) -> T:
    """
    Await ``operation()`` up to ``attempts`` times.

    The delay between attempts is constant. The last error is re-raised.
    Only use this around reads; writes are not idempotent.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except RETRYABLE_ERRORS as exc:
            if attempt == attempts:
                logger.error(
                    "Database operation failed after %d attempts: %s", attempts, exc
                )
                raise
            logger.warning(
                "Database operation failed (attempt %d/%d): %s", attempt, attempts, exc
            )
            await asyncio.sleep(delay)

    raise RuntimeError("unreachable")
