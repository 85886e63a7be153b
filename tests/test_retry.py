"""
Database Retry Tests
====================
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from karma_diary.db.retry import retry_database_operation


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection reset"))


@pytest.mark.asyncio
async def test_returns_first_success():
    operation = AsyncMock(return_value=42)
    assert await retry_database_operation(operation, delay=0) == 42
    operation.assert_awaited_once()


@pytest.mark.asyncio
async def test_retries_until_success():
    operation = AsyncMock(side_effect=[_db_error(), _db_error(), "ok"])
    with patch("karma_diary.db.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        assert await retry_database_operation(operation, attempts=3, delay=1.0) == "ok"
    assert operation.await_count == 3
    assert sleep.await_count == 2
    sleep.assert_awaited_with(1.0)


@pytest.mark.asyncio
async def test_reraises_last_error():
    operation = AsyncMock(side_effect=_db_error())
    with pytest.raises(OperationalError):
        await retry_database_operation(operation, attempts=2, delay=0)
    assert operation.await_count == 2


@pytest.mark.asyncio
async def test_other_errors_are_not_retried():
    operation = AsyncMock(side_effect=KeyError("boom"))
    with pytest.raises(KeyError):
        await retry_database_operation(operation, attempts=3, delay=0)
    operation.assert_awaited_once()
