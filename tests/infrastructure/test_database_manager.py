"""Database Session Manager — health checks and error translation."""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from notecritic.core.errors import DatabaseError
from notecritic.infrastructure.database import DatabaseSessionManager, translate_error


@pytest.fixture
def manager(test_engine):
    return DatabaseSessionManager("sqlite+aiosqlite:///:memory:", engine=test_engine)


async def test_health_check_ok(manager):
    assert await manager.health_check() is True


async def test_operational_error_translated(manager):
    with pytest.raises(DatabaseError) as exc_info:
        async with manager.session() as db:
            await db.execute(text("SELECT * FROM no_such_table"))
    assert exc_info.value.operation == "execute"
    assert exc_info.value.http_status == 503


async def test_create_tables_is_repeatable(manager):
    await manager.create_tables()
    await manager.create_tables()
    assert await manager.health_check() is True


def test_translate_error_picks_most_specific():
    integrity = translate_error(IntegrityError("INSERT", {}, Exception("dup")))
    assert integrity.operation == "commit"
    assert translate_error(SQLAlchemyError("x")).operation == "unknown"
