"""API fixtures: the real app with the database session replaced by a mock."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from site_analyzer.core.database import get_db
from site_analyzer.main import app


def query_result(scalar=None, rows=()) -> MagicMock:
    """Stand-in for a SQLAlchemy Result."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = list(rows)
    return result


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.get = AsyncMock(return_value=None)
    session.execute = AsyncMock(return_value=query_result())
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def client(db):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def result_of():
    return query_result
