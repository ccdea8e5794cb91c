"""
Pytest configuration and fixtures for agentcomm tests.
"""

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.database import Database
from app.main import create_app
from app.models import Task
from app.services.dependencies import DependencyGraphManager
from app.services.store import TaskStore


# In-memory SQLite; foreign keys are switched on so cascades are exercised
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture(scope="function")
async def test_db():
    """Create a fresh database with all tables."""
    db = Database(TEST_DATABASE_URL)
    await db.connect()
    yield db
    await db.disconnect()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_db):
    """A transactional session; committed when the test finishes cleanly."""
    async with test_db.session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def store(test_session):
    return TaskStore(test_session)


@pytest_asyncio.fixture(scope="function")
async def manager(store):
    return DependencyGraphManager(store)


@pytest_asyncio.fixture(scope="function")
async def make_task(store):
    """Factory creating tasks directly through the store."""
    async def _make_task(title: str = "Task", created_by: str = "agent-1") -> int:
        task = await store.add_task(Task(title=title, created_by=created_by))
        return task.task_id

    return _make_task


@pytest_asyncio.fixture(scope="function")
async def client(test_db):
    """Create an async test client bound to the test database."""
    app = create_app(db=test_db)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
