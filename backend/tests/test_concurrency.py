"""
Concurrent edge insertion tests.

Each writer gets its own session and its own asyncio.Lock, so only the
database-level graph lock stands between them, as it would between
separate processes. A file-backed SQLite database gives each session its
own connection.
"""

import asyncio

import pytest
import pytest_asyncio

from app.database import Database
from app.exceptions import CyclicDependencyError
from app.models import Task
from app.services.dependencies import DependencyGraphManager
from app.services.graph import audit_graph
from app.services.store import TaskStore

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def file_db(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'agentcomm.db'}")
    await db.connect()
    yield db
    await db.disconnect()


async def create_tasks(db: Database, *titles: str) -> list[int]:
    async with db.session() as session:
        store = TaskStore(session)
        tasks = [await store.add_task(Task(title=title, created_by="agent-1")) for title in titles]
        return [task.task_id for task in tasks]


class TestConcurrentInsertion:
    async def test_opposite_edges_cannot_both_land(self, file_db):
        """
        Writer one adds a -> b and keeps its transaction open; writer two
        adds b -> a meanwhile. Only one edge may survive.
        """
        a, b = await create_tasks(file_db, "A", "B")
        outcomes = {}

        async def writer(name: str, task_id: int, depends_on_task_id: int, start_after: float, hold: float):
            await asyncio.sleep(start_after)
            try:
                async with file_db.session() as session:
                    manager = DependencyGraphManager(TaskStore(session), lock=asyncio.Lock())
                    await manager.add_dependency(task_id, depends_on_task_id)
                    await asyncio.sleep(hold)
                outcomes[name] = "ok"
            except CyclicDependencyError:
                outcomes[name] = "cycle"

        await asyncio.gather(
            writer("first", a, b, start_after=0, hold=0.5),
            writer("second", b, a, start_after=0.1, hold=0),
        )

        assert sorted(outcomes.values()) == ["cycle", "ok"]
        assert outcomes["first"] == "ok"

        async with file_db.session() as session:
            audit = await audit_graph(TaskStore(session))
        assert audit["acyclic"] is True
        assert audit["edge_count"] == 1

    async def test_three_way_cycle_under_concurrency(self, file_db):
        """Two committed edges plus two racing closers: the graph stays acyclic."""
        a, b, c = await create_tasks(file_db, "A", "B", "C")
        async with file_db.session() as session:
            manager = DependencyGraphManager(TaskStore(session))
            await manager.add_dependency(a, b)

        results = []

        async def writer(task_id: int, depends_on_task_id: int, start_after: float):
            await asyncio.sleep(start_after)
            try:
                async with file_db.session() as session:
                    manager = DependencyGraphManager(TaskStore(session), lock=asyncio.Lock())
                    await manager.add_dependency(task_id, depends_on_task_id)
                    await asyncio.sleep(0.3)
                results.append("ok")
            except CyclicDependencyError:
                results.append("cycle")

        await asyncio.gather(writer(b, c, 0), writer(c, a, 0.1))

        assert sorted(results) == ["cycle", "ok"]
        async with file_db.session() as session:
            audit = await audit_graph(TaskStore(session))
        assert audit["acyclic"] is True
        assert audit["edge_count"] == 2
