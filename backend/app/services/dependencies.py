"""
Dependency graph manager.

Keeps the task dependency edges a DAG:
- Validates endpoints (no self-dependency, both tasks exist)
- Rejects duplicate edges with a conflict
- Rejects edges that would close a cycle
- Answers direct dependency / dependent queries

An edge task_id -> depends_on_task_id closes a cycle iff depends_on_task_id
can already reach task_id by following existing edges.
"""

import asyncio
from typing import Any, Optional

from app.exceptions import (
    CyclicDependencyError,
    DuplicateDependencyError,
    InvalidArgumentError,
    NotFoundError,
    SelfDependencyError,
)
from app.logging_config import get_logger
from app.models import TaskDependency, utcnow
from app.services.store import TaskStore

logger = get_logger(__name__)


def require_task_id(value: Any, field: str) -> int:
    """Reject missing or non-integer task ids before touching the store."""
    if value is None:
        raise InvalidArgumentError(f"{field} is required", field=field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{field} must be an integer", field=field)
    return value


class DependencyGraphManager:
    """
    Guards the dependency edge set and exposes queries over it.

    ``lock`` serializes edge insertion among managers of one process; pass
    the same lock to every manager built for the same database. The store's
    ``lock_graph`` covers writers in other processes until the transaction ends.
    """

    def __init__(self, store: TaskStore, lock: Optional[asyncio.Lock] = None):
        self.store = store
        self.lock = lock or asyncio.Lock()

    async def add_dependency(self, task_id: int, depends_on_task_id: int) -> TaskDependency:
        """
        Make task_id depend on depends_on_task_id.

        Raises:
            InvalidArgumentError: an id is missing or both ids are equal
            NotFoundError: either task does not exist
            DuplicateDependencyError: the edge is already stored
            CyclicDependencyError: depends_on_task_id already reaches task_id
        """
        task_id = require_task_id(task_id, "task_id")
        depends_on_task_id = require_task_id(depends_on_task_id, "depends_on_task_id")

        if task_id == depends_on_task_id:
            logger.warning(f"Self-dependency rejected: {task_id}")
            raise SelfDependencyError(task_id)

        async with self.lock:
            await self.store.lock_graph()

            if not await self.store.task_exists(task_id):
                raise NotFoundError("Task", task_id)
            if not await self.store.task_exists(depends_on_task_id):
                raise NotFoundError("Dependency task", depends_on_task_id)

            if await self.store.get_edge(task_id, depends_on_task_id) is not None:
                logger.warning(f"Duplicate dependency rejected: {task_id} -> {depends_on_task_id}")
                raise DuplicateDependencyError(task_id, depends_on_task_id)

            if await self.would_create_cycle(task_id, depends_on_task_id):
                logger.warning(
                    f"Cycle detected: {task_id} -> {depends_on_task_id} "
                    f"would create a cycle"
                )
                raise CyclicDependencyError(task_id, depends_on_task_id)

            edge = await self.store.insert_edge(task_id, depends_on_task_id, utcnow())

        logger.info(
            f"Created dependency {edge.dependency_id}: "
            f"task {task_id} depends on task {depends_on_task_id}"
        )
        return edge

    async def remove_dependency(self, task_id: int, depends_on_task_id: int) -> None:
        """Delete exactly one edge. Other edges are untouched."""
        task_id = require_task_id(task_id, "task_id")
        depends_on_task_id = require_task_id(depends_on_task_id, "depends_on_task_id")

        removed = await self.store.delete_edge(task_id, depends_on_task_id)
        if not removed:
            raise NotFoundError("Dependency", f"{task_id}/{depends_on_task_id}")

        logger.info(f"Removed dependency: task {task_id} no longer depends on task {depends_on_task_id}")

    async def list_dependencies(self, task_id: int) -> list[TaskDependency]:
        """Edges to the tasks task_id directly depends on."""
        task_id = await self._require_existing(task_id)
        return await self.store.list_outgoing_edges(task_id)

    async def list_dependents(self, task_id: int) -> list[TaskDependency]:
        """Edges from the tasks that directly depend on task_id."""
        task_id = await self._require_existing(task_id)
        return await self.store.list_incoming_edges(task_id)

    async def describe(self, task_id: int) -> dict:
        """Both directions for one task, as a single payload."""
        task_id = await self._require_existing(task_id)
        return {
            "task_id": task_id,
            "dependencies": await self.store.list_outgoing_edges(task_id),
            "dependents": await self.store.list_incoming_edges(task_id),
        }

    async def would_create_cycle(self, task_id: int, depends_on_task_id: int) -> bool:
        """
        True if depends_on_task_id can already reach task_id.

        Iterative depth-first search over outgoing edges. The visited set
        bounds the walk even if the stored graph already holds a cycle.
        """
        visited: set[int] = set()
        stack = [depends_on_task_id]

        while stack:
            current = stack.pop()
            if current == task_id:
                return True
            if current in visited:
                continue
            visited.add(current)

            for edge in await self.store.list_outgoing_edges(current):
                if edge.depends_on_task_id not in visited:
                    stack.append(edge.depends_on_task_id)

        logger.debug(
            f"No path {depends_on_task_id} -> {task_id}; visited {len(visited)} tasks"
        )
        return False

    async def _require_existing(self, task_id: Any) -> int:
        task_id = require_task_id(task_id, "task_id")
        if not await self.store.task_exists(task_id):
            raise NotFoundError("Task", task_id)
        return task_id
