"""
Task Store: the storage interface the dependency graph runs against.

Wraps an explicitly passed AsyncSession. Every query is a fixed,
parameterized SQLAlchemy statement; driver-level connection failures are
surfaced as StorageUnavailableError and never retried here.
"""

import functools
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DuplicateDependencyError, NotFoundError, StorageUnavailableError
from app.logging_config import get_logger
from app.models import Task, TaskDependency, TaskStatus

logger = get_logger(__name__)

# Key for pg_advisory_xact_lock; every edge write in the cluster takes it.
GRAPH_LOCK_KEY = 0x7A5C_DE9E

EDGE_UNIQUE_CONSTRAINT = "uq_task_dependency_edge"


def storage_call(func_):
    """Translate connection-level database errors into StorageUnavailableError."""

    @functools.wraps(func_)
    async def wrapper(*args, **kwargs):
        try:
            return await func_(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error(f"Storage call {func_.__name__} failed: {exc}")
            raise StorageUnavailableError(f"Storage call failed: {func_.__name__}") from exc

    return wrapper


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    """
    True when the failed statement broke a foreign key.

    PostgreSQL reports SQLSTATE 23503; SQLite only says so in the message.
    """
    if "23503" in (getattr(exc.orig, "sqlstate", None), getattr(exc.orig, "pgcode", None)):
        return True
    message = str(exc.orig).lower()
    return "foreign key" in message and EDGE_UNIQUE_CONSTRAINT not in message


class TaskStore:
    """Task and dependency-edge persistence for one transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    @storage_call
    async def task_exists(self, task_id: int) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(Task).where(Task.task_id == task_id)
        )
        return result.scalar_one() > 0

    @storage_call
    async def get_task(self, task_id: int) -> Optional[Task]:
        return await self.session.get(Task, task_id)

    @storage_call
    async def add_task(self, task: Task) -> Task:
        self.session.add(task)
        await self.session.flush()
        await self.session.refresh(task)
        return task

    @storage_call
    async def save_task(self, task: Task) -> Task:
        await self.session.flush()
        await self.session.refresh(task)
        return task

    @storage_call
    async def list_tasks(
        self,
        status: Optional[TaskStatus] = None,
        assigned_to: Optional[str] = None,
        created_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Task]:
        """List tasks, most recently updated first, narrowed by whichever filters are given."""
        query = select(Task)
        if status is not None:
            query = query.where(Task.status == status)
        if assigned_to is not None:
            query = query.where(Task.assigned_to == assigned_to)
        if created_by is not None:
            query = query.where(Task.created_by == created_by)
        query = query.order_by(Task.updated_at.desc(), Task.task_id.desc())
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    @storage_call
    async def delete_task(self, task_id: int) -> bool:
        """
        Delete a task; its edges go with it through the FK cascade.

        Takes the graph lock so a concurrent edge insert cannot pass its
        existence check against a task that is about to disappear.
        """
        await self.lock_graph()
        result = await self.session.execute(delete(Task).where(Task.task_id == task_id))
        return result.rowcount > 0

    # -------------------------------------------------------------------------
    # Dependency edges
    # -------------------------------------------------------------------------

    @storage_call
    async def get_edge(self, task_id: int, depends_on_task_id: int) -> Optional[TaskDependency]:
        result = await self.session.execute(
            select(TaskDependency).where(
                TaskDependency.task_id == task_id,
                TaskDependency.depends_on_task_id == depends_on_task_id,
            )
        )
        return result.scalars().first()

    @storage_call
    async def list_outgoing_edges(self, task_id: int) -> list[TaskDependency]:
        """Edges from task_id: the tasks it depends on."""
        result = await self.session.execute(
            select(TaskDependency)
            .where(TaskDependency.task_id == task_id)
            .order_by(TaskDependency.dependency_id)
        )
        return list(result.scalars().all())

    @storage_call
    async def list_incoming_edges(self, task_id: int) -> list[TaskDependency]:
        """Edges into task_id: the tasks that depend on it."""
        result = await self.session.execute(
            select(TaskDependency)
            .where(TaskDependency.depends_on_task_id == task_id)
            .order_by(TaskDependency.dependency_id)
        )
        return list(result.scalars().all())

    @storage_call
    async def list_all_edges(self) -> list[TaskDependency]:
        result = await self.session.execute(
            select(TaskDependency).order_by(TaskDependency.dependency_id)
        )
        return list(result.scalars().all())

    @storage_call
    async def insert_edge(
        self,
        task_id: int,
        depends_on_task_id: int,
        created_at: datetime,
    ) -> TaskDependency:
        """
        Insert one edge and return it with its assigned dependency_id.

        Raises:
            DuplicateDependencyError: the (task_id, depends_on_task_id) pair is already stored
            NotFoundError: an endpoint task vanished before the insert
        """
        edge = TaskDependency(
            task_id=task_id,
            depends_on_task_id=depends_on_task_id,
            created_at=created_at,
        )
        self.session.add(edge)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            logger.warning(f"Edge insert hit a constraint: {task_id} -> {depends_on_task_id}: {exc.orig}")
            if is_foreign_key_violation(exc):
                raise NotFoundError("Task", f"{task_id} or {depends_on_task_id}") from exc
            raise DuplicateDependencyError(task_id, depends_on_task_id) from exc
        await self.session.refresh(edge)
        return edge

    @storage_call
    async def delete_edge(self, task_id: int, depends_on_task_id: int) -> bool:
        """Delete exactly one edge; True if a row was removed."""
        result = await self.session.execute(
            delete(TaskDependency).where(
                TaskDependency.task_id == task_id,
                TaskDependency.depends_on_task_id == depends_on_task_id,
            )
        )
        return result.rowcount > 0

    @storage_call
    async def lock_graph(self) -> None:
        """
        Serialize edge writers across processes for the rest of this transaction.

        PostgreSQL takes a transaction-scoped advisory lock. SQLite takes the
        database write lock by starting a write statement that touches no rows.
        """
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            await self.session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"), {"key": GRAPH_LOCK_KEY}
            )
        elif dialect == "sqlite":
            await self.session.execute(
                text("UPDATE task_dependencies SET task_id = task_id WHERE 0")
            )
        else:
            logger.debug(f"No cross-process graph lock for dialect={dialect}")
