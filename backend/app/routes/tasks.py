"""
Task routes for the agentcomm API.
"""

from fastapi import APIRouter, Depends, Query, status

from app.models import Task, TaskDependency, TaskStatus, utcnow
from app.providers import get_graph_manager, get_task_store
from app.schemas import (
    DependencyRead,
    DependencySummary,
    TaskAssign,
    TaskCreate,
    TaskRead,
    TaskStatusUpdate,
)
from app.services.dependencies import DependencyGraphManager
from app.services.store import TaskStore
from app.exceptions import NotFoundError
from app.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Create a new task in the pending state."""
    task = await store.add_task(Task(**task_in.model_dump()))

    logger.info(f"Created task: id={task.task_id} title='{task.title}' created_by={task.created_by}")

    return task


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    status: TaskStatus | None = None,
    assigned_to: str | None = None,
    created_by: str | None = None,
    limit: int | None = Query(default=None, ge=1),
    store: TaskStore = Depends(get_task_store),
) -> list[Task]:
    """
    List tasks, most recently updated first.

    Optionally filter by status, assigned_to and created_by, and cap the
    number returned with limit.
    """
    tasks = await store.list_tasks(
        status=status,
        assigned_to=assigned_to,
        created_by=created_by,
        limit=limit,
    )

    logger.debug(f"Listed {len(tasks)} tasks")

    return tasks


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Get a task by ID."""
    task = await store.get_task(task_id)
    if not task:
        raise NotFoundError("Task", task_id)
    return task


@router.patch("/{task_id}/status", response_model=TaskRead)
async def update_task_status(
    task_id: int,
    status_in: TaskStatusUpdate,
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Move a task to a new status."""
    task = await store.get_task(task_id)
    if not task:
        raise NotFoundError("Task", task_id)

    logger.info(f"Updating task {task_id} status: {task.status.value} -> {status_in.status.value}")

    task.status = status_in.status
    task.updated_at = utcnow()
    return await store.save_task(task)


@router.patch("/{task_id}/assign", response_model=TaskRead)
async def assign_task(
    task_id: int,
    assign_in: TaskAssign,
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Assign a task to an agent; the task becomes ``assigned``."""
    task = await store.get_task(task_id)
    if not task:
        raise NotFoundError("Task", task_id)

    logger.info(f"Assigning task {task_id} to agent {assign_in.agent_id}")

    task.assigned_to = assign_in.agent_id
    task.status = TaskStatus.ASSIGNED
    task.updated_at = utcnow()
    return await store.save_task(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    store: TaskStore = Depends(get_task_store),
) -> None:
    """
    Delete a task.

    Every dependency involving this task is removed with it.
    """
    if not await store.delete_task(task_id):
        raise NotFoundError("Task", task_id)

    logger.info(f"Deleted task {task_id}")


@router.get("/{task_id}/dependencies", response_model=list[DependencyRead])
async def list_task_dependencies(
    task_id: int,
    manager: DependencyGraphManager = Depends(get_graph_manager),
) -> list[TaskDependency]:
    """Tasks this task directly depends on."""
    return await manager.list_dependencies(task_id)


@router.get("/{task_id}/dependents", response_model=list[DependencyRead])
async def list_task_dependents(
    task_id: int,
    manager: DependencyGraphManager = Depends(get_graph_manager),
) -> list[TaskDependency]:
    """Tasks that directly depend on this task."""
    return await manager.list_dependents(task_id)


@router.get("/{task_id}/dependency-summary", response_model=DependencySummary)
async def get_dependency_summary(
    task_id: int,
    manager: DependencyGraphManager = Depends(get_graph_manager),
) -> dict:
    """Direct dependencies and dependents of a task in one response."""
    return await manager.describe(task_id)
