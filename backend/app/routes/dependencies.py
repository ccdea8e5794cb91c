"""
Dependency routes for the agentcomm API.
"""

from fastapi import APIRouter, Depends, status

from app.models import TaskDependency
from app.providers import get_graph_manager, get_task_store
from app.schemas import DependencyCreate, DependencyRead, GraphAudit
from app.services.dependencies import DependencyGraphManager
from app.services.graph import audit_graph
from app.services.store import TaskStore
from app.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=DependencyRead, status_code=status.HTTP_201_CREATED)
async def create_dependency(
    dep_in: DependencyCreate,
    manager: DependencyGraphManager = Depends(get_graph_manager),
) -> TaskDependency:
    """
    Create a new dependency (edge in the task DAG).

    Returns 400 for a self-dependency or an edge that would close a cycle,
    404 if either task is missing and 409 if the edge already exists.
    """
    logger.info(f"Creating dependency: {dep_in.task_id} -> {dep_in.depends_on_task_id}")
    return await manager.add_dependency(dep_in.task_id, dep_in.depends_on_task_id)


@router.get("/audit", response_model=GraphAudit)
async def audit_dependencies(
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """Confirm the stored edge set is acyclic and return a completion order."""
    return await audit_graph(store)


@router.delete(
    "/{task_id}/{depends_on_task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_dependency(
    task_id: int,
    depends_on_task_id: int,
    manager: DependencyGraphManager = Depends(get_graph_manager),
) -> None:
    """Delete a dependency. Returns 404 if the edge does not exist."""
    await manager.remove_dependency(task_id, depends_on_task_id)
