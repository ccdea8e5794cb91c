from app.schemas.task import TaskCreate, TaskStatusUpdate, TaskAssign, TaskRead
from app.schemas.dependency import (
    DependencyCreate,
    DependencyRead,
    DependencySummary,
    GraphAudit,
)

__all__ = [
    "TaskCreate",
    "TaskStatusUpdate",
    "TaskAssign",
    "TaskRead",
    "DependencyCreate",
    "DependencyRead",
    "DependencySummary",
    "GraphAudit",
]
