from datetime import datetime
from pydantic import BaseModel


class DependencyCreate(BaseModel):
    """Schema for creating a new dependency."""
    task_id: int             # The task that waits
    depends_on_task_id: int  # The task that must complete first


class DependencyRead(BaseModel):
    """Schema for reading a dependency edge."""
    dependency_id: int
    task_id: int
    depends_on_task_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class DependencySummary(BaseModel):
    """Direct edges on both sides of one task."""
    task_id: int
    dependencies: list[DependencyRead]  # Tasks this task depends on
    dependents: list[DependencyRead]    # Tasks that depend on this task


class GraphAudit(BaseModel):
    """Result of checking the stored edge set."""
    acyclic: bool
    task_count: int
    edge_count: int
    cycle: list[list[int]]  # [task_id, depends_on_task_id] pairs
    order: list[int]        # Every task after the tasks it depends on
