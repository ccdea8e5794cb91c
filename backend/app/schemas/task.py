from datetime import datetime
from pydantic import BaseModel, Field

from app.models import TaskStatus


class TaskCreate(BaseModel):
    """Schema for creating a new task."""
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    created_by: str = Field(min_length=1, max_length=255)  # Agent id of the creator
    github_issue_id: int | None = None


class TaskStatusUpdate(BaseModel):
    """Schema for moving a task to a new status."""
    status: TaskStatus


class TaskAssign(BaseModel):
    """Schema for assigning a task to an agent."""
    agent_id: str = Field(min_length=1, max_length=255)


class TaskRead(BaseModel):
    """Schema for reading a task."""
    task_id: int
    title: str
    description: str | None
    status: TaskStatus
    assigned_to: str | None
    created_by: str
    github_issue_id: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
