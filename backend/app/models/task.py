from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp for every stored datetime."""
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class Task(SQLModel, table=True):
    """
    A unit of work created by one agent and optionally assigned to another.

    The dependency graph only relies on a task's existence; status and
    assignment are maintained by the task routes.
    """

    __tablename__ = "tasks"

    task_id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    description: str | None = Field(default=None)
    status: TaskStatus = Field(default=TaskStatus.PENDING, index=True)
    assigned_to: str | None = Field(default=None, index=True)
    created_by: str = Field(index=True)
    github_issue_id: int | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
