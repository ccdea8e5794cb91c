from datetime import datetime
from sqlalchemy import CheckConstraint, DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field

from app.models.task import utcnow


class TaskDependency(SQLModel, table=True):
    """
    Directed edge in the task dependency graph.

    task_id -> depends_on_task_id means:
    "task_id cannot be considered ready until depends_on_task_id is complete"

    Example: If Task B waits on Task A:
    - task_id = B.task_id (the blocked task)
    - depends_on_task_id = A.task_id (the blocker)

    Rows disappear with either endpoint through ON DELETE CASCADE.
    """

    __tablename__ = "task_dependencies"
    __table_args__ = (
        UniqueConstraint("task_id", "depends_on_task_id", name="uq_task_dependency_edge"),
        CheckConstraint("task_id <> depends_on_task_id", name="ck_task_dependency_no_self"),
    )

    dependency_id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.task_id", ondelete="CASCADE", index=True)
    depends_on_task_id: int = Field(foreign_key="tasks.task_id", ondelete="CASCADE", index=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
