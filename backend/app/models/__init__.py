from app.models.task import Task, TaskStatus, utcnow
from app.models.dependency import TaskDependency

__all__ = [
    "Task",
    "TaskStatus",
    "TaskDependency",
    "utcnow",
]
