from app.models.goal import Goal
from app.models.task import Task, TaskStatus

__all__ = ["Goal", "Task", "TaskStatus"]
