from app.schemas.goal import GoalCreate, GoalUpdate, GoalRead, GoalTimeline
from app.schemas.task import TaskCreate, TaskUpdate, TaskRead
from app.schemas.plan import (
    CommitRequest,
    CommitResponse,
    DeleteAndRefactorRequest,
    DeleteAndRefactorResponse,
    RescheduleRequest,
    RescheduleResponse,
)

__all__ = [
    "GoalCreate",
    "GoalUpdate",
    "GoalRead",
    "GoalTimeline",
    "TaskCreate",
    "TaskUpdate",
    "TaskRead",
    "RescheduleRequest",
    "RescheduleResponse",
    "DeleteAndRefactorRequest",
    "DeleteAndRefactorResponse",
    "CommitRequest",
    "CommitResponse",
]
