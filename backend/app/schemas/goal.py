import uuid
from datetime import datetime
from pydantic import BaseModel

from app.schemas.task import TaskRead


class GoalCreate(BaseModel):
    """Schema for creating a new goal."""
    title: str
    description: str | None = None


class GoalUpdate(BaseModel):
    """Schema for updating a goal."""
    title: str | None = None
    description: str | None = None


class GoalRead(BaseModel):
    """Schema for reading a goal."""
    id: uuid.UUID
    owner_id: str
    title: str
    description: str | None
    plan_version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class GoalTimeline(BaseModel):
    """A goal with its tasks in timeline order."""
    goal: GoalRead
    tasks: list[TaskRead]
