import uuid
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship

if TYPE_CHECKING:
    from app.models.goal import Goal


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Task(SQLModel, table=True):
    """
    Task model - the atomic schedulable unit of a goal's timeline.

    Key fields:
    - start_date / end_date: optional; a task without a start date is
      placed on the timeline by its created_at
    - duration_hours: effort, converted to days at 8 hours per day
    - is_anchored: user-fixed dates, never moved by propagation
    """

    __tablename__ = "tasks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str = Field(index=True)
    description: str | None = Field(default=None)
    start_date: date | None = Field(default=None)
    end_date: date | None = Field(default=None)
    duration_hours: float | None = Field(default=None, gt=0)
    is_anchored: bool = Field(default=False)
    status: TaskStatus = Field(default=TaskStatus.PENDING)

    # Foreign keys
    goal_id: uuid.UUID = Field(foreign_key="goals.id", index=True, ondelete="CASCADE")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    goal: "Goal" = Relationship(back_populates="tasks")
