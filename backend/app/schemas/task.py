import uuid
from datetime import date, datetime
from pydantic import BaseModel, Field, computed_field, model_validator

from app.models import TaskStatus


class TaskCreate(BaseModel):
    """Schema for creating a new task."""
    title: str
    description: str | None = None
    goal_id: uuid.UUID
    start_date: date | None = None
    end_date: date | None = None
    duration_hours: float | None = Field(default=None, gt=0)
    is_anchored: bool = False
    status: TaskStatus = TaskStatus.PENDING

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date and not self.start_date:
            raise ValueError("end_date requires start_date")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self


class TaskUpdate(BaseModel):
    """
    Schema for updating a task.

    Dates are not editable here: moving a task goes through the living plan
    (POST /plan/reschedule, then POST /plan/commit).
    """
    title: str | None = None
    description: str | None = None
    duration_hours: float | None = Field(default=None, gt=0)
    is_anchored: bool | None = None
    status: TaskStatus | None = None


class TaskRead(BaseModel):
    """Schema for reading a task with its effective timeline position."""
    id: uuid.UUID
    goal_id: uuid.UUID
    title: str
    description: str | None
    start_date: date | None
    end_date: date | None
    duration_hours: float | None
    is_anchored: bool
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def effective_start_date(self) -> date:
        """
        Where the task sits on the timeline.

        Tasks without a start date are placed on the day they were created.
        """
        if self.start_date is not None:
            return self.start_date
        return self.created_at.date()

    model_config = {"from_attributes": True}
