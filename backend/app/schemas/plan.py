"""
Request/response schemas for the living plan endpoints.

These travel to the mobile client, so fields are camelCase on the wire
(taskId, newStartDate, ...). Snake_case names are accepted on input too.
"""

import uuid
from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskDateChange(CamelModel):
    """
    New absolute dates for one task.

    Date order is checked by the commit gateway.
    """
    task_id: uuid.UUID
    new_start_date: date
    new_end_date: date


class RescheduleRequest(CamelModel):
    task_id: uuid.UUID
    new_start_date: date


class ConflictInfo(CamelModel):
    compression_needed: int
    anchored_task_id: uuid.UUID
    anchored_task_title: str


class RescheduleResponse(CamelModel):
    status: Literal["success", "reschedule_conflict"]
    goal_id: uuid.UUID
    plan_version: int
    updated_tasks: list[TaskDateChange]
    time_shift_in_days: int
    conflict_info: ConflictInfo | None = None
    message: str


class DeleteAndRefactorRequest(CamelModel):
    task_id_to_delete: uuid.UUID


class AnchoredBarrier(CamelModel):
    id: uuid.UUID
    title: str
    start_date: date | None


class DeleteAndRefactorResponse(CamelModel):
    status: Literal["success", "dependency_conflict"]
    goal_id: uuid.UUID
    plan_version: int
    task_id_to_delete: uuid.UUID
    updated_tasks: list[TaskDateChange]
    time_saved_in_days: int
    dependency_issues: list[str]
    anchored_barriers: list[AnchoredBarrier]
    message: str


class CommitRequest(CamelModel):
    """
    A batch accepted by the user.

    expectedPlanVersion is the planVersion returned with the preview; when
    given, the commit is rejected if the goal changed in between.
    """
    tasks_to_update: list[TaskDateChange] | None = None
    task_id_to_delete: uuid.UUID | None = None
    expected_plan_version: int | None = Field(default=None, ge=0)


class CommitResponse(CamelModel):
    success: bool = True
    goal_id: uuid.UUID
    updated_count: int
    deleted_task_id: uuid.UUID | None = None
    plan_version: int
