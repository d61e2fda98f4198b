"""
Living Plan previews.

Computes what a reschedule or a delete would do to a goal's timeline without
persisting anything, in the same spirit as a what-if simulation. The caller
shows the result, the user decides, and only then is the batch sent to the
commit gateway.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import CalendarModel
from app.logging_config import get_logger
from app.services.conflicts import WallConflict, detect_wall_conflict, find_dependency_issues
from app.services.propagation import (
    TaskDateUpdate,
    goal_scope,
    propagate_delete,
    propagate_move,
)
from app.services.timeline import (
    TimelineTask,
    get_owned_goal,
    get_owned_task,
    load_goal_timeline,
)

logger = get_logger(__name__)


class RescheduleStatus(str, Enum):
    SUCCESS = "success"
    CONFLICT = "reschedule_conflict"


class DeleteStatus(str, Enum):
    SUCCESS = "success"
    DEPENDENCY_CONFLICT = "dependency_conflict"


@dataclass
class RescheduleOutcome:
    """What moving one task would do."""
    status: RescheduleStatus
    goal_id: uuid.UUID
    updated_tasks: list[TaskDateUpdate]
    time_shift_in_days: int  # Positive = later, negative = earlier
    conflict: WallConflict | None
    message: str
    plan_version: int | None = None


@dataclass
class DeleteOutcome:
    """What deleting one task would do."""
    status: DeleteStatus
    goal_id: uuid.UUID
    task_id_to_delete: uuid.UUID
    updated_tasks: list[TaskDateUpdate]
    time_saved_in_days: int
    dependency_issues: list[str] = field(default_factory=list)
    anchored_barriers: list[TimelineTask] = field(default_factory=list)
    message: str = ""
    plan_version: int | None = None


def plan_reschedule(
    tasks: Sequence[TimelineTask],
    task_id: uuid.UUID,
    new_start_date: date,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> RescheduleOutcome:
    """Propagate a move and check it against the wall."""
    propagation = propagate_move(tasks, task_id, new_start_date, calendar)
    conflict = detect_wall_conflict(propagation)
    updated = list(propagation.updates)

    if conflict is not None:
        status = RescheduleStatus.CONFLICT
        message = (
            f"Rescheduling would cause a {conflict.compression_needed}-day overlap "
            f'with anchored task "{conflict.anchored_task_title}"'
        )
    else:
        status = RescheduleStatus.SUCCESS
        message = f"Successfully calculated reschedule for {len(updated)} tasks"

    return RescheduleOutcome(
        status=status,
        goal_id=propagation.trigger.goal_id,
        updated_tasks=updated,
        time_shift_in_days=propagation.shift_days,
        conflict=conflict,
        message=message,
    )


def plan_delete(
    tasks: Sequence[TimelineTask],
    task_id: uuid.UUID,
    today: date | None = None,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> DeleteOutcome:
    """Propagate a deletion and collect the warnings it raises."""
    if today is None:
        today = datetime.now(timezone.utc).date()

    propagation = propagate_delete(tasks, task_id, calendar)
    timeline = goal_scope(tasks, propagation.trigger.goal_id)
    issues = find_dependency_issues(timeline, propagation, today, calendar)
    updated = list(propagation.updates)

    if issues:
        status = DeleteStatus.DEPENDENCY_CONFLICT
        message = f"Deletion would cause scheduling conflicts: {', '.join(issues)}"
    else:
        status = DeleteStatus.SUCCESS
        message = (
            f"Successfully calculated deletion impact: {len(updated)} tasks will be "
            f"rescheduled, saving {propagation.time_saved_days} days"
        )

    return DeleteOutcome(
        status=status,
        goal_id=propagation.trigger.goal_id,
        task_id_to_delete=task_id,
        updated_tasks=updated,
        time_saved_in_days=propagation.time_saved_days,
        dependency_issues=issues,
        anchored_barriers=propagation.wave.anchored_tasks,
        message=message,
    )


async def preview_reschedule(
    session: AsyncSession,
    owner_id: str,
    task_id: uuid.UUID,
    new_start_date: date,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> RescheduleOutcome:
    """Load the trigger's goal timeline and compute a reschedule. Read-only."""
    logger.info(f"Processing reschedule request for task {task_id} to {new_start_date}")

    task = await get_owned_task(session, task_id, owner_id)
    goal = await get_owned_goal(session, task.goal_id, owner_id)
    timeline = await load_goal_timeline(session, goal.id)

    outcome = plan_reschedule(timeline, task_id, new_start_date, calendar)
    outcome.plan_version = goal.plan_version

    if outcome.status == RescheduleStatus.CONFLICT:
        logger.warning(f"Reschedule conflict for task {task_id}: {outcome.message}")
    else:
        logger.info(
            f"Reschedule calculated for task {task_id}: shift={outcome.time_shift_in_days}d "
            f"updates={len(outcome.updated_tasks)}"
        )
    return outcome


async def preview_delete(
    session: AsyncSession,
    owner_id: str,
    task_id: uuid.UUID,
    today: date | None = None,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> DeleteOutcome:
    """Load the task's goal timeline and compute a delete-and-refactor. Read-only."""
    logger.info(f"Processing deletion and refactor for task {task_id}")

    task = await get_owned_task(session, task_id, owner_id)
    goal = await get_owned_goal(session, task.goal_id, owner_id)
    timeline = await load_goal_timeline(session, goal.id)

    outcome = plan_delete(timeline, task_id, today, calendar)
    outcome.plan_version = goal.plan_version

    if outcome.dependency_issues:
        logger.warning(
            f"Deleting task {task_id} raises {len(outcome.dependency_issues)} dependency issue(s)"
        )
    else:
        logger.info(
            f"Deletion impact for task {task_id}: saved={outcome.time_saved_in_days}d "
            f"updates={len(outcome.updated_tasks)}"
        )
    return outcome
