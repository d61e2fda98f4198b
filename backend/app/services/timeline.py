"""
Timeline snapshots.

A goal's timeline is its tasks in ascending order of effective anchor date
(start_date, or the creation date for undated tasks), ties broken by creation
order. The propagator works on frozen snapshots of the rows, never on the ORM
objects themselves.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.exceptions import NotFoundError, StorageError
from app.logging_config import get_logger
from app.models import Goal, Task, TaskStatus
from app.services.workdays import to_utc_date

logger = get_logger(__name__)


@dataclass(frozen=True)
class TimelineTask:
    """Read-only view of one task as the propagator sees it."""
    id: uuid.UUID
    goal_id: uuid.UUID
    title: str
    start_date: date | None
    end_date: date | None
    duration_hours: float | None
    is_anchored: bool
    status: TaskStatus
    created_at: datetime

    def effective_anchor_date(self) -> date:
        """Where the task sits on the timeline: start_date, else its creation day."""
        if self.start_date is not None:
            return self.start_date
        return to_utc_date(self.created_at)

    def sort_key(self) -> tuple[date, datetime, str]:
        return (self.effective_anchor_date(), self.created_at, str(self.id))

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @classmethod
    def from_model(cls, task: Task) -> "TimelineTask":
        return cls(
            id=task.id,
            goal_id=task.goal_id,
            title=task.title,
            start_date=task.start_date,
            end_date=task.end_date,
            duration_hours=task.duration_hours,
            is_anchored=task.is_anchored,
            status=TaskStatus(task.status),
            created_at=task.created_at,
        )


def order_timeline(tasks: Iterable[TimelineTask]) -> list[TimelineTask]:
    """Sort tasks into timeline order."""
    return sorted(tasks, key=TimelineTask.sort_key)


async def load_goal_timeline(
    session: AsyncSession,
    goal_id: uuid.UUID,
) -> list[TimelineTask]:
    """Fetch every task of a goal, in timeline order."""
    try:
        result = await session.execute(select(Task).where(Task.goal_id == goal_id))
        rows = list(result.scalars().all())
    except SQLAlchemyError as exc:
        logger.error(f"Failed to fetch tasks for goal {goal_id}: {exc}")
        raise StorageError(f"Failed to fetch goal tasks: {exc}") from exc

    timeline = order_timeline(TimelineTask.from_model(row) for row in rows)
    logger.debug(f"Loaded {len(timeline)} tasks for goal={goal_id}")
    return timeline


async def get_owned_goal(
    session: AsyncSession,
    goal_id: uuid.UUID,
    owner_id: str,
) -> Goal:
    """Fetch a goal the caller owns; other users' goals are reported as missing."""
    try:
        goal = await session.get(Goal, goal_id)
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to fetch goal: {exc}") from exc
    if goal is None or goal.owner_id != owner_id:
        raise NotFoundError("Goal", str(goal_id))
    return goal


async def get_owned_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    owner_id: str,
) -> Task:
    """Fetch a task whose goal the caller owns."""
    try:
        result = await session.execute(
            select(Task)
            .join(Goal, Goal.id == Task.goal_id)
            .where(Task.id == task_id, Goal.owner_id == owner_id)
        )
        task = result.scalars().first()
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to fetch task: {exc}") from exc
    if task is None:
        raise NotFoundError("Task", str(task_id))
    return task
