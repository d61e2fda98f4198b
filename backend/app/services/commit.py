"""
Commit gateway: the only writer of reschedule/delete results.

Applies a batch of absolute date assignments plus at most one deletion inside
the request's transaction. Either every row changes or none does. Conflicts
are NOT re-validated here; the caller has already decided.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.exceptions import NotFoundError, StalePlanError, StorageError, ValidationError
from app.logging_config import get_logger
from app.models import Goal, Task
from app.services.propagation import TaskDateUpdate

logger = get_logger(__name__)


@dataclass
class CommitReceipt:
    goal_id: uuid.UUID
    updated_count: int
    deleted_task_id: uuid.UUID | None
    plan_version: int


def _validate_batch(
    updates: Sequence[TaskDateUpdate],
    task_id_to_delete: uuid.UUID | None,
) -> None:
    if not updates and task_id_to_delete is None:
        raise ValidationError("Nothing to commit: provide tasksToUpdate and/or taskIdToDelete")

    seen: set[uuid.UUID] = set()
    for update in updates:
        if update.task_id in seen:
            raise ValidationError(f"Task {update.task_id} appears more than once in tasksToUpdate")
        seen.add(update.task_id)
        if update.new_end_date < update.new_start_date:
            raise ValidationError(f"Task {update.task_id} would end before it starts")

    if task_id_to_delete is not None and task_id_to_delete in seen:
        raise ValidationError(f"Task {task_id_to_delete} cannot be both updated and deleted")


async def apply_plan_update(
    session: AsyncSession,
    owner_id: str,
    updates: Sequence[TaskDateUpdate] | None = None,
    task_id_to_delete: uuid.UUID | None = None,
    expected_plan_version: int | None = None,
) -> CommitReceipt:
    """
    Apply a validated plan update atomically.

    Args:
        session: Request-scoped session; the caller's transaction commits or
            rolls back everything flushed here
        owner_id: Authenticated user; tasks of other users are "not found"
        updates: Absolute (start, end) assignments
        task_id_to_delete: Optional task removed in the same transaction
        expected_plan_version: If given, the goal's plan_version must still
            match, otherwise StalePlanError

    Returns:
        CommitReceipt with the goal's new plan_version
    """
    updates = list(updates or [])
    _validate_batch(updates, task_id_to_delete)

    wanted = {update.task_id for update in updates}
    if task_id_to_delete is not None:
        wanted.add(task_id_to_delete)

    try:
        result = await session.execute(
            select(Task)
            .join(Goal, Goal.id == Task.goal_id)
            .where(Task.id.in_(wanted), Goal.owner_id == owner_id)
        )
        tasks = {task.id: task for task in result.scalars().all()}
    except SQLAlchemyError as exc:
        logger.error(f"Failed to load tasks for commit: {exc}")
        raise StorageError(f"Failed to load tasks: {exc}") from exc

    missing = sorted(str(task_id) for task_id in wanted - tasks.keys())
    if missing:
        logger.warning(f"Commit rejected, unknown task(s): {', '.join(missing)}")
        raise NotFoundError("Task", missing[0])

    goal_ids = {task.goal_id for task in tasks.values()}
    if len(goal_ids) != 1:
        logger.warning(f"Commit rejected, batch spans {len(goal_ids)} goals")
        raise ValidationError("A plan update must stay within a single goal")
    goal_id = goal_ids.pop()

    try:
        # Serialize commits per goal where the database supports row locks
        goal_result = await session.execute(
            select(Goal)
            .where(Goal.id == goal_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        goal = goal_result.scalars().one()
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to lock goal: {exc}") from exc

    if expected_plan_version is not None and goal.plan_version != expected_plan_version:
        logger.warning(
            f"Stale commit for goal {goal_id}: expected version {expected_plan_version}, "
            f"found {goal.plan_version}"
        )
        raise StalePlanError(str(goal_id), expected_plan_version, goal.plan_version)

    now = datetime.utcnow()
    for update in updates:
        task = tasks[update.task_id]
        task.start_date = update.new_start_date
        task.end_date = update.new_end_date
        task.updated_at = now
        session.add(task)

    if task_id_to_delete is not None:
        await session.delete(tasks[task_id_to_delete])

    goal.plan_version += 1
    goal.updated_at = now
    session.add(goal)

    try:
        await session.flush()
    except SQLAlchemyError as exc:
        logger.error(f"Failed to apply plan update for goal {goal_id}: {exc}")
        raise StorageError(f"Failed to apply plan update: {exc}") from exc

    logger.info(
        f"Committed plan update for goal {goal_id}: updated={len(updates)} "
        f"deleted={task_id_to_delete or 'none'} version={goal.plan_version}"
    )

    return CommitReceipt(
        goal_id=goal_id,
        updated_count=len(updates),
        deleted_task_id=task_id_to_delete,
        plan_version=goal.plan_version,
    )
