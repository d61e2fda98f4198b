"""
Conflict detection for propagated waves.

A reschedule conflicts when the last movable task's new end date reaches the
wall's start date. Conflicts are results, not errors: the computed updates
are still returned so the caller can offer to compress, extend or cancel.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from app.config import CalendarModel
from app.logging_config import get_logger
from app.services.propagation import DeletePropagation, Propagation
from app.services.timeline import TimelineTask
from app.services.workdays import derive_end_date

logger = get_logger(__name__)

# A task ending on the day the wall starts collides with it.
WALL_TOUCH_IS_CONFLICT = True


@dataclass(frozen=True)
class WallConflict:
    """How far the wave runs into the wall, in whole days."""
    compression_needed: int
    anchored_task_id: uuid.UUID
    anchored_task_title: str
    last_moved_task_id: uuid.UUID


def collides(end_date: date, next_start_date: date) -> bool:
    """Whether something ending on `end_date` runs into something starting on `next_start_date`."""
    if WALL_TOUCH_IS_CONFLICT:
        return end_date >= next_start_date
    return end_date > next_start_date


def detect_wall_conflict(propagation: Propagation) -> WallConflict | None:
    """
    Check the moved wave against its wall.

    compression_needed = last_end - wall_start in days, so a wave that just
    touches the wall reports a conflict with 0 days of compression.
    """
    wave = propagation.wave
    if wave.wall is None or not wave.movable:
        return None

    last_task = wave.movable[-1]
    update = propagation.update_for(last_task.id)
    if update is None:
        return None

    wall_start = wave.wall.effective_anchor_date()
    if not collides(update.new_end_date, wall_start):
        return None

    compression = (update.new_end_date - wall_start).days
    logger.debug(
        f"Wave ends {update.new_end_date} against wall {wave.wall.id} starting {wall_start}: "
        f"{compression} day(s) of compression needed"
    )
    return WallConflict(
        compression_needed=compression,
        anchored_task_id=wave.wall.id,
        anchored_task_title=wave.wall.title,
        last_moved_task_id=last_task.id,
    )


def _end_of(task: TimelineTask, calendar: CalendarModel) -> date:
    if task.end_date is not None:
        return task.end_date
    return derive_end_date(task.effective_anchor_date(), task.duration_hours, calendar)


def find_dependency_issues(
    timeline: Sequence[TimelineTask],
    propagation: DeletePropagation,
    today: date,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> list[str]:
    """
    Warnings about what a deletion does to anchored tasks and the calendar.

    Reports:
    - deleting an anchored task (its fixed date leaves the plan)
    - a pulled-forward task newly overlapping an anchored task before the gap
    - a pulled-forward task newly landing in the past
    """
    issues: list[str] = []
    deleted = propagation.trigger
    moved = {task.id: task for task in propagation.wave.movable}

    if deleted.is_anchored:
        issues.append(f'Task "{deleted.title}" is anchored; deleting it removes a fixed date from the plan')

    origin = deleted.effective_anchor_date()
    upstream_anchors = [
        task for task in timeline
        if task.is_anchored
        and task.id != deleted.id
        and task.goal_id == deleted.goal_id
        and task.effective_anchor_date() <= origin
    ]

    for update in propagation.updates:
        task = moved.get(update.task_id)
        if task is None:
            continue
        old_start = task.effective_anchor_date()

        for anchor in upstream_anchors:
            anchor_start = anchor.effective_anchor_date()
            anchor_end = _end_of(anchor, calendar)
            overlaps_now = (
                collides(anchor_end, update.new_start_date)
                and collides(update.new_end_date, anchor_start)
            )
            overlapped_before = collides(anchor_end, old_start)
            if overlaps_now and not overlapped_before:
                issues.append(
                    f'Task "{task.title}" would overlap anchored task "{anchor.title}" '
                    f"(new start {update.new_start_date.isoformat()})"
                )
                break

        if update.new_start_date < today <= old_start:
            issues.append(
                f'Task "{task.title}" would be scheduled in the past ({update.new_start_date.isoformat()})'
            )

    return issues
