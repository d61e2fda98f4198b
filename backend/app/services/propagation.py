"""
Tidal-wave propagation over a goal's timeline.

When a task moves (or is deleted) everything scheduled at or after its old
slot is presumed to need re-timing: that is the tidal wave. The wave stops at
the first anchored task (the wall). Tasks before the wall move by the same
number of days; the wall and everything after it stay where they are.

    downstream = [t1, t2, W, t3, A2]
                  movable  ^  blocked
                          wall

Everything here is pure and synchronous. Nothing is written; the result is a
list of absolute date assignments for the commit gateway.
"""

import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence

from app.config import CalendarModel
from app.exceptions import NotFoundError, PropagationError, ValidationError
from app.logging_config import get_logger
from app.services.timeline import TimelineTask, order_timeline
from app.services.workdays import derive_end_date, duration_in_days

logger = get_logger(__name__)


@dataclass(frozen=True)
class TaskDateUpdate:
    """New absolute dates for one task."""
    task_id: uuid.UUID
    new_start_date: date
    new_end_date: date


@dataclass(frozen=True)
class TidalWave:
    """
    The downstream set of a trigger, partitioned around the wall.

    Invariants (checked on construction):
    - no movable task is anchored
    - the wall, if any, is anchored and follows every movable task
    - there are no blocked tasks without a wall
    """
    movable: tuple[TimelineTask, ...] = ()
    wall: TimelineTask | None = None
    blocked: tuple[TimelineTask, ...] = ()

    def __post_init__(self):
        if any(task.is_anchored for task in self.movable):
            raise PropagationError("Anchored task found in the movable part of the wave")
        if self.wall is None:
            if self.blocked:
                raise PropagationError("Blocked tasks found in a wave without a wall")
            return
        if not self.wall.is_anchored:
            raise PropagationError("Wall task is not anchored", task_id=str(self.wall.id))
        if self.movable and self.movable[-1].sort_key() >= self.wall.sort_key():
            raise PropagationError("Movable task does not precede the wall", task_id=str(self.wall.id))

    @property
    def anchored_tasks(self) -> list[TimelineTask]:
        """The wall plus any further anchored tasks behind it."""
        if self.wall is None:
            return []
        return [self.wall] + [task for task in self.blocked if task.is_anchored]


@dataclass(frozen=True)
class Propagation:
    """Result of moving one task: the trigger comes first in `updates`."""
    trigger: TimelineTask
    shift_days: int
    wave: TidalWave
    updates: tuple[TaskDateUpdate, ...]

    def update_for(self, task_id: uuid.UUID) -> TaskDateUpdate | None:
        return next((u for u in self.updates if u.task_id == task_id), None)


@dataclass(frozen=True)
class DeletePropagation(Propagation):
    """Result of deleting one task: `updates` holds movable tasks only."""
    time_saved_days: int


def find_task(tasks: Iterable[TimelineTask], task_id: uuid.UUID) -> TimelineTask:
    for task in tasks:
        if task.id == task_id:
            return task
    raise NotFoundError("Task", str(task_id))


def goal_scope(tasks: Iterable[TimelineTask], goal_id: uuid.UUID) -> list[TimelineTask]:
    """Open tasks of one goal in timeline order. Completed tasks never move."""
    return order_timeline(
        task for task in tasks
        if task.goal_id == goal_id and not task.is_completed
    )


def select_downstream(
    timeline: Sequence[TimelineTask],
    trigger: TimelineTask,
    inclusive: bool = True,
) -> list[TimelineTask]:
    """
    Tasks anchored at or after the trigger's original slot.

    With inclusive=False only tasks strictly after the trigger's date are
    selected (used on delete, so same-day tasks are not pulled forward).
    """
    origin = trigger.effective_anchor_date()
    downstream = []
    for task in timeline:
        if task.id == trigger.id:
            continue
        anchor = task.effective_anchor_date()
        if anchor > origin or (inclusive and anchor == origin):
            downstream.append(task)
    return downstream


def split_at_wall(downstream: Sequence[TimelineTask]) -> TidalWave:
    """Partition an ordered downstream set at its first anchored task."""
    for index, task in enumerate(downstream):
        if task.is_anchored:
            return TidalWave(
                movable=tuple(downstream[:index]),
                wall=task,
                blocked=tuple(downstream[index + 1:]),
            )
    return TidalWave(movable=tuple(downstream))


def shift_task(
    task: TimelineTask,
    shift_days: int,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> TaskDateUpdate:
    """Move a task by a number of days, keeping an explicit end or re-deriving it."""
    delta = timedelta(days=shift_days)
    new_start = task.effective_anchor_date() + delta
    if task.end_date is not None:
        # undated tasks sit at created_at, which may be after their end date
        new_end = max(task.end_date + delta, new_start)
    else:
        new_end = derive_end_date(new_start, task.duration_hours, calendar)
    return TaskDateUpdate(task_id=task.id, new_start_date=new_start, new_end_date=new_end)


def _trigger_end_date(
    trigger: TimelineTask,
    new_start: date,
    shift_days: int,
    calendar: CalendarModel,
) -> date:
    if duration_in_days(trigger.duration_hours) > 0:
        return derive_end_date(new_start, trigger.duration_hours, calendar)
    if trigger.end_date is not None:
        return max(trigger.end_date + timedelta(days=shift_days), new_start)
    return new_start


def time_saved_days(task: TimelineTask) -> int:
    """How many days removing a task frees up on the timeline."""
    if task.start_date is not None and task.end_date is not None:
        return max((task.end_date - task.start_date).days, 0)
    days = duration_in_days(task.duration_hours)
    return days if days > 0 else 1


def propagate_move(
    tasks: Sequence[TimelineTask],
    task_id: uuid.UUID,
    new_start_date: date,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> Propagation:
    """
    Move one task to a new start date and shift its wave with it.

    `tasks` may hold any tasks; only those of the trigger's goal are
    considered.
    """
    trigger = find_task(tasks, task_id)
    if trigger.is_completed:
        raise ValidationError(
            "Completed tasks cannot be rescheduled",
            details=[{"loc": ["body", "taskId"], "msg": f"Task {task_id} is completed", "type": "task_completed"}],
        )

    timeline = goal_scope(tasks, trigger.goal_id)
    shift_days = (new_start_date - trigger.effective_anchor_date()).days

    wave = split_at_wall(select_downstream(timeline, trigger, inclusive=True))
    logger.debug(
        f"Wave for task {str(task_id)[:8]}: shift={shift_days}d "
        f"movable={len(wave.movable)} wall={wave.wall.id if wave.wall else 'none'} "
        f"blocked={len(wave.blocked)}"
    )

    updates = [
        TaskDateUpdate(
            task_id=trigger.id,
            new_start_date=new_start_date,
            new_end_date=_trigger_end_date(trigger, new_start_date, shift_days, calendar),
        )
    ]
    updates.extend(shift_task(task, shift_days, calendar) for task in wave.movable)

    return Propagation(
        trigger=trigger,
        shift_days=shift_days,
        wave=wave,
        updates=tuple(updates),
    )


def propagate_delete(
    tasks: Sequence[TimelineTask],
    task_id: uuid.UUID,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> DeletePropagation:
    """
    Remove one task and pull its wave forward to close the gap.

    The deleted task itself gets no update; the commit gateway deletes it.
    """
    deleted = find_task(tasks, task_id)
    timeline = goal_scope(tasks, deleted.goal_id)
    saved = time_saved_days(deleted)

    wave = split_at_wall(select_downstream(timeline, deleted, inclusive=False))
    logger.debug(
        f"Delete wave for task {str(task_id)[:8]}: saved={saved}d "
        f"movable={len(wave.movable)} wall={wave.wall.id if wave.wall else 'none'}"
    )

    return DeletePropagation(
        trigger=deleted,
        shift_days=-saved,
        wave=wave,
        updates=tuple(shift_task(task, -saved, calendar) for task in wave.movable),
        time_saved_days=saved,
    )
