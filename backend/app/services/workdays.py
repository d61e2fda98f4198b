"""
Workday-aware date arithmetic.

All calculations happen on UTC calendar dates so the result never depends on
the server's local timezone. Counting is inclusive: workday 1 starting from a
workday is that same day, and a weekend start first snaps to the following
Monday.
"""

import math
from datetime import date, datetime, timedelta, timezone

from app.config import CalendarModel

HOURS_PER_DAY = 8

SATURDAY = 5
SUNDAY = 6


def to_utc_date(value: date | datetime) -> date:
    """Calendar date of a value in UTC. Naive datetimes are taken as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def is_weekend(day: date | datetime) -> bool:
    return to_utc_date(day).weekday() in (SATURDAY, SUNDAY)


def add_workdays_inclusive(start: date | datetime, workdays: int) -> date:
    """
    Date on which the given number of workdays is reached, counting `start`.

        add_workdays_inclusive(Monday, 1)   -> Monday
        add_workdays_inclusive(Friday, 2)   -> next Monday
        add_workdays_inclusive(Saturday, 1) -> next Monday
    """
    day = to_utc_date(start)

    # Advance to next workday if starting on weekend
    while is_weekend(day):
        day += timedelta(days=1)

    if workdays <= 1:
        return day

    remaining = workdays - 1
    while remaining > 0:
        day += timedelta(days=1)
        if not is_weekend(day):
            remaining -= 1
    return day


def duration_in_days(duration_hours: float | None) -> int:
    """Whole days of effort at 8 hours per day (ceiling); 0 if unknown."""
    if not duration_hours or duration_hours <= 0:
        return 0
    return math.ceil(duration_hours / HOURS_PER_DAY)


def derive_end_date(
    start: date,
    duration_hours: float | None,
    calendar: CalendarModel = CalendarModel.CALENDAR_DAYS,
) -> date:
    """
    End date of a task from its start and effort.

    calendar_days: start + ceil(hours / 8) days.
    workdays:      the same number of days counted on workdays only.
    Without a usable duration the task is a single day (end == start).
    """
    days = duration_in_days(duration_hours)
    if days == 0:
        return start
    if calendar == CalendarModel.WORKDAYS:
        return add_workdays_inclusive(start, days + 1)
    return start + timedelta(days=days)
