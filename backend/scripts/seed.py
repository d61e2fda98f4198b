#!/usr/bin/env python3
"""
Seed script to generate a demo goal timeline.

Generates a goal with a sequential chain of tasks:
- Durations between 4 and 24 hours
- Small gaps between tasks
- Every Nth task anchored (fixed date)
- A few completed tasks at the start

Usage:
    python -m scripts.seed [--tasks 50] [--owner demo-user] [--clear]

Options:
    --tasks N        Number of tasks to generate (default: 50)
    --owner UID      Firebase uid that owns the goal (default: demo-user)
    --anchor-every N Anchor every Nth task (default: 10, 0 disables)
    --clear          Clear existing data before seeding
    --benchmark      Time a reschedule preview of the first open task
"""

import argparse
import asyncio
import random
import time
import uuid
from datetime import date, timedelta

from sqlalchemy import delete, func
from sqlmodel import select

from app.config import get_settings
from app.database import async_session_maker, get_session_context, init_db
from app.models import Goal, Task, TaskStatus
from app.services.living_plan import RescheduleStatus, plan_reschedule
from app.services.timeline import load_goal_timeline
from app.services.workdays import duration_in_days


async def clear_data():
    """Clear all existing data."""
    print("Clearing existing data...")
    async with get_session_context() as session:
        await session.execute(delete(Task))
        await session.execute(delete(Goal))
    print("Data cleared.")


async def create_goal(title: str, owner_id: str) -> Goal:
    """Create the goal that owns the generated timeline."""
    async with async_session_maker() as session:
        goal = Goal(title=title, owner_id=owner_id, description="Generated demo timeline")
        session.add(goal)
        await session.commit()
        await session.refresh(goal)
        return goal


def generate_timeline(
    goal_id: uuid.UUID,
    num_tasks: int = 50,
    anchor_every: int = 10,
    start: date = date(2025, 1, 6),
) -> list[Task]:
    """
    Generate a sequential timeline.

    Tasks follow each other with a 0-2 day gap. Anchored tasks are placed
    like any other; they simply refuse to move later.
    """
    tasks = []
    cursor = start
    completed = min(3, num_tasks // 10)

    print(f"Generating {num_tasks} tasks (anchor every {anchor_every or 'never'})...")

    for i in range(num_tasks):
        hours = random.choice([4, 8, 8, 12, 16, 24])
        days = duration_in_days(hours)
        anchored = anchor_every > 0 and i > 0 and i % anchor_every == 0

        tasks.append(Task(
            title=f"{'Milestone' if anchored else 'Step'} {i + 1:03d}",
            description=f"Generated task {i + 1}",
            start_date=cursor,
            end_date=cursor + timedelta(days=days),
            duration_hours=hours,
            is_anchored=anchored,
            status=TaskStatus.COMPLETED if i < completed else TaskStatus.PENDING,
            goal_id=goal_id,
        ))
        cursor += timedelta(days=days + random.randint(0, 2))

    return tasks


async def insert_batch(tasks: list[Task]):
    """Insert tasks in batches for performance."""
    async with async_session_maker() as session:
        batch_size = 100

        print(f"Inserting {len(tasks)} tasks...")
        for i in range(0, len(tasks), batch_size):
            session.add_all(tasks[i:i + batch_size])
            await session.flush()
            if (i + batch_size) % 500 == 0:
                print(f"  Inserted {min(i + batch_size, len(tasks))} tasks...")

        await session.commit()


async def run_benchmark(goal_id: uuid.UUID):
    """Time a one-week reschedule preview of the first open task."""
    async with async_session_maker() as session:
        timeline = await load_goal_timeline(session, goal_id)

    first_open = next((task for task in timeline if not task.is_completed), None)
    if first_open is None:
        print("No open tasks found!")
        return

    print(f"\n=== Benchmark: Moving {first_open.title} one week later ===")

    start_time = time.time()
    outcome = plan_reschedule(
        timeline,
        first_open.id,
        first_open.effective_anchor_date() + timedelta(days=7),
        get_settings().schedule_calendar,
    )
    elapsed = time.time() - start_time

    print(f"Preview time: {elapsed * 1000:.2f}ms")
    print(f"Tasks moved:  {len(outcome.updated_tasks)}")
    if outcome.status == RescheduleStatus.CONFLICT:
        print(f"Conflict:     {outcome.message}")


async def get_stats(goal_id: uuid.UUID):
    """Get statistics about the generated timeline."""
    async with async_session_maker() as session:
        total = (await session.execute(
            select(func.count()).select_from(Task).where(Task.goal_id == goal_id)
        )).scalar()
        anchored = (await session.execute(
            select(func.count()).select_from(Task).where(Task.goal_id == goal_id, Task.is_anchored)
        )).scalar()
        first, last = (await session.execute(
            select(func.min(Task.start_date), func.max(Task.end_date)).where(Task.goal_id == goal_id)
        )).one()

        print(f"\n=== Timeline Statistics ===")
        print(f"Tasks:    {total}")
        print(f"Anchored: {anchored}")
        print(f"Span:     {first} -> {last}")


async def main():
    parser = argparse.ArgumentParser(description="Seed the database with a demo goal timeline")
    parser.add_argument("--tasks", type=int, default=50, help="Number of tasks to create")
    parser.add_argument("--owner", type=str, default="demo-user", help="Owner uid of the goal")
    parser.add_argument("--goal", type=str, default="Demo Goal", help="Goal title")
    parser.add_argument("--anchor-every", type=int, default=10, help="Anchor every Nth task")
    parser.add_argument("--clear", action="store_true", help="Clear existing data first")
    parser.add_argument("--benchmark", action="store_true", help="Time a reschedule preview after seeding")

    args = parser.parse_args()

    print(f"=== Living Plan Seed Script ===")

    await init_db()

    if args.clear:
        await clear_data()

    goal = await create_goal(args.goal, args.owner)
    print(f"Created goal: {goal.title} ({goal.id}) for {args.owner}")

    start_time = time.time()
    tasks = generate_timeline(goal.id, args.tasks, args.anchor_every)
    await insert_batch(tasks)
    print(f"Insert time: {time.time() - start_time:.2f}s")

    await get_stats(goal.id)

    if args.benchmark:
        await run_benchmark(goal.id)

    print(f"\n=== Seeding Complete ===")
    print(f"Goal ID: {goal.id}")


if __name__ == "__main__":
    asyncio.run(main())
