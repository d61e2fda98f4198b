"""
Goal routes for the Living Plan API.
"""

import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.auth import AuthenticatedUser, get_current_user
from app.database import get_session
from app.models import Goal, Task
from app.schemas import GoalCreate, GoalUpdate, GoalRead, GoalTimeline, TaskRead
from app.services.timeline import get_owned_goal, order_timeline, TimelineTask
from app.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=GoalRead, status_code=status.HTTP_201_CREATED)
async def create_goal(
    goal_in: GoalCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Goal:
    """Create a new goal owned by the caller."""
    goal = Goal(**goal_in.model_dump(), owner_id=user.uid)
    session.add(goal)
    await session.flush()
    await session.refresh(goal)

    logger.info(f"Created goal: id={goal.id} title='{goal.title}' owner={user.uid}")

    return goal


@router.get("/", response_model=list[GoalRead])
async def list_goals(
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[Goal]:
    """List the caller's goals."""
    result = await session.execute(select(Goal).where(Goal.owner_id == user.uid))
    goals = list(result.scalars().all())

    logger.debug(f"Listed {len(goals)} goals for owner={user.uid}")

    return goals


@router.get("/{goal_id}", response_model=GoalRead)
async def get_goal(
    goal_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Goal:
    """Get a goal by ID."""
    return await get_owned_goal(session, goal_id, user.uid)


@router.get("/{goal_id}/timeline", response_model=GoalTimeline)
async def get_goal_timeline(
    goal_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> GoalTimeline:
    """Get a goal and its tasks ordered by effective start date."""
    goal = await get_owned_goal(session, goal_id, user.uid)

    result = await session.execute(select(Task).where(Task.goal_id == goal_id))
    rows = {task.id: task for task in result.scalars().all()}
    ordered = order_timeline(TimelineTask.from_model(task) for task in rows.values())

    return GoalTimeline(
        goal=GoalRead.model_validate(goal),
        tasks=[TaskRead.model_validate(rows[entry.id]) for entry in ordered],
    )


@router.patch("/{goal_id}", response_model=GoalRead)
async def update_goal(
    goal_id: uuid.UUID,
    goal_in: GoalUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Goal:
    """Update a goal."""
    goal = await get_owned_goal(session, goal_id, user.uid)

    update_data = goal_in.model_dump(exclude_unset=True)

    logger.info(f"Updating goal {goal_id}: {update_data}")

    for field, value in update_data.items():
        setattr(goal, field, value)

    goal.updated_at = datetime.utcnow()
    await session.flush()
    await session.refresh(goal)
    return goal


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(
    goal_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    """Delete a goal and all its tasks."""
    goal = await get_owned_goal(session, goal_id, user.uid)

    logger.info(f"Deleting goal {goal_id}: '{goal.title}'")

    await session.execute(delete(Task).where(Task.goal_id == goal_id))
    await session.delete(goal)
