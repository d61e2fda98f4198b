"""
Task routes for the Living Plan API.

Plain CRUD. Date changes are not made here: they go through the living plan
preview endpoints and the commit gateway.
"""

import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.auth import AuthenticatedUser, get_current_user
from app.database import get_session
from app.models import Goal, Task
from app.schemas import TaskCreate, TaskUpdate, TaskRead
from app.services.timeline import get_owned_goal, get_owned_task
from app.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Task:
    """
    Create a new task.

    If end_date is omitted it stays empty; the timeline derives it from
    duration_hours when the task is next moved.
    """
    await get_owned_goal(session, task_in.goal_id, user.uid)

    task = Task(**task_in.model_dump())
    session.add(task)
    await session.flush()
    await session.refresh(task)

    logger.info(f"Created task: id={task.id} title='{task.title}' goal={task.goal_id}")

    return task


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    goal_id: uuid.UUID | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[Task]:
    """
    List the caller's tasks.

    Optionally filter by goal_id.
    """
    query = select(Task).join(Goal, Goal.id == Task.goal_id).where(Goal.owner_id == user.uid)
    if goal_id:
        query = query.where(Task.goal_id == goal_id)

    result = await session.execute(query)
    tasks = list(result.scalars().all())

    logger.debug(f"Listed {len(tasks)} tasks" + (f" for goal={goal_id}" if goal_id else ""))

    return tasks


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Task:
    """Get a task by ID."""
    return await get_owned_task(session, task_id, user.uid)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Task:
    """Update a task's details, anchoring or status."""
    task = await get_owned_task(session, task_id, user.uid)

    update_data = task_in.model_dump(exclude_unset=True)

    logger.info(f"Updating task {task_id}: {update_data}")

    for field, value in update_data.items():
        setattr(task, field, value)

    task.updated_at = datetime.utcnow()

    await session.flush()
    await session.refresh(task)
    return task
