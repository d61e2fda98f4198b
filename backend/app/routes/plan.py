"""
Living plan routes: reschedule preview, delete-and-refactor preview, commit.

The two preview endpoints never write. The client shows their result, the
user accepts (possibly overriding a conflict), and the accepted batch is
posted to /plan/commit.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthenticatedUser, get_current_user
from app.config import get_settings
from app.database import get_session
from app.schemas import (
    CommitRequest,
    CommitResponse,
    DeleteAndRefactorRequest,
    DeleteAndRefactorResponse,
    RescheduleRequest,
    RescheduleResponse,
)
from app.schemas.plan import AnchoredBarrier, ConflictInfo, TaskDateChange
from app.services.commit import apply_plan_update
from app.services.living_plan import preview_delete, preview_reschedule
from app.services.propagation import TaskDateUpdate
from app.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _to_change(update: TaskDateUpdate) -> TaskDateChange:
    return TaskDateChange(
        task_id=update.task_id,
        new_start_date=update.new_start_date,
        new_end_date=update.new_end_date,
    )


@router.post("/reschedule", response_model=RescheduleResponse)
async def reschedule_task(
    request: RescheduleRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RescheduleResponse:
    """
    Calculate the effect of moving a task to a new start date.

    Returns status "reschedule_conflict" (HTTP 200) when the moved wave runs
    into an anchored task; the updates are still included.
    """
    outcome = await preview_reschedule(
        session,
        user.uid,
        request.task_id,
        request.new_start_date,
        get_settings().schedule_calendar,
    )

    conflict_info = None
    if outcome.conflict is not None:
        conflict_info = ConflictInfo(
            compression_needed=outcome.conflict.compression_needed,
            anchored_task_id=outcome.conflict.anchored_task_id,
            anchored_task_title=outcome.conflict.anchored_task_title,
        )

    return RescheduleResponse(
        status=outcome.status.value,
        goal_id=outcome.goal_id,
        plan_version=outcome.plan_version,
        updated_tasks=[_to_change(update) for update in outcome.updated_tasks],
        time_shift_in_days=outcome.time_shift_in_days,
        conflict_info=conflict_info,
        message=outcome.message,
    )


@router.post("/delete-and-refactor", response_model=DeleteAndRefactorResponse)
async def delete_and_refactor(
    request: DeleteAndRefactorRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DeleteAndRefactorResponse:
    """
    Calculate the effect of deleting a task and pulling later tasks forward.

    Returns status "dependency_conflict" (HTTP 200) with dependencyIssues when
    the deletion affects anchored tasks or pushes work into the past.
    """
    outcome = await preview_delete(
        session,
        user.uid,
        request.task_id_to_delete,
        calendar=get_settings().schedule_calendar,
    )

    return DeleteAndRefactorResponse(
        status=outcome.status.value,
        goal_id=outcome.goal_id,
        plan_version=outcome.plan_version,
        task_id_to_delete=outcome.task_id_to_delete,
        updated_tasks=[_to_change(update) for update in outcome.updated_tasks],
        time_saved_in_days=outcome.time_saved_in_days,
        dependency_issues=outcome.dependency_issues,
        anchored_barriers=[
            AnchoredBarrier(id=task.id, title=task.title, start_date=task.start_date)
            for task in outcome.anchored_barriers
        ],
        message=outcome.message,
    )


@router.post("/commit", response_model=CommitResponse)
async def commit_plan_update(
    request: CommitRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CommitResponse:
    """
    Apply an accepted batch of date updates and an optional deletion.

    All-or-nothing: any error leaves every task as it was.
    """
    updates = [
        TaskDateUpdate(
            task_id=change.task_id,
            new_start_date=change.new_start_date,
            new_end_date=change.new_end_date,
        )
        for change in request.tasks_to_update or []
    ]

    receipt = await apply_plan_update(
        session,
        user.uid,
        updates,
        task_id_to_delete=request.task_id_to_delete,
        expected_plan_version=request.expected_plan_version,
    )

    return CommitResponse(
        success=True,
        goal_id=receipt.goal_id,
        updated_count=receipt.updated_count,
        deleted_task_id=receipt.deleted_task_id,
        plan_version=receipt.plan_version,
    )
