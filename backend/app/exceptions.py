"""
Structured exceptions and error responses for Living Plan.

Provides consistent error handling across the API with:
- Custom exception classes
- Structured error response format
- FastAPI exception handlers

Schedule conflicts are NOT exceptions. A reschedule that hits an anchored
task is a normal result with status "reschedule_conflict".
"""

from typing import Any, Dict, Optional, List
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None  # Location of error (e.g., ["body", "taskId"])
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    status: str = "error"
    error: str  # Error code (e.g., "not_found", "stale_plan")
    message: str  # Human-readable message
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class LivingPlanException(Exception):
    """Base exception for all Living Plan errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(LivingPlanException):
    """Resource not found (or not owned by the caller)."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(LivingPlanException):
    """Request validation error."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class StalePlanError(LivingPlanException):
    """The goal changed between computing a batch and committing it."""

    def __init__(self, goal_id: str, expected_version: int, actual_version: int):
        super().__init__(
            message="The plan changed since this update was calculated; recalculate and try again",
            error_code="stale_plan",
            status_code=status.HTTP_409_CONFLICT,
            details=[{
                "loc": ["body", "expectedPlanVersion"],
                "msg": f"Goal {goal_id} is at version {actual_version}, expected {expected_version}",
                "type": "version_mismatch",
            }],
        )
        self.goal_id = goal_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class StorageError(LivingPlanException):
    """Reading from or writing to the task store failed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="storage_error",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


class PropagationError(LivingPlanException):
    """The timeline could not be propagated (broken partition)."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="propagation_error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        self.task_id = task_id


# =============================================================================
# Exception Handlers
# =============================================================================

async def living_plan_exception_handler(request: Request, exc: LivingPlanException) -> JSONResponse:
    """Handle LivingPlanException and return structured response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error",
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed requests (missing taskId, bad dates) in the same shape."""
    details = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg", ""),
            "type": err.get("type", "value_error"),
        }
        for err in exc.errors()
    ]
    logger.warning(f"Rejected malformed request to {request.url.path}: {len(details)} error(s)")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({
            "status": "error",
            "error": "validation_error",
            "message": "Request validation failed",
            "details": details,
        }),
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(LivingPlanException, living_plan_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
