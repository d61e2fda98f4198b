"""
Living Plan - goal timeline rescheduling with anchored tasks and conflict detection.
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager

from app.config import get_settings
from app.database import init_db
from app.routes import goals, tasks, plan
from app.exceptions import register_exception_handlers
from app.logging_config import setup_logging, get_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting Living Plan API...")
    await init_db()
    logger.info(f"Database initialized (calendar model: {get_settings().schedule_calendar.value})")
    yield
    logger.info("Shutting down Living Plan API...")


app = FastAPI(
    title=get_settings().app_name,
    description="Goal timeline rescheduling with anchored tasks and conflict detection",
    version="0.1.0",
    lifespan=lifespan,
)

# Register custom exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(goals.router, prefix="/goals", tags=["Goals"])
app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
app.include_router(plan.router, prefix="/plan", tags=["Living Plan"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
