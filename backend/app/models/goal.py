import uuid
from datetime import datetime
from typing import TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship

if TYPE_CHECKING:
    from app.models.task import Task


class Goal(SQLModel, table=True):
    """
    Goal model - owns one timeline of tasks.

    plan_version increments on every committed plan update and is the
    optimistic-concurrency token between computing a batch and applying it.
    """

    __tablename__ = "goals"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_id: str = Field(index=True)
    title: str = Field(index=True)
    description: str | None = Field(default=None)
    plan_version: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tasks: list["Task"] = Relationship(
        back_populates="goal",
        sa_relationship_kwargs={"passive_deletes": True},
    )
