"""Pydantic schemas for tasks.

Learn: Separate schemas for create/update/read keeps the API clean.
- TaskCreate: what you POST to create a task (no owner field: the owner is
  always the caller, and unknown keys such as "owner_id" are dropped)
- TaskUpdate: what you PUT to modify a task (all optional, only sent keys apply)
- TaskRead: what the API returns
- TaskStats: aggregates over the caller's own tasks
"""

import uuid
from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator

from tasktrack.schemas.common import UtcDatetime

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]


class TaskCreate(BaseModel):
    title: Title
    description: Optional[Description] = None
    cost: float = Field(default=0, ge=0)
    hours_estimated: float = Field(default=0, ge=0)
    image: Optional[str] = Field(None, max_length=1024)


class TaskUpdate(BaseModel):
    """Partial update — only keys present in the body are applied."""

    title: Optional[Title] = None
    description: Optional[Description] = None
    completed: Optional[bool] = None
    cost: Optional[float] = Field(None, ge=0)
    hours_estimated: Optional[float] = Field(None, ge=0)
    image: Optional[str] = Field(None, max_length=1024)

    @field_validator("title", "completed", "cost", "hours_estimated", mode="before")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class TaskRead(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: Optional[str]
    completed: bool
    cost: float
    hours_estimated: float
    finished_at: Optional[UtcDatetime]
    image: Optional[str]
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}


class TaskStats(BaseModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    pending_tasks: int = 0
    total_cost: float = 0
    total_hours: float = 0
    average_cost: float = 0
    average_hours: float = 0
