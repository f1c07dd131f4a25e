"""Pydantic schemas for the admin audit path."""

import uuid
from typing import Literal, Optional

from pydantic import BaseModel

from tasktrack.schemas.task import TaskRead


class OwnerSummary(BaseModel):
    id: uuid.UUID
    name: Optional[str]
    email: str
    role: str

    model_config = {"from_attributes": True}


class AdminTaskRead(TaskRead):
    owner: OwnerSummary


class RoleChange(BaseModel):
    role: Literal["user", "admin"]


class DeletedUser(BaseModel):
    id: uuid.UUID
    email: str
    name: Optional[str]
    tasks_deleted: int


class UserCounts(BaseModel):
    total: int


class TaskCounts(BaseModel):
    total: int
    completed: int
    pending: int
    completion_rate: str  # "66.67%"


class SystemStats(BaseModel):
    users: UserCounts
    tasks: TaskCounts
