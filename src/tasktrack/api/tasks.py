"""Task API routes.

Learn: These routes are the HTTP interface to the ownership-scoped task
service. The service does the scoping; routes just translate HTTP to
service calls. Every route here depends on get_current_principal, so a
TaskService always exists for exactly one authenticated owner.

Key patterns:
- POST for creation, PUT for partial updates (only sent keys apply)
- /tasks/stats is declared before /tasks/{task_id} so it is not read as an id
- Query params for filtering (completed, limit, offset)
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.api.upload import store_image
from tasktrack.auth.dependencies import get_app_settings, get_current_principal
from tasktrack.config import Settings
from tasktrack.db.engine import get_db
from tasktrack.db.models import User
from tasktrack.schemas.common import Envelope
from tasktrack.schemas.task import TaskCreate, TaskRead, TaskStats, TaskUpdate
from tasktrack.services.task_service import TaskService

router = APIRouter()


def _task_svc(
    settings: Settings = Depends(get_app_settings),
    db: AsyncSession = Depends(get_db),
    principal: User = Depends(get_current_principal),
) -> TaskService:
    return TaskService(db, principal, timeout=settings.store_timeout_seconds)


@router.post(
    "/tasks",
    response_model=Envelope[TaskRead],
    response_model_exclude_unset=True,
    status_code=201,
)
async def create_task(body: TaskCreate, svc: TaskService = Depends(_task_svc)):
    """Create a task owned by the caller."""
    task = await svc.create_task(
        title=body.title,
        description=body.description,
        cost=body.cost,
        hours_estimated=body.hours_estimated,
        image=body.image,
    )
    return Envelope(message="Task created successfully", data=TaskRead.model_validate(task))


@router.get(
    "/tasks", response_model=Envelope[list[TaskRead]], response_model_exclude_unset=True
)
async def list_tasks(
    completed: Optional[bool] = Query(None, description="Filter by completion"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    svc: TaskService = Depends(_task_svc),
):
    """List the caller's tasks, newest first."""
    tasks = await svc.list_tasks(completed=completed, limit=limit, offset=offset)
    return Envelope(count=len(tasks), data=[TaskRead.model_validate(t) for t in tasks])


@router.get(
    "/tasks/stats", response_model=Envelope[TaskStats], response_model_exclude_unset=True
)
async def task_stats(svc: TaskService = Depends(_task_svc)):
    """Totals and averages over the caller's tasks only."""
    return Envelope(data=TaskStats(**await svc.stats()))


@router.get(
    "/tasks/{task_id}", response_model=Envelope[TaskRead], response_model_exclude_unset=True
)
async def get_task(task_id: str, svc: TaskService = Depends(_task_svc)):
    """Get a single owned task (404 for anyone else's)."""
    task = await svc.get_task(task_id)
    return Envelope(data=TaskRead.model_validate(task))


@router.put(
    "/tasks/{task_id}", response_model=Envelope[TaskRead], response_model_exclude_unset=True
)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    svc: TaskService = Depends(_task_svc),
):
    """Partially update an owned task.

    Learn: Marking a task completed stamps finished_at once; later
    updates never move it.
    """
    task = await svc.update_task(task_id, body.model_dump(exclude_unset=True))
    return Envelope(message="Task updated successfully", data=TaskRead.model_validate(task))


@router.delete(
    "/tasks/{task_id}", response_model=Envelope[TaskRead], response_model_exclude_unset=True
)
async def delete_task(task_id: str, svc: TaskService = Depends(_task_svc)):
    """Delete an owned task."""
    task = await svc.delete_task(task_id)
    return Envelope(message="Task deleted successfully", data=TaskRead.model_validate(task))


@router.post(
    "/tasks/{task_id}/image",
    response_model=Envelope[TaskRead],
    response_model_exclude_unset=True,
)
async def attach_image(
    task_id: str,
    request: Request,
    image: UploadFile = File(...),
    svc: TaskService = Depends(_task_svc),
):
    """Upload an image and store its URL on an owned task."""
    await svc.get_task(task_id)  # 404 before anything is written
    blob = await store_image(request, image)
    task = await svc.set_image(task_id, blob.url)
    return Envelope(message="Image attached successfully", data=TaskRead.model_validate(task))
