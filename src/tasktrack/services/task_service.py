"""Task service — ownership-scoped CRUD and stats.

Learn: A TaskService is built per request for one owner (the authenticated
principal) and every query it runs carries `owner_id == owner.id`:

- create stamps owner_id from the principal; the body has no say
- get/update/delete filter on (id AND owner_id), so someone else's task,
  a deleted task and a garbage id all look the same: NotFoundError (404).
  Never 403: a 403 would confirm that the id exists.
- update applies an explicit allow-list of fields, never the raw body
- finished_at is stamped the first time a task is seen completed and is
  never moved afterwards (set-once, even across true → false → true)
"""

from typing import Any, Optional

import structlog
from sqlalchemy import case, delete, func, select

from tasktrack.db.models import Task, User, utcnow
from tasktrack.errors import NotFoundError
from tasktrack.stores.base import StoreBase, parse_id

logger = structlog.get_logger()

TASK_NOT_FOUND = "Task not found"


class TaskService(StoreBase):
    """Business logic for one owner's tasks."""

    UPDATABLE_FIELDS = frozenset(
        {"title", "description", "completed", "cost", "hours_estimated", "image"}
    )

    def __init__(self, db, owner: User, timeout: float = 10.0):
        super().__init__(db, timeout=timeout)
        self.owner = owner

    def _owned(self, task_id: Any):
        """SELECT for one task, scoped to the owner. Bad ids are a miss."""
        tid = parse_id(task_id)
        if tid is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return select(Task).where(Task.id == tid, Task.owner_id == self.owner.id)

    # ─── Create ──────────────────────────────────────────

    async def create_task(
        self,
        title: str,
        description: Optional[str] = None,
        cost: float = 0,
        hours_estimated: float = 0,
        image: Optional[str] = None,
    ) -> Task:
        task = Task(
            owner_id=self.owner.id,
            title=title,
            description=description,
            cost=cost,
            hours_estimated=hours_estimated,
            image=image,
        )
        self.db.add(task)
        await self._commit()
        logger.info(
            "tasktrack.tasks.created", task_id=str(task.id), owner_id=str(self.owner.id)
        )
        return task

    # ─── Read ────────────────────────────────────────────

    async def get_task(self, task_id: Any) -> Task:
        result = await self._execute(self._owned(task_id))
        task = result.scalars().first()
        if not task:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    async def list_tasks(
        self,
        completed: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        """Owner's tasks, newest first.

        Learn: Query filters are applied conditionally — only when the
        caller provides them.
        """
        query = (
            select(Task)
            .where(Task.owner_id == self.owner.id)
            .order_by(Task.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        if completed is not None:
            query = query.where(Task.completed.is_(completed))
        result = await self._execute(query)
        return list(result.scalars().all())

    async def stats(self) -> dict:
        """Counts, sums and averages over the owner's tasks (zeros if none)."""
        q = select(
            func.count(Task.id),
            func.coalesce(func.sum(case((Task.completed.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(Task.cost), 0),
            func.coalesce(func.sum(Task.hours_estimated), 0),
            func.coalesce(func.avg(Task.cost), 0),
            func.coalesce(func.avg(Task.hours_estimated), 0),
        ).where(Task.owner_id == self.owner.id)
        total, done, cost, hours, avg_cost, avg_hours = (await self._execute(q)).one()
        return {
            "total_tasks": total,
            "completed_tasks": done,
            "pending_tasks": total - done,
            "total_cost": float(cost),
            "total_hours": float(hours),
            "average_cost": float(avg_cost),
            "average_hours": float(avg_hours),
        }

    # ─── Update ──────────────────────────────────────────

    async def update_task(self, task_id: Any, changes: dict[str, Any]) -> Task:
        """Apply allow-listed changes to an owned task."""
        task = await self.get_task(task_id)

        applied = {k: v for k, v in changes.items() if k in self.UPDATABLE_FIELDS}
        for field, value in applied.items():
            setattr(task, field, value)

        if task.completed and task.finished_at is None:
            task.finished_at = utcnow()

        await self._commit()
        logger.info(
            "tasktrack.tasks.updated", task_id=str(task.id), fields=sorted(applied)
        )
        return task

    async def set_image(self, task_id: Any, url: str) -> Task:
        return await self.update_task(task_id, {"image": url})

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(self, task_id: Any) -> Task:
        task = await self.get_task(task_id)
        result = await self._execute(
            delete(Task).where(Task.id == task.id, Task.owner_id == self.owner.id)
        )
        if result.rowcount != 1:
            await self._rollback()
            raise NotFoundError(TASK_NOT_FOUND)
        await self._commit()
        logger.info("tasktrack.tasks.deleted", task_id=str(task.id))
        return task
