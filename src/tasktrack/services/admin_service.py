"""Admin audit service — unscoped access to every user and task.

Learn: Reaching this service requires the admin role (require_admin runs
before the route handler). Ownership scoping is deliberately absent here,
but two rules replace it:

1. Self-protection: an admin can neither delete nor re-role their own
   account through this path (SelfActionError, 400, nothing changes).
2. Cascade delete: removing a user first removes all their tasks, then the
   user row, inside one database transaction. If the user delete is not
   confirmed the whole thing is rolled back and reported as a server error,
   so a half-deleted account is never reported as success.
"""

from typing import Any

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.orm import selectinload

from tasktrack.db.models import Task, User
from tasktrack.errors import NotFoundError, SelfActionError, StoreError
from tasktrack.stores.base import StoreBase, parse_id
from tasktrack.stores.users import CredentialStore

logger = structlog.get_logger()

USER_NOT_FOUND = "User not found"


class AdminService(StoreBase):
    """Operations available to administrators only."""

    def __init__(self, db, admin: User, users: CredentialStore, timeout: float = 10.0):
        super().__init__(db, timeout=timeout)
        self.admin = admin
        self.users = users

    def _is_self(self, user_id: Any) -> bool:
        return parse_id(user_id) == self.admin.id

    # ─── Listing ─────────────────────────────────────────

    async def list_users(self) -> list[User]:
        return await self.users.list_all()

    async def list_tasks(self) -> list[Task]:
        """Every task in the system with its owner summary, newest first."""
        result = await self._execute(
            select(Task)
            .options(selectinload(Task.owner))
            .order_by(Task.created_at.desc())
        )
        return list(result.scalars().all())

    async def system_stats(self) -> dict:
        total_users = await self.users.count()
        total_tasks = await self._scalar(select(func.count()).select_from(Task)) or 0
        completed = (
            await self._scalar(
                select(func.count()).select_from(Task).where(Task.completed.is_(True))
            )
            or 0
        )
        rate = f"{completed / total_tasks * 100:.2f}%" if total_tasks else "0%"
        return {
            "users": {"total": total_users},
            "tasks": {
                "total": total_tasks,
                "completed": completed,
                "pending": total_tasks - completed,
                "completion_rate": rate,
            },
        }

    # ─── Mutations ───────────────────────────────────────

    async def delete_user(self, user_id: Any) -> dict:
        """Delete a user and all their tasks atomically."""
        if self._is_self(user_id):
            raise SelfActionError("You cannot delete your own account")

        user = await self.users.find_by_id(user_id)
        if not user:
            raise NotFoundError(USER_NOT_FOUND)

        # rollback expires the instance, so read everything up front
        summary = {"id": user.id, "email": user.email, "name": user.name}

        tasks_result = await self._execute(delete(Task).where(Task.owner_id == user.id))
        deleted = await self.users.delete(user.id, commit=False)
        if deleted is None:
            await self._rollback()
            logger.error(
                "tasktrack.admin.cascade_unconfirmed", user_id=str(summary["id"])
            )
            raise StoreError("User deletion could not be confirmed; no changes were made")
        await self._commit()

        logger.info(
            "tasktrack.admin.user_deleted",
            user_id=str(summary["id"]),
            tasks_deleted=tasks_result.rowcount,
            admin_id=str(self.admin.id),
        )
        return {**summary, "tasks_deleted": tasks_result.rowcount}

    async def change_role(self, user_id: Any, role: str) -> User:
        if self._is_self(user_id):
            raise SelfActionError("You cannot change your own role")

        user = await self.users.update_fields(user_id, role=role)
        if not user:
            raise NotFoundError(USER_NOT_FOUND)
        logger.info(
            "tasktrack.admin.role_changed",
            user_id=str(user.id),
            role=role,
            admin_id=str(self.admin.id),
        )
        return user
