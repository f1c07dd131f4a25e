"""Admin API — the audit path.

Learn: The whole router is mounted with require_admin (see api/__init__.py),
and _admin_svc depends on it again to get the admin principal. Routes:
- GET    /admin/users             → every account (no hashes)
- GET    /admin/tasks             → every task with its owner
- GET    /admin/stats             → system-wide counts
- DELETE /admin/users/{id}        → cascade delete (not yourself)
- PUT    /admin/users/{id}/role   → change role (not your own)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.auth.dependencies import get_app_settings, get_credential_store
from tasktrack.auth.roles import require_admin
from tasktrack.config import Settings
from tasktrack.db.engine import get_db
from tasktrack.db.models import User
from tasktrack.schemas.admin import AdminTaskRead, DeletedUser, RoleChange, SystemStats
from tasktrack.schemas.auth import UserRead
from tasktrack.schemas.common import Envelope
from tasktrack.services.admin_service import AdminService
from tasktrack.stores.users import CredentialStore

router = APIRouter(prefix="/admin")


def _admin_svc(
    settings: Settings = Depends(get_app_settings),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    users: CredentialStore = Depends(get_credential_store),
) -> AdminService:
    return AdminService(db, admin, users, timeout=settings.store_timeout_seconds)


@router.get("/users", response_model=Envelope[list[UserRead]], response_model_exclude_unset=True)
async def list_users(svc: AdminService = Depends(_admin_svc)):
    users = await svc.list_users()
    return Envelope(count=len(users), data=[UserRead.model_validate(u) for u in users])


@router.get(
    "/tasks", response_model=Envelope[list[AdminTaskRead]], response_model_exclude_unset=True
)
async def list_all_tasks(svc: AdminService = Depends(_admin_svc)):
    tasks = await svc.list_tasks()
    return Envelope(count=len(tasks), data=[AdminTaskRead.model_validate(t) for t in tasks])


@router.get("/stats", response_model=Envelope[SystemStats], response_model_exclude_unset=True)
async def system_stats(svc: AdminService = Depends(_admin_svc)):
    return Envelope(data=SystemStats.model_validate(await svc.system_stats()))


@router.delete(
    "/users/{user_id}", response_model=Envelope[DeletedUser], response_model_exclude_unset=True
)
async def delete_user(user_id: str, svc: AdminService = Depends(_admin_svc)):
    """Delete a user and every task they own."""
    deleted = await svc.delete_user(user_id)
    return Envelope(
        message=f"User {deleted['email']} and their tasks were deleted",
        data=DeletedUser(**deleted),
    )


@router.put(
    "/users/{user_id}/role", response_model=Envelope[UserRead], response_model_exclude_unset=True
)
async def change_role(
    user_id: str,
    body: RoleChange,
    svc: AdminService = Depends(_admin_svc),
):
    user = await svc.change_role(user_id, body.role)
    return Envelope(
        message=f"Role of {user.email} changed to {body.role}",
        data=UserRead.model_validate(user),
    )
