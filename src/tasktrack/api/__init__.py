"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health and auth routers are open (auth's own
/me, /profile and /change-password routes depend on the principal
individually). Tasks and upload need any authenticated user; admin needs
the admin role.
"""

from fastapi import APIRouter, Depends

from tasktrack.api.admin import router as admin_router
from tasktrack.api.auth import router as auth_router
from tasktrack.api.health import router as health_router
from tasktrack.api.tasks import router as tasks_router
from tasktrack.api.upload import router as upload_router
from tasktrack.auth.dependencies import get_current_principal
from tasktrack.auth.roles import require_admin

_auth = [Depends(get_current_principal)]
_admin = [Depends(require_admin)]

api_router = APIRouter(prefix="/api")

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a valid bearer token
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
api_router.include_router(upload_router, tags=["upload"], dependencies=_auth)

# Audit path: admin role only
api_router.include_router(admin_router, tags=["admin"], dependencies=_admin)
