"""Role-based authorization, layered after authentication."""

from typing import Iterable, Optional

from fastapi import Depends

from tasktrack.auth.dependencies import get_current_principal
from tasktrack.db.models import User
from tasktrack.errors import AuthenticationError, AuthFailure, AuthorizationError


def authorize(principal: Optional[User], allowed_roles: Iterable[str]) -> None:
    """Raise unless principal holds one of allowed_roles. Pure, no I/O."""
    if principal is None:
        raise AuthenticationError(AuthFailure.NOT_AUTHENTICATED)
    if principal.role not in set(allowed_roles):
        raise AuthorizationError()


def require_roles(*roles: str):
    """Build a dependency that authenticates, then checks the role."""

    async def dependency(principal: User = Depends(get_current_principal)) -> User:
        authorize(principal, roles)
        return principal

    return dependency


require_admin = require_roles("admin")
