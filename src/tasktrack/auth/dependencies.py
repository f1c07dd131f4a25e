"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. The chain is explicit:

  get_db → get_credential_store → get_current_principal → require_roles(...) → handler

Each stage either hands its result to the next one or raises, which ends
the request. Nothing is stashed on the request object; handlers receive
the principal as a parameter.
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.auth.gate import AuthenticationGate
from tasktrack.auth.tokens import TokenService
from tasktrack.config import Settings
from tasktrack.db.engine import get_db
from tasktrack.db.models import User
from tasktrack.stores.users import CredentialStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_credential_store(
    settings: Settings = Depends(get_app_settings),
    db: AsyncSession = Depends(get_db),
) -> CredentialStore:
    return CredentialStore(
        db,
        bcrypt_rounds=settings.bcrypt_rounds,
        timeout=settings.store_timeout_seconds,
    )


async def get_current_principal(
    request: Request,
    authorization: Optional[str] = Header(None),
    users: CredentialStore = Depends(get_credential_store),
) -> User:
    """Authenticated user for this request (401 otherwise)."""
    gate: AuthenticationGate = request.app.state.auth_gate
    principal = await gate.authenticate(authorization, users)
    structlog.contextvars.bind_contextvars(user_id=str(principal.id))
    return principal
