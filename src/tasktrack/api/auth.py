"""Auth API — registration, login, profile.

Learn: Routes for the account lifecycle:
- POST /auth/register        → create an account, returns token + user
- POST /auth/login           → email/password → token + user
- GET  /auth/me              → current user
- PUT  /auth/profile         → change name and/or email
- PUT  /auth/change-password → needs the current password

Login failures always say "Invalid credentials": the client cannot tell
whether the email or the password was wrong.
"""

import structlog
from fastapi import APIRouter, Depends

from tasktrack.auth.dependencies import (
    get_credential_store,
    get_current_principal,
    get_token_service,
)
from tasktrack.auth.password import verify_password_async
from tasktrack.auth.tokens import TokenService
from tasktrack.db.models import User
from tasktrack.errors import AuthenticationError, AuthFailure, ConflictError, NotFoundError
from tasktrack.schemas.auth import (
    AuthResult,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
    UserRead,
)
from tasktrack.schemas.common import Envelope
from tasktrack.stores.users import CredentialStore

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


def _auth_result(user: User, tokens: TokenService) -> AuthResult:
    return AuthResult(token=tokens.issue(user), user=UserRead.model_validate(user))


# ─── Register ────────────────────────────────────────────


@router.post(
    "/register",
    response_model=Envelope[AuthResult],
    response_model_exclude_unset=True,
    status_code=201,
)
async def register(
    body: RegisterRequest,
    users: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Create a new user account (always with the "user" role)."""
    if await users.find_by_email(body.email):
        raise ConflictError("This email is already registered")

    user = await users.create(email=body.email, password=body.password, name=body.name)
    return Envelope(
        message="User registered successfully",
        data=_auth_result(user, tokens),
    )


# ─── Login ───────────────────────────────────────────────


@router.post(
    "/login", response_model=Envelope[AuthResult], response_model_exclude_unset=True
)
async def login(
    body: LoginRequest,
    users: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with email and password → JWT."""
    user = await users.verify_credentials(body.email, body.password)
    if not user:
        logger.info("tasktrack.auth.login_failed")
        raise AuthenticationError(AuthFailure.BAD_CREDENTIALS)

    logger.info("tasktrack.auth.login", user_id=str(user.id))
    return Envelope(message="Logged in successfully", data=_auth_result(user, tokens))


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=Envelope[UserRead], response_model_exclude_unset=True)
async def get_me(principal: User = Depends(get_current_principal)):
    """Get the current authenticated user's info."""
    return Envelope(data=UserRead.model_validate(principal))


@router.put(
    "/profile", response_model=Envelope[UserRead], response_model_exclude_unset=True
)
async def update_profile(
    body: ProfileUpdate,
    principal: User = Depends(get_current_principal),
    users: CredentialStore = Depends(get_credential_store),
):
    """Update name and/or email. A new email must not belong to anyone else."""
    fields = body.model_dump(exclude_unset=True)
    if fields.get("email") is None:
        fields.pop("email", None)

    user = principal
    if fields:
        # raises ConflictError when the email belongs to another account
        user = await users.update_fields(principal.id, **fields)
        if not user:
            raise NotFoundError("User not found")

    return Envelope(
        message="Profile updated successfully", data=UserRead.model_validate(user)
    )


@router.put("/change-password", response_model=Envelope, response_model_exclude_unset=True)
async def change_password(
    body: PasswordChange,
    principal: User = Depends(get_current_principal),
    users: CredentialStore = Depends(get_credential_store),
):
    """Replace the password after checking the current one."""
    user = await users.find_by_id(principal.id, include_secret=True)
    if not user:
        raise NotFoundError("User not found")

    if not await verify_password_async(body.current_password, user.password_hash):
        raise AuthenticationError(
            AuthFailure.BAD_CREDENTIALS, "Current password is incorrect"
        )

    await users.update_fields(user.id, password=body.new_password)
    logger.info("tasktrack.auth.password_changed", user_id=str(user.id))
    return Envelope(message="Password changed successfully")
