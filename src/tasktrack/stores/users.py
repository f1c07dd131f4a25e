"""Credential store — users, their hashed secrets and roles.

Learn: This is the only code that writes User.password_hash. A plaintext
password comes in through create() or update_fields(password=...), gets
hashed with bcrypt in a worker thread, and only the hash is persisted.
The plaintext is never stored and never logged.

Reads exclude the hash unless the caller asks for it (include_secret=True),
which only the verification flows (login, change-password) do.
"""

from typing import Any, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.orm import undefer

from tasktrack.auth.password import hash_password_async, verify_password_async
from tasktrack.db.models import ROLES, User
from tasktrack.errors import ConflictError
from tasktrack.stores.base import StoreBase, parse_id

logger = structlog.get_logger()

EMAIL_TAKEN = "This email is already in use"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore(StoreBase):
    """Lookup, creation and mutation of users."""

    MUTABLE_FIELDS = frozenset({"name", "email", "password", "role"})

    def __init__(self, db, *, bcrypt_rounds: int = 12, timeout: float = 10.0):
        super().__init__(db, timeout=timeout)
        self.bcrypt_rounds = bcrypt_rounds

    # ─── Read ────────────────────────────────────────────

    def _select(self, include_secret: bool):
        q = select(User)
        if include_secret:
            # populate_existing: the same User may already sit in the identity
            # map without its hash (loaded by the authentication gate)
            q = q.options(undefer(User.password_hash)).execution_options(
                populate_existing=True
            )
        return q

    async def find_by_email(
        self, email: str, include_secret: bool = False
    ) -> Optional[User]:
        q = self._select(include_secret).where(User.email == normalize_email(email))
        result = await self._execute(q)
        return result.scalars().first()

    async def find_by_id(
        self, user_id: Any, include_secret: bool = False
    ) -> Optional[User]:
        uid = parse_id(user_id)
        if uid is None:
            return None
        result = await self._execute(self._select(include_secret).where(User.id == uid))
        return result.scalars().first()

    async def list_all(self) -> list[User]:
        result = await self._execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def count(self) -> int:
        return await self._scalar(select(func.count()).select_from(User)) or 0

    async def verify_credentials(self, email: str, password: str) -> Optional[User]:
        """Return the user when email and password match, else None.

        Learn: Both "no such email" and "wrong password" return None so the
        caller can answer with one generic message.
        """
        user = await self.find_by_email(email, include_secret=True)
        if not user:
            return None
        if not await verify_password_async(password, user.password_hash):
            return None
        return user

    # ─── Write ───────────────────────────────────────────

    async def create(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        role: str = "user",
    ) -> User:
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        user = User(
            email=normalize_email(email),
            name=name.strip() if name else None,
            password_hash=await hash_password_async(password, self.bcrypt_rounds),
            role=role,
        )
        self.db.add(user)
        await self._commit(conflict_message="This email is already registered")
        logger.info("tasktrack.users.created", user_id=str(user.id), role=role)
        return user

    async def update_fields(self, user_id: Any, **fields: Any) -> Optional[User]:
        """Apply an allow-listed set of changes.

        A "password" key is re-hashed; an "email" key is normalized and
        checked against other accounts first.
        """
        unknown = set(fields) - self.MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        user = await self.find_by_id(user_id)
        if not user:
            return None

        if "email" in fields and fields["email"] is not None:
            email = normalize_email(fields["email"])
            if email != user.email:
                other = await self.find_by_email(email)
                if other and other.id != user.id:
                    raise ConflictError(EMAIL_TAKEN)
                user.email = email
        if "name" in fields:
            name = fields["name"]
            user.name = name.strip() if name else None
        if "role" in fields:
            if fields["role"] not in ROLES:
                raise ValueError(f"Unknown role: {fields['role']}")
            user.role = fields["role"]
        if "password" in fields:
            user.password_hash = await hash_password_async(
                fields["password"], self.bcrypt_rounds
            )

        await self._commit(conflict_message=EMAIL_TAKEN)
        logger.info(
            "tasktrack.users.updated",
            user_id=str(user.id),
            fields=sorted(fields),
        )
        return user

    async def delete(self, user_id: Any, *, commit: bool = True) -> Optional[User]:
        """Delete a user row. Returns the deleted user, or None if absent.

        With commit=False the delete joins the caller's open transaction
        (used by the admin cascade).
        """
        user = await self.find_by_id(user_id)
        if not user:
            return None
        result = await self._execute(delete(User).where(User.id == user.id))
        if result.rowcount != 1:
            return None
        if commit:
            await self._commit()
        return user
