"""Pydantic schemas for registration, login and profile management.

Learn: Emails are trimmed and lowercased here, before they reach the
store, so "A@X.com " and "a@x.com" are the same account. UserRead is the
only way a user is serialized and it has no password field.
"""

import re
import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from tasktrack.schemas.common import UtcDatetime

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD = 6


def _clean_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError("Email is not valid")
    return value


def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) < 2:
        raise ValueError("Name must be at least 2 characters")
    return value


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=MIN_PASSWORD)
    name: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _clean_email(v)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _clean_email(v)


class ProfileUpdate(BaseModel):
    """Only name and email are changeable here; role and password are not."""

    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return _clean_email(v) if v is not None else None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v)


class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=MIN_PASSWORD)


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    role: Literal["user", "admin"]
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}


class AuthResult(BaseModel):
    """Returned by register and login."""

    token: str
    user: UserRead
