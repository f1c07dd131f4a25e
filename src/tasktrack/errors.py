"""Error taxonomy.

Learn: Services and stores raise these; the exception handlers in
tasktrack.api.errors turn them into the JSON envelope. Storage-engine
exceptions never leave the store layer: they are translated into
ConflictError or StoreError at that boundary.

Ownership misses are NotFoundError, never AuthorizationError, so a caller
cannot tell "does not exist" from "belongs to someone else".
"""

import enum
from typing import Optional


class AppError(Exception):
    """Base for every error that maps to an HTTP response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Request failed the validation pre-check. Carries the field list."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[dict], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors


class AuthFailure(str, enum.Enum):
    NO_TOKEN = "no_token"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    UNKNOWN_SUBJECT = "unknown_subject"
    NOT_AUTHENTICATED = "not_authenticated"
    BAD_CREDENTIALS = "bad_credentials"


_AUTH_MESSAGES = {
    AuthFailure.NO_TOKEN: "Not authorized. No token provided",
    AuthFailure.INVALID_TOKEN: "Invalid token",
    AuthFailure.TOKEN_EXPIRED: "Token expired. Please log in again",
    AuthFailure.UNKNOWN_SUBJECT: "User not found. Invalid token",
    AuthFailure.NOT_AUTHENTICATED: "Not authorized. You must log in first",
    AuthFailure.BAD_CREDENTIALS: "Invalid credentials",
}


class AuthenticationError(AppError):
    status_code = 401

    def __init__(self, reason: AuthFailure, message: Optional[str] = None):
        super().__init__(message or _AUTH_MESSAGES[reason])
        self.reason = reason


class AuthorizationError(AppError):
    status_code = 403
    default_message = "You do not have permission to access this resource"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """Duplicate value for a unique field."""

    status_code = 400
    default_message = "This value is already in use"


class SelfActionError(AppError):
    """Admin tried to delete or re-role their own account."""

    status_code = 400


class ServerError(AppError):
    status_code = 500


class StoreError(ServerError):
    """Database failure or timeout, translated at the store boundary."""

    default_message = "Database operation failed"
