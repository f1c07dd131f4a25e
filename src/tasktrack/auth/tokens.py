"""JWT token issuance and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. The token
carries the user's id (sub), email and role, signed with the server key.
Nothing is stored server-side, so expiry is the only way a token stops
working: there is no revocation list.

verify() distinguishes an expired token from a malformed one because the
two produce different messages for the client.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import jwt

from tasktrack.config import Settings


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its expiry."""


class TokenMalformedError(TokenError):
    """Bad signature, bad structure or missing claims."""


class TokenSubject(Protocol):
    id: object
    email: str
    role: str


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    email: str
    role: str


class TokenService:
    """Issues and verifies signed, time-bound identity tokens."""

    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._expires = timedelta(minutes=settings.token_expire_minutes)

    def issue(
        self,
        subject: TokenSubject,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Create a signed token for a user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject.id),
            "email": subject.email,
            "role": subject.role,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self._expires),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify and decode a token.

        Returns the claims on success.
        Raises TokenExpiredError or TokenMalformedError on failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenMalformedError(f"Invalid token: {e}")

        email, role = payload.get("email"), payload.get("role")
        if not isinstance(email, str) or not isinstance(role, str):
            raise TokenMalformedError("Invalid token: missing identity claims")
        return TokenClaims(subject_id=payload["sub"], email=email, role=role)
