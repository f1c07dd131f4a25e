"""Authentication gate — bearer token → principal.

Learn: One pass per request, ending in either a principal or a rejection:

  1. Authorization header must be "Bearer <token>"     → else NO_TOKEN (401)
  2. Token must verify                                 → TOKEN_EXPIRED / INVALID_TOKEN (401)
  3. Token subject must still exist in the store       → else UNKNOWN_SUBJECT (401)
  4. Return the user, loaded without its password hash

A database failure in step 3 is not an authentication problem: StoreError
(500) propagates untouched so clients never mistake an outage for a bad
token.
"""

from typing import Optional

import structlog

from tasktrack.auth.tokens import TokenExpiredError, TokenMalformedError, TokenService
from tasktrack.db.models import User
from tasktrack.errors import AuthenticationError, AuthFailure
from tasktrack.stores.users import CredentialStore

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


def extract_bearer(authorization: Optional[str]) -> str:
    """Pull the token out of an Authorization header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError(AuthFailure.NO_TOKEN)
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError(AuthFailure.NO_TOKEN)
    return token


class AuthenticationGate:
    """Resolves an inbound Authorization header to a User."""

    def __init__(self, tokens: TokenService):
        self.tokens = tokens

    async def authenticate(
        self, authorization: Optional[str], users: CredentialStore
    ) -> User:
        token = extract_bearer(authorization)

        try:
            claims = self.tokens.verify(token)
        except TokenExpiredError:
            raise AuthenticationError(AuthFailure.TOKEN_EXPIRED)
        except TokenMalformedError as e:
            logger.info("tasktrack.auth.invalid_token", error=str(e))
            raise AuthenticationError(AuthFailure.INVALID_TOKEN)

        user = await users.find_by_id(claims.subject_id)
        if not user:
            logger.info("tasktrack.auth.unknown_subject", subject=claims.subject_id)
            raise AuthenticationError(AuthFailure.UNKNOWN_SUBJECT)
        return user
