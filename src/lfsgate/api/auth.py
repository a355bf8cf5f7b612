"""Credential resolution for inbound requests.

Resolves the Authorization header into a User:
- "Bearer <token>": a token minted by this gateway (see tokens.py)
- "Basic <base64(user:password)>": checked against the user registry

Missing, malformed or rejected credentials resolve to None; the access gate
then treats the caller as anonymous.
"""

from __future__ import annotations

import base64
import binascii
import logging

from lfsgate.api.tokens import BEARER_PREFIX, LFS_SCOPE, TokenIssuer
from lfsgate.api.users import User, UserRegistry

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
BASIC_PREFIX = "Basic "


class Authenticator:
    """Turns an Authorization header value into a User.

    Args:
        users: Registry used for Basic credentials.
        token_issuer: Validator for bearer tokens; None disables them.
    """

    def __init__(self, users: UserRegistry, token_issuer: TokenIssuer | None = None) -> None:
        self._users = users
        self._token_issuer = token_issuer

    def get_auth_info(self, authorization: str | None, token_ensure_seconds: int) -> User | None:
        """Resolve credentials.

        Args:
            authorization: Raw Authorization header value, if any.
            token_ensure_seconds: Bearer tokens with less lifetime left than
                this are rejected.

        Returns:
            The authenticated user, or None.
        """
        if not authorization:
            return None

        if authorization.startswith(BEARER_PREFIX):
            if self._token_issuer is None:
                return None
            token = authorization[len(BEARER_PREFIX) :].strip()
            return self._token_issuer.verify(
                token, scope=LFS_SCOPE, min_remaining=token_ensure_seconds
            )

        if authorization.startswith(BASIC_PREFIX):
            return self._basic(authorization[len(BASIC_PREFIX) :].strip())

        return None

    def _basic(self, encoded: str) -> User | None:
        try:
            decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None

        username, sep, password = decoded.partition(":")
        if not sep or not username:
            return None

        user = self._users.authenticate(username, password)
        if user is None:
            logger.info("Basic authentication failed for user %s", username)
        return user
