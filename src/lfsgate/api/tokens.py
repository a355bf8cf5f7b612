"""Short-lived bearer tokens that stand in for primary credentials.

A token is minted after a request passes full authorization and lets the
client skip re-authentication on its follow-up storage request. Tokens are
self-contained: an HMAC-SHA256 signed JSON payload, urlsafe-base64 encoded.
Nothing is persisted server side.

Environment Variables:
    LFSGATE_TOKEN_SECRET: Signing secret. Token minting is disabled without it.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import os
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from lfsgate.api.users import User

logger = logging.getLogger(__name__)

LFSGATE_TOKEN_SECRET_ENV = "LFSGATE_TOKEN_SECRET"

BEARER_PREFIX = "Bearer "
LFS_SCOPE = "lfs"


@dataclass(frozen=True, slots=True)
class AccessToken:
    """A minted token.

    Attributes:
        token: Encoded token string (without the "Bearer " prefix).
        scope: Capability the token grants.
        expires_at: Unix timestamp after which the token is rejected.
    """

    token: str
    scope: str
    expires_at: int

    @property
    def header_value(self) -> str:
        return BEARER_PREFIX + self.token


class TokenIssuer(Protocol):
    """Mints and validates bearer tokens."""

    def issue(self, user: User, scope: str, expires_in: int) -> AccessToken: ...

    def verify(self, token: str, *, scope: str, min_remaining: int = 0) -> User | None: ...


def token_fingerprint(token: str) -> str:
    """Short SHA-256 prefix of a token, safe to log."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


class HmacTokenIssuer:
    """HMAC-SHA256 signed tokens.

    Args:
        secret: Signing secret shared by every gateway instance.
        clock: Time source returning Unix seconds (injectable for tests).
    """

    def __init__(self, secret: str | bytes, *, clock: Callable[[], float] = time.time) -> None:
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._clock = clock

    def _sign(self, payload: dict[str, Any]) -> str:
        payload_json = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hmac.new(self._secret, payload_json.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue(self, user: User, scope: str, expires_in: int) -> AccessToken:
        """Mint a token for a user, valid for expires_in seconds from now."""
        now = int(self._clock())
        payload: dict[str, Any] = {
            "jti": uuid.uuid4().hex,
            "sub": user.username,
            "name": user.real_name,
            "email": user.email,
            "anon": user.anonymous,
            "scope": scope,
            "iat": now,
            "exp": now + expires_in,
        }
        payload["sig"] = self._sign(payload)

        token_json = json.dumps(payload, separators=(",", ":"))
        token = base64.urlsafe_b64encode(token_json.encode("utf-8")).decode("ascii")
        return AccessToken(token=token, scope=scope, expires_at=payload["exp"])

    def verify(self, token: str, *, scope: str, min_remaining: int = 0) -> User | None:
        """Validate a token and return the user it was minted for.

        Validation checks (fail-closed):
        1. Token is well-formed and decodable
        2. Signature is valid
        3. Scope matches
        4. At least min_remaining seconds of lifetime are left

        Returns:
            The user, or None when any check fails.
        """
        try:
            decoded = base64.urlsafe_b64decode(token.encode("ascii"))
            payload = json.loads(decoded.decode("utf-8"))
        except (binascii.Error, UnicodeError, ValueError):
            return None

        if not isinstance(payload, dict):
            return None

        signature = payload.pop("sig", None)
        if not isinstance(signature, str) or not hmac.compare_digest(
            signature, self._sign(payload)
        ):
            logger.warning("Rejected token with bad signature: %s", token_fingerprint(token))
            return None

        if payload.get("scope") != scope:
            return None

        expires_at = payload.get("exp")
        if not isinstance(expires_at, int):
            return None
        if expires_at - self._clock() < max(min_remaining, 1):
            logger.debug("Token too close to expiry: %s", token_fingerprint(token))
            return None

        username = payload.get("sub")
        anonymous = payload.get("anon")
        if not isinstance(username, str) or not username or not isinstance(anonymous, bool):
            return None

        # Anonymous callers keep their anonymous identity; a token never upgrades them.
        if anonymous:
            return User.anonymous_user()
        return User(
            username=username,
            real_name=payload.get("name") or username,
            email=payload.get("email"),
        )


def load_token_issuer() -> HmacTokenIssuer | None:
    """Build the token issuer from LFSGATE_TOKEN_SECRET, or None if unset."""
    secret = os.environ.get(LFSGATE_TOKEN_SECRET_ENV)
    if not secret:
        logger.warning("%s not set; bearer tokens disabled", LFSGATE_TOKEN_SECRET_ENV)
        return None
    return HmacTokenIssuer(secret)
