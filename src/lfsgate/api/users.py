"""User identity and the Basic-auth user registry.

Registry format (LFSGATE_USERS_JSON):
    {"alice": {"password_sha256": "<hex>", "real_name": "Alice", "email": "a@x"}}

Passwords are never stored in clear; lookups compare digests in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

LFSGATE_USERS_JSON_ENV = "LFSGATE_USERS_JSON"

ANONYMOUS_USERNAME = "$anonymous"


class User(BaseModel):
    """Authenticated (or anonymous) caller. Read-only input to authorization."""

    model_config = {"frozen": True}

    username: str
    real_name: str = ""
    email: str | None = None
    anonymous: bool = False

    @classmethod
    def anonymous_user(cls) -> User:
        return cls(username=ANONYMOUS_USERNAME, real_name="Anonymous", anonymous=True)


class UserRecord(BaseModel):
    """Registry entry for one named user."""

    password_sha256: str
    real_name: str = ""
    email: str | None = None


def hash_password(password: str) -> str:
    """Return the registry digest for a password."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class UserRegistry:
    """In-memory username -> record mapping used for Basic authentication."""

    def __init__(self, records: dict[str, UserRecord] | None = None) -> None:
        self._records = dict(records or {})

    def __len__(self) -> int:
        return len(self._records)

    def authenticate(self, username: str, password: str) -> User | None:
        """Check a username/password pair.

        Every record is compared so that timing does not reveal which
        usernames exist.
        """
        provided_user = username.encode("utf-8")
        provided_digest = hash_password(password).encode("utf-8")

        matched: tuple[str, UserRecord] | None = None
        for registered_name, record in self._records.items():
            name_ok = hmac.compare_digest(provided_user, registered_name.encode("utf-8"))
            digest_ok = hmac.compare_digest(
                provided_digest, record.password_sha256.lower().encode("utf-8")
            )
            if name_ok and digest_ok:
                matched = (registered_name, record)

        if matched is None:
            return None

        name, record = matched
        return User(username=name, real_name=record.real_name or name, email=record.email)


def load_user_registry() -> UserRegistry:
    """Load the user registry from LFSGATE_USERS_JSON.

    Returns an empty registry if the variable is missing or not valid JSON;
    malformed entries are skipped.
    """
    raw = os.environ.get(LFSGATE_USERS_JSON_ENV)
    if not raw:
        return UserRegistry()

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Failed to parse %s; treating as empty registry", LFSGATE_USERS_JSON_ENV)
        return UserRegistry()

    if not isinstance(parsed, dict):
        logger.warning("%s is not a dict; treating as empty registry", LFSGATE_USERS_JSON_ENV)
        return UserRegistry()

    records: dict[str, UserRecord] = {}
    for name, value in parsed.items():
        if not isinstance(name, str) or not isinstance(value, dict):
            continue
        try:
            records[name] = UserRecord.model_validate(value)
        except ValidationError:
            logger.warning("Skipping malformed user entry: %s", name)
            continue

    return UserRegistry(records)
