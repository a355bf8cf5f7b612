"""Repository permission evaluation.

The gateway consumes only the boolean outcome of a branch/path check. The
evaluator is injected so deployments can plug in their own policy; the
built-in AclRepositoryAccess grants repository-wide read/write from a flat
allow-list.

ACL format (LFSGATE_ACL_JSON):
    {"read": ["*", "$anonymous"], "write": ["alice"]}

Entries:
- a username: that user
- "*": any authenticated (non-anonymous) user
- "$anonymous": unauthenticated callers
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Protocol

from lfsgate.api.users import ANONYMOUS_USERNAME, User

logger = logging.getLogger(__name__)

LFSGATE_ACL_JSON_ENV = "LFSGATE_ACL_JSON"

ANY_USER = "*"


class AccessDeniedError(Exception):
    """Raised by a permission evaluator when the check fails."""

    def __init__(self, user: User, action: str, branch: str, path: str) -> None:
        self.user = user
        self.action = action
        self.branch = branch
        self.path = path
        super().__init__(f"{action} denied for {user.username} on {branch}:{path}")


class RepositoryAccess(Protocol):
    """Branch/path permission evaluator."""

    def check_read(self, user: User, branch: str, path: str) -> None:
        """Raise AccessDeniedError unless user may read path on branch."""
        ...

    def check_write(self, user: User, branch: str, path: str) -> None:
        """Raise AccessDeniedError unless user may write path on branch."""
        ...


def _matches(user: User, principals: frozenset[str]) -> bool:
    if user.anonymous:
        return ANONYMOUS_USERNAME in principals
    return ANY_USER in principals or user.username in principals


@dataclass(frozen=True, slots=True)
class AclRepositoryAccess:
    """Repository-wide allow-lists; branch and path are not consulted.

    Attributes:
        readers: Principals allowed to read.
        writers: Principals allowed to write. Writers may also read.
    """

    readers: frozenset[str] = frozenset()
    writers: frozenset[str] = frozenset()

    def check_read(self, user: User, branch: str, path: str) -> None:
        if _matches(user, self.readers) or _matches(user, self.writers):
            return
        raise AccessDeniedError(user, "read", branch, path)

    def check_write(self, user: User, branch: str, path: str) -> None:
        if _matches(user, self.writers):
            return
        raise AccessDeniedError(user, "write", branch, path)


def _principals(value: object) -> frozenset[str]:
    if not isinstance(value, list):
        return frozenset()
    return frozenset(item for item in value if isinstance(item, str))


def load_repository_access() -> AclRepositoryAccess:
    """Load the ACL from LFSGATE_ACL_JSON.

    Missing or invalid configuration yields an ACL that denies everything.
    """
    raw = os.environ.get(LFSGATE_ACL_JSON_ENV)
    if not raw:
        return AclRepositoryAccess()

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Failed to parse %s; denying all access", LFSGATE_ACL_JSON_ENV)
        return AclRepositoryAccess()

    if not isinstance(parsed, dict):
        logger.warning("%s is not a dict; denying all access", LFSGATE_ACL_JSON_ENV)
        return AclRepositoryAccess()

    return AclRepositoryAccess(
        readers=_principals(parsed.get("read")),
        writers=_principals(parsed.get("write")),
    )
