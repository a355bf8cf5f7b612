"""Access gate for large-object transfers.

Authenticates the caller, runs one repository-wide permission check and
produces the header set the client attaches to its follow-up storage
request.

Security coupling: the permission check always targets the sentinel branch
and the repository root. A client that can fetch large objects is a git
client holding the full repository history, so path-level rules cannot
narrow what it sees. Deployments that rely on path-based read restrictions
must not expose this gateway to the affected users.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Protocol

from lfsgate.api.access import AccessDeniedError, RepositoryAccess
from lfsgate.api.auth import AUTHORIZATION_HEADER, Authenticator
from lfsgate.api.config import GatewayConfig
from lfsgate.api.errors import ForbiddenError, LfsHttpError, UnauthorizedError
from lfsgate.api.tokens import BEARER_PREFIX, LFS_SCOPE, TokenIssuer
from lfsgate.api.users import User

logger = logging.getLogger(__name__)

SENTINEL_BRANCH = "master"
ROOT_PATH = "/"


class CredentialRequest(Protocol):
    """Anything exposing request headers (e.g. a Starlette Request)."""

    @property
    def headers(self) -> Mapping[str, str]: ...


Checker = Callable[[User, str, str], None]


class AccessGate:
    """Authorizes downloads and uploads.

    Holds no per-request state; safe to share across workers as long as the
    injected collaborators are.

    Args:
        access: Repository permission evaluator.
        authenticator: Resolves the Authorization header into a user.
        token_issuer: Mints bearer tokens for follow-up requests.
        config: Realm and token timing settings.
    """

    def __init__(
        self,
        access: RepositoryAccess,
        authenticator: Authenticator,
        token_issuer: TokenIssuer | None,
        config: GatewayConfig,
    ) -> None:
        self._access = access
        self._authenticator = authenticator
        self._token_issuer = token_issuer
        self._config = config

    @property
    def config(self) -> GatewayConfig:
        return self._config

    def authorize_download(self, request: CredentialRequest) -> tuple[User, dict[str, str]]:
        """Check read access.

        Raises:
            UnauthorizedError: Anonymous caller without read access.
            ForbiddenError: Named caller without read access.
        """
        user = self._check_access(request, self._access.check_read)
        return user, self._create_header(request, user)

    def authorize_upload(self, request: CredentialRequest) -> tuple[User, dict[str, str]]:
        """Check write access.

        Raises:
            UnauthorizedError: Anonymous caller without write access.
            ForbiddenError: Named caller without write access.
        """
        user = self._check_access(request, self._access.check_write)
        return user, self._create_header(request, user)

    def get_auth_info(self, request: CredentialRequest) -> User:
        """Resolve the caller, defaulting to the anonymous user."""
        user = self._authenticator.get_auth_info(
            request.headers.get(AUTHORIZATION_HEADER),
            self._config.token_ensure_seconds,
        )
        return user if user is not None else User.anonymous_user()

    def _check_access(self, request: CredentialRequest, checker: Checker) -> User:
        user = self.get_auth_info(request)
        try:
            checker(user, SENTINEL_BRANCH, ROOT_PATH)
        except AccessDeniedError as e:
            logger.warning("Access denied: user=%s action=%s", user.username, e.action)
            if user.anonymous:
                raise UnauthorizedError(self._config.realm) from e
            raise ForbiddenError() from e
        return user

    def _create_header(self, request: CredentialRequest, user: User) -> dict[str, str]:
        auth = request.headers.get(AUTHORIZATION_HEADER)
        if auth is None:
            return {}
        if auth.startswith(BEARER_PREFIX):
            return {AUTHORIZATION_HEADER: auth}

        if self._token_issuer is None:
            raise LfsHttpError(
                status_code=500,
                code="token_not_configured",
                message="Token issuing not configured",
            )
        token = self._token_issuer.issue(user, LFS_SCOPE, self._config.token_expire_sec)
        return {AUTHORIZATION_HEADER: token.header_value}
