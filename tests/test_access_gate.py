"""Tests for the access gate.

Covers:
- Anonymous denial is Unauthorized with a realm challenge, never Forbidden
- Named-but-denied callers get Forbidden without a challenge
- Presented bearer tokens are echoed byte-for-byte
- Basic credentials are exchanged for a fresh, time-boxed token
- Tokens near expiry are treated as absent
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from conftest import (
    ALICE_PASSWORD,
    BOB_PASSWORD,
    TEST_REALM,
    TEST_START_TIME,
    FakeClock,
    basic_header,
    make_request,
)

from lfsgate.api.access import AccessDeniedError, AclRepositoryAccess
from lfsgate.api.auth import Authenticator
from lfsgate.api.config import GatewayConfig
from lfsgate.api.errors import ForbiddenError, LfsHttpError, UnauthorizedError
from lfsgate.api.gate import ROOT_PATH, SENTINEL_BRANCH, AccessGate
from lfsgate.api.tokens import LFS_SCOPE, HmacTokenIssuer
from lfsgate.api.users import User, UserRegistry

GateFactory = Callable[..., AccessGate]


class RecordingAccess:
    """Permission evaluator that records calls and denies everything."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str, str]] = []

    def check_read(self, user: User, branch: str, path: str) -> None:
        self.calls.append(("read", user.username, branch, path))
        raise AccessDeniedError(user, "read", branch, path)

    def check_write(self, user: User, branch: str, path: str) -> None:
        self.calls.append(("write", user.username, branch, path))
        raise AccessDeniedError(user, "write", branch, path)


class TestUnauthorized:
    """Anonymous callers failing the permission check."""

    def test_no_credentials_download_is_unauthorized(self, make_gate: GateFactory) -> None:
        gate = make_gate()

        with pytest.raises(UnauthorizedError) as exc_info:
            gate.authorize_download(make_request())

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers["WWW-Authenticate"] == f'Basic realm="{TEST_REALM}"'

    def test_no_credentials_upload_is_unauthorized(self, make_gate: GateFactory) -> None:
        gate = make_gate(readers=frozenset({"$anonymous"}))

        with pytest.raises(UnauthorizedError):
            gate.authorize_upload(make_request())

    @pytest.mark.parametrize(
        "authorization",
        [
            "Basic !!!not-base64",
            "Basic " + "bm9jb2xvbg==",
            "Digest username=alice",
            "Bearer forged-token",
            basic_header("alice", "wrong-password"),
            basic_header("mallory", "whatever"),
        ],
    )
    def test_unusable_credentials_fall_back_to_anonymous(
        self, make_gate: GateFactory, authorization: str
    ) -> None:
        gate = make_gate(readers=frozenset({"*"}))

        with pytest.raises(UnauthorizedError):
            gate.authorize_download(make_request(authorization))

    def test_unauthorized_is_not_forbidden(self, make_gate: GateFactory) -> None:
        gate = make_gate()

        with pytest.raises(LfsHttpError) as exc_info:
            gate.authorize_download(make_request())

        assert not isinstance(exc_info.value, ForbiddenError)


class TestForbidden:
    """Resolved identities failing the permission check."""

    def test_named_user_without_read_is_forbidden(self, make_gate: GateFactory) -> None:
        gate = make_gate(readers=frozenset({"alice"}))

        with pytest.raises(ForbiddenError) as exc_info:
            gate.authorize_download(make_request(basic_header("bob", BOB_PASSWORD)))

        assert exc_info.value.status_code == 403
        assert "WWW-Authenticate" not in exc_info.value.headers

    def test_reader_cannot_upload(self, make_gate: GateFactory) -> None:
        gate = make_gate(readers=frozenset({"bob"}), writers=frozenset({"alice"}))

        with pytest.raises(ForbiddenError):
            gate.authorize_upload(make_request(basic_header("bob", BOB_PASSWORD)))

    def test_token_user_without_access_is_forbidden(
        self, make_gate: GateFactory, token_issuer: HmacTokenIssuer
    ) -> None:
        gate = make_gate(readers=frozenset({"alice"}))
        token = token_issuer.issue(User(username="bob"), LFS_SCOPE, 3600)

        with pytest.raises(ForbiddenError):
            gate.authorize_download(make_request(token.header_value))


class TestPermissionCheck:
    """The check is collapsed to one repository-wide evaluation."""

    def test_checks_sentinel_branch_and_root(
        self,
        user_registry: UserRegistry,
        token_issuer: HmacTokenIssuer,
        gateway_config: GatewayConfig,
    ) -> None:
        access = RecordingAccess()
        gate = AccessGate(
            access=access,
            authenticator=Authenticator(user_registry, token_issuer),
            token_issuer=token_issuer,
            config=gateway_config,
        )

        with pytest.raises(ForbiddenError):
            gate.authorize_upload(make_request(basic_header("alice", ALICE_PASSWORD)))

        assert access.calls == [("write", "alice", SENTINEL_BRANCH, ROOT_PATH)]
        assert (SENTINEL_BRANCH, ROOT_PATH) == ("master", "/")


class TestHeaderSynthesis:
    """Header set produced for the follow-up storage request."""

    def test_bearer_token_is_echoed_verbatim(
        self, make_gate: GateFactory, token_issuer: HmacTokenIssuer
    ) -> None:
        gate = make_gate(readers=frozenset({"bob"}))
        header_value = token_issuer.issue(User(username="bob"), LFS_SCOPE, 3600).header_value

        user, header = gate.authorize_download(make_request(header_value))

        assert user.username == "bob"
        assert header == {"Authorization": header_value}

    def test_basic_credentials_get_fresh_token(
        self, make_gate: GateFactory, token_issuer: HmacTokenIssuer
    ) -> None:
        gate = make_gate(writers=frozenset({"alice"}))
        authorization = basic_header("alice", ALICE_PASSWORD)

        user, header = gate.authorize_upload(make_request(authorization))

        assert user.username == "alice"
        minted = header["Authorization"]
        assert minted.startswith("Bearer ")
        assert minted != authorization
        assert token_issuer.verify(minted[len("Bearer ") :], scope=LFS_SCOPE) == user

    def test_minted_token_expiry_within_window(
        self,
        make_gate: GateFactory,
        token_issuer: HmacTokenIssuer,
        clock: FakeClock,
        gateway_config: GatewayConfig,
    ) -> None:
        gate = make_gate(readers=frozenset({"bob"}))
        _, header = gate.authorize_download(make_request(basic_header("bob", BOB_PASSWORD)))
        token = header["Authorization"][len("Bearer ") :]

        clock.advance(gateway_config.token_expire_sec)
        assert token_issuer.verify(token, scope=LFS_SCOPE) is None

        clock.now = TEST_START_TIME + gateway_config.token_expire_sec - 1
        assert token_issuer.verify(token, scope=LFS_SCOPE) is not None

    def test_anonymous_allowed_without_credentials_gets_empty_header(
        self, make_gate: GateFactory
    ) -> None:
        gate = make_gate(readers=frozenset({"$anonymous"}))

        user, header = gate.authorize_download(make_request())

        assert user.anonymous
        assert header == {}

    def test_minting_without_issuer_fails_closed(
        self, user_registry: UserRegistry, gateway_config: GatewayConfig
    ) -> None:
        gate = AccessGate(
            access=AclRepositoryAccess(readers=frozenset({"*"})),
            authenticator=Authenticator(user_registry, None),
            token_issuer=None,
            config=gateway_config,
        )

        with pytest.raises(LfsHttpError) as exc_info:
            gate.authorize_download(make_request(basic_header("bob", BOB_PASSWORD)))

        assert exc_info.value.status_code == 500
        assert exc_info.value.code == "token_not_configured"


class TestTokenRenewalMargin:
    """Presented tokens must still cover the ensure margin."""

    def test_token_past_ensure_margin_is_challenged(
        self,
        make_gate: GateFactory,
        token_issuer: HmacTokenIssuer,
        clock: FakeClock,
        gateway_config: GatewayConfig,
    ) -> None:
        gate = make_gate(readers=frozenset({"bob"}))
        token = token_issuer.issue(User(username="bob"), LFS_SCOPE, gateway_config.token_expire_sec)

        clock.advance(gateway_config.token_expire_sec - gateway_config.token_ensure_seconds + 1)

        with pytest.raises(UnauthorizedError):
            gate.authorize_download(make_request(token.header_value))

    def test_token_inside_ensure_margin_is_accepted(
        self,
        make_gate: GateFactory,
        token_issuer: HmacTokenIssuer,
        clock: FakeClock,
        gateway_config: GatewayConfig,
    ) -> None:
        gate = make_gate(readers=frozenset({"bob"}))
        token = token_issuer.issue(User(username="bob"), LFS_SCOPE, gateway_config.token_expire_sec)

        clock.advance(gateway_config.token_expire_sec - gateway_config.token_ensure_seconds - 1)

        user, _ = gate.authorize_download(make_request(token.header_value))
        assert user.username == "bob"


class TestScenario:
    def test_anonymous_request_for_object_against_read_denying_policy(
        self, make_gate: GateFactory
    ) -> None:
        """Anonymous request for abc123 with no credential header is challenged."""
        gate = make_gate(readers=frozenset({"alice"}))

        with pytest.raises(UnauthorizedError) as exc_info:
            gate.authorize_download(make_request())

        assert exc_info.value.realm == TEST_REALM
        assert TEST_REALM in exc_info.value.headers["WWW-Authenticate"]


class TestAnonymousTokens:
    """Tokens minted for anonymous callers stay anonymous."""

    def test_anonymous_token_does_not_grant_named_access(self, make_gate: GateFactory) -> None:
        gate = make_gate(readers=frozenset({"$anonymous"}), writers=frozenset({"*"}))

        user, header = gate.authorize_download(make_request("Basic !!!"))
        assert user.anonymous

        with pytest.raises(UnauthorizedError):
            gate.authorize_upload(make_request(header["Authorization"]))

    def test_anonymous_token_resolves_to_anonymous_user(
        self, make_gate: GateFactory, token_issuer: HmacTokenIssuer
    ) -> None:
        gate = make_gate(readers=frozenset({"$anonymous"}))
        token = token_issuer.issue(User.anonymous_user(), LFS_SCOPE, 3600)

        user, header = gate.authorize_download(make_request(token.header_value))

        assert user == User.anonymous_user()
        assert header == {"Authorization": token.header_value}

    def test_anonymous_token_denied_is_unauthorized(
        self, make_gate: GateFactory, token_issuer: HmacTokenIssuer
    ) -> None:
        gate = make_gate(readers=frozenset({"*"}))
        token = token_issuer.issue(User.anonymous_user(), LFS_SCOPE, 3600)

        with pytest.raises(UnauthorizedError):
            gate.authorize_download(make_request(token.header_value))
