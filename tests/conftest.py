"""Pytest configuration and fixtures for lfsgate tests.

Provides deterministic collaborators for the access gate (fixed clock,
in-memory user registry, allow-list ACL) and a filesystem content store
rooted in a per-test temporary directory.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from lfsgate.api.access import AclRepositoryAccess
from lfsgate.api.auth import Authenticator
from lfsgate.api.config import GatewayConfig
from lfsgate.api.gate import AccessGate
from lfsgate.api.gateway import ObjectGateway
from lfsgate.api.tokens import HmacTokenIssuer
from lfsgate.api.users import UserRecord, UserRegistry, hash_password
from lfsgate.storage.filesystem_store import FilesystemContentStore

TEST_REALM = "Test LFS Realm"
TEST_TOKEN_SECRET = "test-token-secret-key-32-characters"
TEST_START_TIME = 1_700_000_000.0

ALICE_PASSWORD = "alice-password"
BOB_PASSWORD = "bob-password"


class FakeClock:
    """Settable time source for token tests."""

    def __init__(self, now: float = TEST_START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def basic_header(username: str, password: str) -> str:
    """Build a Basic Authorization header value."""
    raw = f"{username}:{password}".encode()
    return "Basic " + base64.b64encode(raw).decode("ascii")


def make_request(authorization: str | None = None, **headers: str) -> Any:
    """Build a minimal request object exposing headers."""
    values = dict(headers)
    if authorization is not None:
        values["Authorization"] = authorization
    return SimpleNamespace(headers=values)


@pytest.fixture(autouse=True)
def clean_lfsgate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment from leaking into configuration loaders."""
    for name in (
        "LFSGATE_REALM",
        "LFSGATE_TOKEN_SECRET",
        "LFSGATE_TOKEN_EXPIRE_SEC",
        "LFSGATE_TOKEN_ENSURE_TIME",
        "LFSGATE_USERS_JSON",
        "LFSGATE_ACL_JSON",
        "LFSGATE_OBJECT_STORE_BASE_DIR",
        "LFSGATE_OBJECT_STORE_GZIP",
        "LFSGATE_FILTER_CACHE_DB_PATH",
        "LFSGATE_OTEL_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_issuer(clock: FakeClock) -> HmacTokenIssuer:
    return HmacTokenIssuer(TEST_TOKEN_SECRET, clock=clock)


@pytest.fixture
def user_registry() -> UserRegistry:
    """Registry with alice (writer) and bob (reader)."""
    return UserRegistry(
        {
            "alice": UserRecord(
                password_sha256=hash_password(ALICE_PASSWORD),
                real_name="Alice Example",
                email="alice@example.com",
            ),
            "bob": UserRecord(password_sha256=hash_password(BOB_PASSWORD)),
        }
    )


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(realm=TEST_REALM, token_expire_sec=3600, token_ensure_time=0.5)


@pytest.fixture
def make_gate(
    user_registry: UserRegistry,
    token_issuer: HmacTokenIssuer,
    gateway_config: GatewayConfig,
) -> Callable[..., AccessGate]:
    """Factory building an AccessGate over a given ACL."""

    def _make(
        readers: frozenset[str] = frozenset(),
        writers: frozenset[str] = frozenset(),
    ) -> AccessGate:
        return AccessGate(
            access=AclRepositoryAccess(readers=readers, writers=writers),
            authenticator=Authenticator(user_registry, token_issuer),
            token_issuer=token_issuer,
            config=gateway_config,
        )

    return _make


@pytest.fixture
def store(tmp_path: Path) -> FilesystemContentStore:
    return FilesystemContentStore(base_dir=tmp_path / "lfs", keep_gzip=False)


@pytest.fixture
def gzip_store(tmp_path: Path) -> FilesystemContentStore:
    return FilesystemContentStore(base_dir=tmp_path / "lfs-gz", keep_gzip=True)


@pytest.fixture
def gateway(
    make_gate: Callable[..., AccessGate], store: FilesystemContentStore
) -> ObjectGateway:
    """Gateway where alice writes, bob reads, anonymous is denied."""
    gate = make_gate(readers=frozenset({"bob"}), writers=frozenset({"alice"}))
    return ObjectGateway(gate, store)
