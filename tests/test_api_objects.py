"""HTTP tests for the object routes, error envelope and health endpoint."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from typing import Any

import pytest
from conftest import ALICE_PASSWORD, BOB_PASSWORD, TEST_REALM, basic_header
from fastapi.testclient import TestClient
from starlette.concurrency import run_in_threadpool

from lfsgate.api.gate import AccessGate
from lfsgate.api.gateway import ObjectGateway
from lfsgate.api.main import create_app
from lfsgate.api.middleware.request_id import resolve_request_id
from lfsgate.api.routes import objects as objects_routes
from lfsgate.storage.filesystem_store import FilesystemContentStore

CONTENT = b"binary payload " * 1000
OID = hashlib.sha256(CONTENT).hexdigest()

ALICE = {"Authorization": basic_header("alice", ALICE_PASSWORD)}
BOB = {"Authorization": basic_header("bob", BOB_PASSWORD)}


@pytest.fixture
def client(gateway: ObjectGateway) -> TestClient:
    return TestClient(create_app(gateway))


def upload(client: TestClient, oid: str = OID, content: bytes = CONTENT) -> None:
    response = client.put(f"/objects/{oid}", content=content, headers=ALICE)
    assert response.status_code == 200, response.text


class TestAuthorization:
    def test_anonymous_download_is_challenged(self, client: TestClient) -> None:
        response = client.get(f"/objects/{OID}")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == f'Basic realm="{TEST_REALM}"'
        assert response.json()["code"] == "unauthorized"

    def test_anonymous_upload_is_challenged(self, client: TestClient) -> None:
        response = client.put(f"/objects/{OID}", content=CONTENT)

        assert response.status_code == 401

    def test_reader_upload_is_forbidden(self, client: TestClient) -> None:
        response = client.put(f"/objects/{OID}", content=CONTENT, headers=BOB)

        assert response.status_code == 403
        assert "WWW-Authenticate" not in response.headers
        assert response.json()["code"] == "forbidden"

    def test_anonymous_request_for_short_oid_is_challenged(self, client: TestClient) -> None:
        response = client.get("/objects/abc123")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == f'Basic realm="{TEST_REALM}"'

    def test_access_checked_before_existence(self, client: TestClient) -> None:
        response = client.get(f"/objects/{OID}/meta")

        assert response.status_code == 401


class TestTransfer:
    def test_upload_then_download(self, client: TestClient) -> None:
        response = client.put(f"/objects/{OID}", content=CONTENT, headers=ALICE)

        assert response.status_code == 200
        body = response.json()
        assert body["oid"] == OID
        assert body["size"] == len(CONTENT)
        assert body["header"]["Authorization"].startswith("Bearer ")

        download = client.get(f"/objects/{OID}", headers=BOB)
        assert download.status_code == 200
        assert download.content == CONTENT
        assert download.headers["content-type"] == "application/octet-stream"

    def test_follow_up_with_minted_token(self, client: TestClient) -> None:
        upload(client)
        meta = client.get(f"/objects/{OID}/meta", headers=BOB).json()
        token_header = meta["header"]

        response = client.get(f"/objects/{OID}", headers=token_header)

        assert response.status_code == 200
        assert response.content == CONTENT

    def test_bearer_header_echoed_in_meta(self, client: TestClient) -> None:
        upload(client)
        token_header = client.get(f"/objects/{OID}/meta", headers=BOB).json()["header"]

        echoed = client.get(f"/objects/{OID}/meta", headers=token_header).json()["header"]

        assert echoed == token_header

    def test_meta_reports_size(self, client: TestClient) -> None:
        upload(client)

        response = client.get(f"/objects/{OID}/meta", headers=BOB)

        assert response.status_code == 200
        assert response.json()["oid"] == OID
        assert response.json()["size"] == len(CONTENT)

    def test_missing_object_is_404(self, client: TestClient) -> None:
        response = client.get(f"/objects/{OID}", headers=BOB)

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_missing_meta_is_404(self, client: TestClient) -> None:
        response = client.get(f"/objects/{OID}/meta", headers=BOB)

        assert response.status_code == 404

    def test_integrity_mismatch_is_422(self, client: TestClient) -> None:
        response = client.put(f"/objects/{OID}", content=b"tampered", headers=ALICE)

        assert response.status_code == 422
        assert response.json()["code"] == "integrity_mismatch"
        assert client.get(f"/objects/{OID}/meta", headers=BOB).status_code == 404

    def test_upload_past_spool_limit_writes_off_event_loop(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        dispatched: list[str] = []

        async def recording_threadpool(func: Callable[..., Any], *args: Any) -> Any:
            dispatched.append(getattr(func, "__name__", repr(func)))
            return await run_in_threadpool(func, *args)

        monkeypatch.setattr(objects_routes, "SPOOL_MAX_MEMORY", 1024)
        monkeypatch.setattr(objects_routes, "run_in_threadpool", recording_threadpool)

        upload(client)

        assert "write" in dispatched
        assert dispatched[-1] == "save_object"
        assert client.get(f"/objects/{OID}", headers=BOB).content == CONTENT

    def test_plain_delivery_when_no_gzip_copy(self, client: TestClient) -> None:
        upload(client)

        response = client.get(f"/objects/{OID}", headers={**BOB, "Accept-Encoding": "gzip"})

        assert response.status_code == 200
        assert "content-encoding" not in response.headers
        assert response.content == CONTENT


class TestGzipDelivery:
    @pytest.fixture
    def gzip_client(
        self, make_gate: Callable[..., AccessGate], gzip_store: FilesystemContentStore
    ) -> TestClient:
        gate = make_gate(readers=frozenset({"bob"}), writers=frozenset({"alice"}))
        return TestClient(create_app(ObjectGateway(gate, gzip_store)))

    def test_gzip_copy_served_when_accepted(self, gzip_client: TestClient) -> None:
        upload(gzip_client)

        response = gzip_client.get(
            f"/objects/{OID}", headers={**BOB, "Accept-Encoding": "gzip, deflate"}
        )

        assert response.status_code == 200
        assert response.headers["content-encoding"] == "gzip"
        assert response.content == CONTENT

    def test_identity_requested(self, gzip_client: TestClient) -> None:
        upload(gzip_client)

        response = gzip_client.get(
            f"/objects/{OID}", headers={**BOB, "Accept-Encoding": "identity"}
        )

        assert "content-encoding" not in response.headers
        assert response.content == CONTENT


class TestEnvelope:
    def test_request_id_echoed(self, client: TestClient) -> None:
        response = client.get(f"/objects/{OID}", headers={"X-Request-Id": "req-123"})

        assert response.headers["X-Request-Id"] == "req-123"
        assert response.json()["request_id"] == "req-123"

    def test_request_id_generated(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.headers["X-Request-Id"]

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_oversized_request_id_replaced(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-Id": "r" * 500})

        request_id = response.headers["X-Request-Id"]
        assert request_id and request_id != "r" * 500

    def test_streamed_download_carries_request_id(self, client: TestClient) -> None:
        upload(client)

        response = client.get(f"/objects/{OID}", headers={**BOB, "X-Request-Id": "dl-1"})

        assert response.status_code == 200
        assert response.headers["X-Request-Id"] == "dl-1"


class TestResolveRequestId:
    def test_keeps_printable_id(self) -> None:
        assert resolve_request_id("  abc-123  ") == "abc-123"

    @pytest.mark.parametrize("incoming", [None, "", "   ", "x" * 129, "bad\x00id", "ünï"])
    def test_generates_for_unusable_id(self, incoming: str | None) -> None:
        request_id = resolve_request_id(incoming)

        assert request_id != incoming
        assert len(request_id) == 36
