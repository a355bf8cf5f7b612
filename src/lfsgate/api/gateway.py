"""Object gateway: the download/upload contract consumed by the transport.

Authorization always happens first (check_download_access /
check_upload_access, or an explicit AccessGate call by the caller); the
storage operations themselves perform no access checks. In particular
metadata() answers for any identity and must never be used to decide
whether a caller may see an object.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO

from lfsgate.api.gate import AccessGate, CredentialRequest
from lfsgate.api.users import User
from lfsgate.storage.content_store import OID_PREFIX, ContentStore, ObjectReader
from lfsgate.storage.errors import ObjectNotFoundError
from lfsgate.storage.models import ObjectMeta

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Downloader:
    """Read operations bound to an authorized caller.

    Attributes:
        user: Caller resolved by the access gate.
        header: Headers for the follow-up storage request.
    """

    user: User
    header: dict[str, str]
    gateway: ObjectGateway

    def open_object(self, oid: str) -> BinaryIO:
        return self.gateway.download(oid)

    def open_object_gzipped(self, oid: str) -> BinaryIO | None:
        return self.gateway.download_gzipped(oid)


@dataclass(frozen=True)
class Uploader:
    """Write operations bound to an authorized caller.

    Attributes:
        user: Caller resolved by the access gate.
        header: Headers for the follow-up storage request.
    """

    user: User
    header: dict[str, str]
    gateway: ObjectGateway

    def save_object(self, oid: str, content: BinaryIO) -> ObjectMeta:
        return self.gateway.upload(oid, content, user=self.user)


class ObjectGateway:
    """Large-object download/upload on top of a content store.

    Object ids handled here are bare hex digests; the storage namespace
    prefix is added before the store is consulted.
    """

    def __init__(self, gate: AccessGate, store: ContentStore) -> None:
        self._gate = gate
        self._store = store

    @property
    def gate(self) -> AccessGate:
        return self._gate

    @property
    def store(self) -> ContentStore:
        return self._store

    def check_download_access(self, request: CredentialRequest) -> Downloader:
        user, header = self._gate.authorize_download(request)
        return Downloader(user=user, header=header, gateway=self)

    def check_upload_access(self, request: CredentialRequest) -> Uploader:
        user, header = self._gate.authorize_upload(request)
        return Uploader(user=user, header=header, gateway=self)

    def _reader(self, oid: str) -> ObjectReader:
        reader = self._store.get_reader(OID_PREFIX + oid)
        if reader is None:
            raise ObjectNotFoundError(oid=oid)
        return reader

    def download(self, oid: str) -> BinaryIO:
        """Open an object for reading.

        Raises:
            ObjectNotFoundError: If the object is absent.
        """
        return self._reader(oid).open_stream()

    def download_gzipped(self, oid: str) -> BinaryIO | None:
        """Open the precompressed copy of an object.

        Returns:
            The gzip stream, or None when the caller should fall back to
            uncompressed delivery.

        Raises:
            ObjectNotFoundError: If the object is absent.
        """
        return self._reader(oid).open_gzip_stream()

    def upload(self, oid: str, content: BinaryIO, *, user: User | None = None) -> ObjectMeta:
        """Copy a stream into the store and publish it as oid.

        The store recomputes the digest of the copied bytes; this is the only
        place a client-supplied hash is verified.

        Raises:
            IntegrityMismatchError: If the content does not hash to oid.
            StorageBackendError: If the store fails.
            OSError: If reading from content fails.
        """
        username = None if user is None or user.anonymous else user.username
        size = 0
        with self._store.get_writer(username) as writer:
            while True:
                chunk = content.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                writer.write(chunk)
                size += len(chunk)
            writer.finish(OID_PREFIX + oid)

        logger.info("Stored object: oid=%s size=%d user=%s", oid, size, username)
        return ObjectMeta(oid=oid, size=size)

    def metadata(self, oid: str) -> ObjectMeta | None:
        """Return {oid, size} for a stored object, or None if absent."""
        reader = self._store.get_reader(OID_PREFIX + oid)
        if reader is None:
            return None
        return ObjectMeta(oid=reader.get_oid(True), size=reader.size)
