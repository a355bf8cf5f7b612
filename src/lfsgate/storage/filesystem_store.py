"""lfsgate filesystem content store backend.

Provides local filesystem storage for development and testing with:
- Content-addressed layout derived from the SHA-256 identity
- Streaming writer sessions hashed incrementally while bytes arrive
- Atomic publication (temp file + os.replace) after identity verification
- Optional precompressed (gzip) copies for compressed delivery

Environment Variables:
    LFSGATE_OBJECT_STORE_BASE_DIR: Base directory for storage
        (default: tempfile.gettempdir() / lfsgate_objects)
    LFSGATE_OBJECT_STORE_GZIP: "true" to keep a gzip copy of each object
"""

from __future__ import annotations

import gzip
import hashlib
import json
import logging
import os
import re
import tempfile
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from lfsgate.storage.content_store import OID_PREFIX, ContentStore, ObjectReader, ObjectWriter
from lfsgate.storage.errors import (
    IntegrityMismatchError,
    StorageBackendError,
    WriterClosedError,
)
from lfsgate.storage.models import ObjectRecord
from lfsgate.storage.tracing import get_env_bool, traced_storage_operation

logger = logging.getLogger(__name__)

LFSGATE_OBJECT_STORE_BASE_DIR_ENV = "LFSGATE_OBJECT_STORE_BASE_DIR"
LFSGATE_OBJECT_STORE_GZIP_ENV = "LFSGATE_OBJECT_STORE_GZIP"

_OID_PATTERN = re.compile(r"^sha256:[0-9a-f]{64}$")

_GZIP_SUFFIX = ".gz"
_RECORD_SUFFIX = ".meta.json"
_TMP_SUFFIX = ".tmp"


def is_valid_oid(oid: str) -> bool:
    """Check that an identity is a namespace-prefixed lowercase SHA-256 digest."""
    return bool(_OID_PATTERN.match(oid))


class FilesystemObjectReader(ObjectReader):
    """Reader over a published object file."""

    def __init__(self, oid: str, path: Path, gzip_path: Path) -> None:
        self._oid = oid
        self._path = path
        self._gzip_path = gzip_path

    @property
    def oid(self) -> str:
        return self._oid

    @property
    def size(self) -> int:
        return self._path.stat().st_size

    def open_stream(self) -> BinaryIO:
        return self._path.open("rb")

    def open_gzip_stream(self) -> BinaryIO | None:
        if not self._gzip_path.exists():
            return None
        return self._gzip_path.open("rb")


class FilesystemObjectWriter(ObjectWriter):
    """Writer session that spools into the store's tmp directory.

    Bytes are hashed as they are written; finish() compares the digest with
    the asserted identity and only then moves the spool file into place.
    """

    def __init__(self, store: FilesystemContentStore, username: str | None) -> None:
        self._store = store
        self._username = username
        self._digest = hashlib.sha256()
        self._size = 0
        self._closed = False

        token = uuid.uuid4().hex
        self._tmp_path = store.tmp_dir / f"{token}{_TMP_SUFFIX}"
        self._tmp_gzip_path: Path | None = None
        self._gzip_file: gzip.GzipFile | None = None
        try:
            self._file: BinaryIO = self._tmp_path.open("wb")
        except OSError as e:
            self._closed = True
            raise StorageBackendError(
                message=f"Failed to open writer session: {e}",
                cause=e,
            ) from e

        try:
            if store.keep_gzip:
                self._tmp_gzip_path = store.tmp_dir / f"{token}{_GZIP_SUFFIX}{_TMP_SUFFIX}"
                self._gzip_file = gzip.GzipFile(self._tmp_gzip_path, mode="wb")
        except OSError as e:
            self._discard()
            raise StorageBackendError(
                message=f"Failed to open writer session: {e}",
                cause=e,
            ) from e

    @property
    def backend_name(self) -> str:
        return self._store.backend_name

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        if self._closed:
            raise WriterClosedError()
        try:
            self._file.write(data)
            if self._gzip_file is not None:
                self._gzip_file.write(data)
        except OSError as e:
            raise StorageBackendError(message=f"Failed to write content: {e}", cause=e) from e
        self._digest.update(data)
        self._size += len(data)
        return len(data)

    @traced_storage_operation("finish")
    def finish(self, expected_oid: str) -> str:
        if self._closed:
            raise WriterClosedError()

        actual_oid = OID_PREFIX + self._digest.hexdigest()
        try:
            self._close_files()
        except OSError as e:
            self._discard()
            raise StorageBackendError(
                message=f"Failed to flush content: {e}",
                oid=expected_oid,
                cause=e,
            ) from e

        if actual_oid != expected_oid:
            self._discard()
            logger.warning(
                "Integrity mismatch: expected=%s actual=%s size=%d",
                expected_oid,
                actual_oid,
                self._size,
            )
            raise IntegrityMismatchError(expected_oid=expected_oid, actual_oid=actual_oid)

        try:
            self._publish(actual_oid)
        except OSError as e:
            self._discard()
            raise StorageBackendError(
                message=f"Failed to publish object: {e}",
                oid=actual_oid,
                cause=e,
            ) from e

        self._closed = True
        return actual_oid

    def abort(self) -> None:
        if self._closed:
            return
        self._discard()
        logger.debug("Aborted writer session after %d bytes", self._size)

    def _publish(self, oid: str) -> None:
        """Move the spooled files into their content-addressed location."""
        path = self._store.object_path(oid)
        if path.exists():
            # Same identity means same bytes; the existing copy stays.
            self._unlink_tmp_files()
            logger.debug("Object already present: oid=%s", oid)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        placed: list[Path] = []
        try:
            if self._tmp_gzip_path is not None:
                gzip_target = path.with_name(path.name + _GZIP_SUFFIX)
                self._tmp_gzip_path.replace(gzip_target)
                self._tmp_gzip_path = None
                placed.append(gzip_target)

            record = ObjectRecord(
                oid=oid,
                size=self._size,
                created_by=self._username,
                created_at=datetime.now(UTC),
            )
            record_tmp = self._store.tmp_dir / f"{uuid.uuid4().hex}{_RECORD_SUFFIX}{_TMP_SUFFIX}"
            record_tmp.write_text(json.dumps(record.to_dict(), indent=2), encoding="utf-8")
            record_target = path.with_name(path.name + _RECORD_SUFFIX)
            try:
                record_tmp.replace(record_target)
            finally:
                record_tmp.unlink(missing_ok=True)
            placed.append(record_target)

            # Data file last: an object is reachable only once this rename lands.
            self._tmp_path.replace(path)
        except OSError:
            if not path.exists():
                for target in placed:
                    target.unlink(missing_ok=True)
            raise
        logger.debug("Published object: oid=%s size=%d", oid, self._size)

    def _close_files(self) -> None:
        if self._gzip_file is not None:
            self._gzip_file.close()
            self._gzip_file = None
        if not self._file.closed:
            self._file.close()

    def _unlink_tmp_files(self) -> None:
        self._tmp_path.unlink(missing_ok=True)
        if self._tmp_gzip_path is not None:
            self._tmp_gzip_path.unlink(missing_ok=True)
            self._tmp_gzip_path = None

    def _discard(self) -> None:
        """Close and remove spool files, marking the session released."""
        self._closed = True
        try:
            self._close_files()
        except OSError as e:
            logger.warning("Failed to close writer spool: %s", e)
        self._unlink_tmp_files()


class FilesystemContentStore(ContentStore):
    """Filesystem-based content store implementation.

    Objects are stored in a directory structure:
        {base_dir}/objects/{h[0:2]}/{h[2:4]}/
            {h}               # content
            {h}.gz            # precompressed content (optional)
            {h}.meta.json     # upload record
        {base_dir}/tmp/       # in-flight writer sessions

    where h is the hex digest without the "sha256:" namespace prefix.
    """

    def __init__(
        self, base_dir: str | Path | None = None, *, keep_gzip: bool | None = None
    ) -> None:
        """Initialize filesystem storage.

        Args:
            base_dir: Base directory for storage. If None, uses
                LFSGATE_OBJECT_STORE_BASE_DIR env var or OS temp directory.
            keep_gzip: Keep precompressed copies. If None, uses
                LFSGATE_OBJECT_STORE_GZIP env var.
        """
        if base_dir is None:
            base_dir = os.environ.get(LFSGATE_OBJECT_STORE_BASE_DIR_ENV)

        if base_dir is None:
            base_dir = Path(tempfile.gettempdir()) / "lfsgate_objects"
        else:
            base_dir = Path(base_dir)

        if keep_gzip is None:
            keep_gzip = get_env_bool(LFSGATE_OBJECT_STORE_GZIP_ENV, False)

        self._base_dir = base_dir.resolve()
        self._keep_gzip = keep_gzip
        try:
            self.tmp_dir.mkdir(parents=True, exist_ok=True)
            self.objects_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to create storage directories: {e}",
                cause=e,
            ) from e
        logger.info(
            "FilesystemContentStore initialized with base_dir=%s keep_gzip=%s",
            self._base_dir,
            self._keep_gzip,
        )

    @property
    def backend_name(self) -> str:
        return "filesystem"

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def objects_dir(self) -> Path:
        return self._base_dir / "objects"

    @property
    def tmp_dir(self) -> Path:
        return self._base_dir / "tmp"

    @property
    def keep_gzip(self) -> bool:
        return self._keep_gzip

    def object_path(self, oid: str) -> Path:
        """Map a validated identity to its content file path."""
        digest = oid[len(OID_PREFIX) :]
        return self.objects_dir / digest[0:2] / digest[2:4] / digest

    def read_record(self, oid: str) -> ObjectRecord | None:
        """Read the upload record written when an object was first published."""
        if not is_valid_oid(oid):
            return None
        path = self.object_path(oid)
        record_path = path.with_name(path.name + _RECORD_SUFFIX)
        try:
            return ObjectRecord.from_dict(json.loads(record_path.read_text(encoding="utf-8")))
        except FileNotFoundError:
            return None
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.warning("Failed to read object record for %s: %s", oid, e)
            return None

    @traced_storage_operation("get_reader")
    def get_reader(self, oid: str) -> ObjectReader | None:
        if not is_valid_oid(oid):
            logger.debug("Rejected malformed oid: %r", oid)
            return None

        path = self.object_path(oid)
        if not path.is_file():
            return None
        return FilesystemObjectReader(oid, path, path.with_name(path.name + _GZIP_SUFFIX))

    def get_writer(self, username: str | None = None) -> ObjectWriter:
        return FilesystemObjectWriter(self, username)
