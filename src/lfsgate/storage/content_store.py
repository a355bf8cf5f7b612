"""lfsgate content store interface definition.

Provides the ContentStore contract that all storage backends implement, plus
the reader and single-use writer session types it hands out.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import BinaryIO

OID_PREFIX = "sha256:"


class ObjectReader(ABC):
    """Read handle for one stored object."""

    @property
    @abstractmethod
    def oid(self) -> str:
        """Namespace-prefixed identity of the object."""
        ...

    @property
    @abstractmethod
    def size(self) -> int:
        """Size of the stored content in bytes."""
        ...

    def get_oid(self, hash_only: bool) -> str:
        """Return the identity, optionally stripped of the namespace prefix."""
        if hash_only and self.oid.startswith(OID_PREFIX):
            return self.oid[len(OID_PREFIX) :]
        return self.oid

    @abstractmethod
    def open_stream(self) -> BinaryIO:
        """Open the uncompressed content for reading."""
        ...

    @abstractmethod
    def open_gzip_stream(self) -> BinaryIO | None:
        """Open a precompressed copy, or None when none is available."""
        ...


class ObjectWriter(ABC):
    """Single-writer, single-use sink for one upload.

    States: open -> finished(oid) | aborted. The session must be released
    exactly once; use it as a context manager so that leaving the block
    without finish() aborts it.
    """

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Append bytes to the session.

        Raises:
            WriterClosedError: If the session was already released.
            StorageBackendError: If the backend cannot accept the bytes.
        """
        ...

    @abstractmethod
    def finish(self, expected_oid: str) -> str:
        """Publish the written bytes under the asserted identity.

        Args:
            expected_oid: Namespace-prefixed identity claimed by the caller.

        Returns:
            The published identity.

        Raises:
            IntegrityMismatchError: If the written bytes hash to another identity.
            WriterClosedError: If the session was already released.
            StorageBackendError: If the backend cannot publish the object.
        """
        ...

    @abstractmethod
    def abort(self) -> None:
        """Discard written bytes. No-op once the session is released."""
        ...

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once the session was finished or aborted."""
        ...

    def close(self) -> None:
        """Release the session, aborting it when it was not finished."""
        if not self.closed:
            self.abort()

    def __enter__(self) -> ObjectWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class ContentStore(ABC):
    """Abstract base class for content-addressable storage backends.

    Implementations must:
    - recompute the identity of written bytes at finalize time
    - never expose partially written content under its target identity
    - support concurrent readers and concurrent independent writers

    Implementations:
    - FilesystemContentStore: Local filesystem (dev/test)
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability."""
        ...

    @abstractmethod
    def get_reader(self, oid: str) -> ObjectReader | None:
        """Look up an object.

        Args:
            oid: Namespace-prefixed identity.

        Returns:
            Reader for the object, or None when it is absent.

        Raises:
            StorageBackendError: If the backend cannot complete the lookup.
        """
        ...

    @abstractmethod
    def get_writer(self, username: str | None = None) -> ObjectWriter:
        """Open a new writer session.

        Args:
            username: Uploader recorded with a newly published object.

        Raises:
            StorageBackendError: If the backend cannot allocate a session.
        """
        ...
