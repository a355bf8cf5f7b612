"""lfsgate object storage error types.

All errors are fail-closed: an operation that cannot complete safely raises,
and nothing written by a failed operation becomes reachable by identity.
"""

from __future__ import annotations


class ObjectStorageError(Exception):
    """Base exception for object storage operations.

    Attributes:
        message: Human-readable error message.
        oid: Object identity associated with the operation (if applicable).
    """

    def __init__(self, message: str, *, oid: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.oid = oid

    def __str__(self) -> str:
        if self.oid:
            return f"{self.message} oid={self.oid}"
        return self.message


class ObjectNotFoundError(ObjectStorageError):
    """Raised when the requested identity is absent from the store."""

    def __init__(self, message: str = "Object not found", *, oid: str | None = None) -> None:
        super().__init__(message, oid=oid)


class IntegrityMismatchError(ObjectStorageError):
    """Raised when finalize-time digest disagrees with the asserted identity.

    The bytes written by the session are discarded before this is raised.

    Attributes:
        expected_oid: Identity asserted by the caller.
        actual_oid: Identity recomputed from the written bytes.
    """

    def __init__(
        self,
        message: str = "Content does not match asserted identity",
        *,
        expected_oid: str,
        actual_oid: str,
    ) -> None:
        super().__init__(message, oid=expected_oid)
        self.expected_oid = expected_oid
        self.actual_oid = actual_oid


class StorageBackendError(ObjectStorageError):
    """Raised when the storage backend itself fails (disk full, permissions, I/O)."""

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        oid: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, oid=oid)
        self.cause = cause


class WriterClosedError(ObjectStorageError):
    """Raised when a writer session is used after it was finished or aborted."""

    def __init__(self, message: str = "Writer session already released") -> None:
        super().__init__(message)
