"""lfsgate content-addressable object storage.

Objects are addressed by a namespace-prefixed SHA-256 identity
("sha256:<hex>"). Writes go through single-use writer sessions that are
finalized against a caller-asserted identity; the store recomputes the
digest from the written bytes and refuses to publish on mismatch.

Backends:
- FilesystemContentStore: Local filesystem (dev/test)

Environment Variables:
    LFSGATE_OBJECT_STORE_BASE_DIR: Base directory for filesystem backend
        (default: OS temp dir / lfsgate_objects)
    LFSGATE_OBJECT_STORE_GZIP: Keep a precompressed copy of every object
"""

from lfsgate.storage.content_store import OID_PREFIX, ContentStore, ObjectReader, ObjectWriter
from lfsgate.storage.errors import (
    IntegrityMismatchError,
    ObjectNotFoundError,
    ObjectStorageError,
    StorageBackendError,
    WriterClosedError,
)
from lfsgate.storage.models import ObjectMeta

__all__ = [
    "OID_PREFIX",
    "ContentStore",
    "ObjectReader",
    "ObjectWriter",
    "ObjectMeta",
    "ObjectStorageError",
    "ObjectNotFoundError",
    "IntegrityMismatchError",
    "StorageBackendError",
    "WriterClosedError",
]
