"""BlobSource backed by a dulwich object store."""

from __future__ import annotations

from collections.abc import Iterator

from dulwich.object_store import BaseObjectStore
from dulwich.objects import Blob


class DulwichBlobSource:
    """Read blobs from a git repository through dulwich.

    Args:
        object_store: Object store of the repository, e.g. ``Repo(path).object_store``.
    """

    def __init__(self, object_store: BaseObjectStore) -> None:
        self._object_store = object_store

    def _blob(self, object_id: str) -> Blob:
        obj = self._object_store[object_id.encode("ascii")]
        if not isinstance(obj, Blob):
            raise ValueError(f"Object {object_id} is a {obj.type_name.decode()}, not a blob")
        return obj

    def object_size(self, object_id: str) -> int:
        return self._blob(object_id).raw_length()

    def open_object(self, object_id: str) -> Iterator[bytes]:
        return iter(self._blob(object_id).as_raw_chunks())
