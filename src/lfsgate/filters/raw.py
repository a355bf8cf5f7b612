"""Pass-through filter: blob content as stored in the repository."""

from __future__ import annotations

from collections.abc import Iterator
from typing import BinaryIO

from lfsgate.filters.base import BlobRef
from lfsgate.filters.cache import SqliteFilterCache
from lfsgate.filters.helper import cached_md5


class RawFilter:
    """Get object as is."""

    def __init__(self, cache: SqliteFilterCache) -> None:
        self._cache = cache

    @property
    def name(self) -> str:
        return "raw"

    def get_md5(self, blob: BlobRef) -> str:
        return cached_md5(self, self._cache, blob)

    def get_size(self, blob: BlobRef) -> int:
        return blob.source.object_size(blob.object_id)

    def input_stream(self, blob: BlobRef) -> Iterator[bytes]:
        return blob.source.open_object(blob.object_id)

    def output_stream(self, sink: BinaryIO) -> BinaryIO:
        return sink
