"""Gzip filter: repository stores blobs gzip-compressed.

The filtered representation is the decompressed content; writing through
output_stream() compresses into the underlying sink.
"""

from __future__ import annotations

import gzip
import zlib
from collections.abc import Iterator
from typing import BinaryIO

from lfsgate.filters.base import BlobRef
from lfsgate.filters.cache import SqliteFilterCache
from lfsgate.filters.helper import cached_md5

_GZIP_WBITS = 16 + zlib.MAX_WBITS


def _decompress(chunks: Iterator[bytes]) -> Iterator[bytes]:
    """Lazily decompress a gzip stream of one or more members.

    Raises:
        zlib.error: If the stream is corrupt or ends inside a member.
    """
    decompressor = zlib.decompressobj(_GZIP_WBITS)
    consumed = False
    for chunk in chunks:
        while chunk:
            consumed = True
            if decompressor.eof:
                # Previous member is complete; these bytes start the next one.
                decompressor = zlib.decompressobj(_GZIP_WBITS)
            data = decompressor.decompress(chunk)
            if data:
                yield data
            chunk = decompressor.unused_data

    tail = decompressor.flush()
    if tail:
        yield tail
    if consumed and not decompressor.eof:
        raise zlib.error("Truncated gzip stream")


class GzipFilter:
    """Decompress gzip blob content before hashing and delivery."""

    def __init__(self, cache: SqliteFilterCache) -> None:
        self._cache = cache

    @property
    def name(self) -> str:
        return "gzip"

    def get_md5(self, blob: BlobRef) -> str:
        return cached_md5(self, self._cache, blob)

    def get_size(self, blob: BlobRef) -> int:
        return blob.source.object_size(blob.object_id)

    def input_stream(self, blob: BlobRef) -> Iterator[bytes]:
        return _decompress(blob.source.open_object(blob.object_id))

    def output_stream(self, sink: BinaryIO) -> BinaryIO:
        # Closing the returned stream writes the gzip trailer; the sink stays open.
        return gzip.GzipFile(fileobj=sink, mode="wb")  # type: ignore[return-value]
