"""Content filter capability and the value types it works on.

A filter is a named view over raw repository blob content. Filters are an
open set: anything that satisfies ContentFilter can be registered, there is
no base class to inherit from.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable


@runtime_checkable
class BlobSource(Protocol):
    """Access to repository blob objects by object id."""

    def object_size(self, object_id: str) -> int:
        """Return the blob size as recorded in the object header."""
        ...

    def open_object(self, object_id: str) -> Iterator[bytes]:
        """Return the raw blob content as a lazy sequence of chunks."""
        ...


@dataclass(frozen=True)
class BlobRef:
    """Reference to one repository blob.

    Attributes:
        source: Repository object access used to read the blob.
        object_id: Hex object id of the blob within the repository.
    """

    source: BlobSource
    object_id: str


@dataclass(frozen=True)
class FilterCacheEntry:
    """Memoized metadata for one (filter, blob) pair.

    Attributes:
        md5: Hex MD5 digest of the filtered content.
        size: Byte count of the filtered stream the digest covers.
    """

    md5: str
    size: int


@runtime_checkable
class ContentFilter(Protocol):
    """Uniform checksum/size/stream operations over a blob representation."""

    @property
    def name(self) -> str:
        """Stable registry key; part of every cache key for this filter."""
        ...

    def get_md5(self, blob: BlobRef) -> str:
        """Return the MD5 of the filtered content, memoized per blob."""
        ...

    def get_size(self, blob: BlobRef) -> int:
        """Return the size of the untransformed blob content."""
        ...

    def input_stream(self, blob: BlobRef) -> Iterator[bytes]:
        """Return the filtered blob content as a lazy sequence of chunks."""
        ...

    def output_stream(self, sink: BinaryIO) -> BinaryIO:
        """Wrap a sink so that bytes written to it are stored in this representation."""
        ...
