"""Memoized checksum computation shared by the filter variants."""

from __future__ import annotations

import hashlib
import logging

from lfsgate.filters.base import BlobRef, ContentFilter, FilterCacheEntry
from lfsgate.filters.cache import SqliteFilterCache

logger = logging.getLogger(__name__)


def compute_entry(content_filter: ContentFilter, blob: BlobRef) -> FilterCacheEntry:
    """Stream the filtered blob through MD5 once."""
    digest = hashlib.md5()
    size = 0
    for chunk in content_filter.input_stream(blob):
        digest.update(chunk)
        size += len(chunk)
    return FilterCacheEntry(md5=digest.hexdigest(), size=size)


def cached_entry(
    content_filter: ContentFilter,
    cache: SqliteFilterCache,
    blob: BlobRef,
) -> FilterCacheEntry:
    """Return the cache entry for (filter, blob), computing it on a miss.

    Concurrent misses may both compute; the first stored entry wins and the
    values are equal since the key is content-derived.
    """
    entry = cache.get(content_filter.name, blob.object_id)
    if entry is not None:
        return entry

    entry = compute_entry(content_filter, blob)
    cache.put(content_filter.name, blob.object_id, entry)
    logger.debug(
        "Cached filter metadata: filter=%s blob=%s size=%d",
        content_filter.name,
        blob.object_id,
        entry.size,
    )
    return entry


def cached_md5(content_filter: ContentFilter, cache: SqliteFilterCache, blob: BlobRef) -> str:
    return cached_entry(content_filter, cache, blob).md5
