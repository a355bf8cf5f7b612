"""lfsgate content filters.

Named views over repository blob content with memoized MD5/size metadata.

Built-in filters:
- raw: content as stored
- gzip: repository stores gzip-compressed content; filtered view is decompressed

Environment Variables:
    LFSGATE_FILTER_CACHE_DB_PATH: SQLite file backing the metadata cache
"""

from lfsgate.filters.base import BlobRef, BlobSource, ContentFilter, FilterCacheEntry
from lfsgate.filters.cache import FilterCacheError, SqliteFilterCache
from lfsgate.filters.gzip_filter import GzipFilter
from lfsgate.filters.raw import RawFilter
from lfsgate.filters.registry import (
    DuplicateFilterError,
    FilterNotRegisteredError,
    FilterRegistry,
    create_filter_registry,
)

__all__ = [
    "BlobRef",
    "BlobSource",
    "ContentFilter",
    "FilterCacheEntry",
    "FilterCacheError",
    "SqliteFilterCache",
    "RawFilter",
    "GzipFilter",
    "FilterRegistry",
    "FilterNotRegisteredError",
    "DuplicateFilterError",
    "create_filter_registry",
]
