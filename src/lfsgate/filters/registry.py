"""Content filter registry.

Filters are selected by a stable name at configuration time. Fail-closed:
unknown names raise FilterNotRegisteredError rather than falling back to a
default representation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lfsgate.filters.base import ContentFilter
from lfsgate.filters.cache import SqliteFilterCache
from lfsgate.filters.gzip_filter import GzipFilter
from lfsgate.filters.raw import RawFilter

logger = logging.getLogger(__name__)


class FilterNotRegisteredError(Exception):
    """Raised when a requested filter is not in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Filter not registered: {name}")


class DuplicateFilterError(Exception):
    """Raised when attempting to register a filter name twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Filter already registered: {name}")


@dataclass
class FilterRegistry:
    """Registry of content filters keyed by name."""

    _filters: dict[str, ContentFilter] = field(default_factory=dict)

    def register(self, content_filter: ContentFilter) -> None:
        """Register a filter under its own name.

        Raises:
            DuplicateFilterError: If the name is already taken.
        """
        name = content_filter.name
        if name in self._filters:
            raise DuplicateFilterError(name)
        self._filters[name] = content_filter
        logger.debug("Registered content filter: %s", name)

    def get(self, name: str) -> ContentFilter:
        """Look up a filter by name.

        Raises:
            FilterNotRegisteredError: If no filter has that name.
        """
        content_filter = self._filters.get(name)
        if content_filter is None:
            raise FilterNotRegisteredError(name)
        return content_filter

    def names(self) -> list[str]:
        """Return registered filter names, sorted."""
        return sorted(self._filters)

    def __contains__(self, name: object) -> bool:
        return name in self._filters


def create_filter_registry(cache: SqliteFilterCache) -> FilterRegistry:
    """Build a registry with the built-in filters sharing one cache."""
    registry = FilterRegistry()
    registry.register(RawFilter(cache))
    registry.register(GzipFilter(cache))
    return registry
