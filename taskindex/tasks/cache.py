"""Single-entry memo of the last filter/search result."""

from collections.abc import Callable
from typing import Generic, TypeVar

from taskindex.observability.logging import get_logger
from taskindex.observability.metrics import (
    CACHE_HITS,
    CACHE_INVALIDATIONS,
    CACHE_MISSES,
)
from taskindex.tasks.models import FilterSpec

logger = get_logger(__name__)

T = TypeVar("T")


class ResultCache(Generic[T]):
    """Memoizes the last (filter spec, query) -> result.

    Invalidation is deliberately coarse: any mutation marks the cache
    dirty, whether or not it could affect the cached result.
    """

    def __init__(self) -> None:
        self._last_spec: FilterSpec | None = None
        self._last_query: str | None = None
        self._last_result: T | None = None
        self._dirty = True
        self.hits = 0
        self.misses = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    def get_or_compute(self, spec: FilterSpec, query: str, compute: Callable[[], T]) -> T:
        """Return the cached result if still valid, otherwise recompute."""
        if not self._dirty and spec == self._last_spec and query == self._last_query:
            self.hits += 1
            CACHE_HITS.inc()
            return self._last_result  # type: ignore[return-value]

        self.misses += 1
        CACHE_MISSES.inc()
        logger.debug("result_cache_miss", dirty=self._dirty)

        result = compute()
        self._last_spec = spec
        self._last_query = query
        self._last_result = result
        self._dirty = False
        return result

    def invalidate(self) -> None:
        """Mark the cached result stale."""
        self._dirty = True
        CACHE_INVALIDATIONS.inc()
