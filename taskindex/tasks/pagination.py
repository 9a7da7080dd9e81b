"""Incremental retrieval of task pages from the remote store.

Each scope (the global feed, or one section) keeps its own cursor,
has-more flag and loading guard. An overlapping request for a scope that
is already loading is a silent no-op, not queued. In-flight fetches are
never cancelled; a page that lands after the user moved on is still
indexed.
"""

from pydantic import BaseModel, Field

from taskindex.observability.logging import get_logger
from taskindex.observability.metrics import DUPLICATES_SKIPPED, PAGES_LOADED
from taskindex.tasks.cache import ResultCache
from taskindex.tasks.errors import RemoteUnavailableError
from taskindex.tasks.index import TaskIndex
from taskindex.tasks.models import GLOBAL_SCOPE, PageLoad, Scope, Section
from taskindex.tasks.remote import TaskRemote

logger = get_logger(__name__)


class PaginationState(BaseModel):
    """Cursor state of one scope."""

    cursor: str | None = Field(default=None, description="Opaque continuation token")
    has_more: bool = Field(default=True)
    loading: bool = Field(default=False)


def normalize_scope(scope: Scope | str | None) -> Scope:
    """Map None/"all" to the global scope and section strings to Section."""
    if scope is None or scope == GLOBAL_SCOPE:
        return GLOBAL_SCOPE
    return Section(scope)


def scope_label(scope: Scope) -> str:
    """Plain string form of a scope for logs and metric labels."""
    return scope.value if isinstance(scope, Section) else str(scope)


class PaginationCoordinator:
    """Feeds remote pages into the index, one fetch per scope at a time."""

    def __init__(
        self,
        remote: TaskRemote,
        index: TaskIndex,
        cache: ResultCache,
        page_size: int = 50,
    ) -> None:
        self._remote = remote
        self._index = index
        self._cache = cache
        self._page_size = page_size
        self._states: dict[Scope, PaginationState] = {}

    @property
    def page_size(self) -> int:
        return self._page_size

    def state(self, scope: Scope | str | None = None) -> PaginationState:
        """Pagination state of a scope, created on first use."""
        key = normalize_scope(scope)
        state = self._states.get(key)
        if state is None:
            state = self._states[key] = PaginationState()
        return state

    def has_more(self, scope: Scope | str | None = None) -> bool:
        return self.state(scope).has_more

    def is_loading(self, scope: Scope | str | None = None) -> bool:
        return self.state(scope).loading

    def reset(self, scope: Scope | str | None = None) -> None:
        """Restart a scope from the first page.

        Already indexed records stay: a task can remain relevant under
        another scope's history.
        """
        key = normalize_scope(scope)
        self._states[key] = PaginationState()
        logger.debug("pagination_reset", scope=scope_label(key))

    async def load_next_page(self, scope: Scope | str | None = None) -> PageLoad:
        """Fetch and index the next page of ``scope``.

        Nothing is indexed unless the fetch fully succeeds; on failure the
        cursor and has-more flag are left untouched.

        Raises:
            RemoteUnavailableError: If the remote fetch fails
        """
        key = normalize_scope(scope)
        state = self.state(key)
        if state.loading or not state.has_more:
            return PageLoad(scope=key, skipped=True, has_more=state.has_more)

        state.loading = True
        try:
            try:
                page = await self._remote.fetch_page(key, state.cursor, self._page_size)
            except RemoteUnavailableError:
                raise
            except Exception as e:
                raise RemoteUnavailableError("fetch_page", e) from e

            loaded = 0
            duplicates = 0
            for record in page.records:
                if record.id in self._index:
                    duplicates += 1
                    continue
                self._index.insert(record)
                loaded += 1

            state.cursor = page.next_cursor
            state.has_more = page.has_more
            self._cache.invalidate()
        except RemoteUnavailableError as e:
            logger.warning(
                "page_fetch_failed",
                scope=scope_label(key),
                cursor=state.cursor,
                error=str(e),
            )
            raise
        finally:
            state.loading = False

        PAGES_LOADED.labels(scope=scope_label(key)).inc()
        if duplicates:
            DUPLICATES_SKIPPED.labels(scope=scope_label(key)).inc(duplicates)
        logger.info(
            "page_loaded",
            scope=scope_label(key),
            loaded=loaded,
            duplicates=duplicates,
            has_more=state.has_more,
            indexed=len(self._index),
        )
        return PageLoad(scope=key, loaded=loaded, duplicates=duplicates, has_more=state.has_more)
