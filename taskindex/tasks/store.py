"""Store facade: the single mutation entry point of the task store.

TaskStore owns the index, the result cache and the pagination
coordinator, and talks to the remote store and the UI layer:

    UI ──set_filter / set_search_query / load_more / CRUD──▶ TaskStore
    TaskStore ──fetch_page / create / update / delete──▶ TaskRemote
    TaskStore ──task-* / results-changed / more-loaded / error──▶ EventBus

Mutations are optimistic: the index changes first, then the remote call is
awaited, and a remote failure reverts the local change before the error
is surfaced. Index operations are synchronous and run on the event loop,
so they never interleave with each other. Other mutations and page loads
can still land while a remote call is awaited, so a rollback only undoes
what its own call wrote and no later call has overwritten.
"""

import secrets
import string
import time
from collections.abc import Iterable, Mapping
from itertools import count
from typing import Any

from pydantic import BaseModel, Field

from taskindex.config.models import StoreConfig
from taskindex.config.settings import Settings
from taskindex.observability.logging import get_logger, mutation_context
from taskindex.observability.metrics import MUTATION_ROLLBACKS, REMOTE_FAILURES
from taskindex.tasks.cache import ResultCache
from taskindex.tasks.errors import (
    RemoteUnavailableError,
    TaskIndexError,
    TaskNotFoundError,
)
from taskindex.tasks.events import EventBus
from taskindex.tasks.index import TaskIndex
from taskindex.tasks.models import (
    SECTION_ORDER,
    FilterAxis,
    FilterSpec,
    MutationResult,
    MutationStatus,
    PageLoad,
    Scope,
    Task,
    TaskDraft,
    TaskEvent,
    TaskEventType,
    TaskPatch,
    utc_now,
)
from taskindex.tasks.pagination import PaginationCoordinator, normalize_scope
from taskindex.tasks.remote import TaskRemote
from taskindex.tasks.scheduling import Debouncer, Scheduler
from taskindex.tasks.search import FilterSearchEngine
from taskindex.tasks.validation import apply_patch, parse_draft, parse_patch

logger = get_logger(__name__)

_SECTION_RANK = {section: rank for rank, section in enumerate(SECTION_ORDER)}
_ID_ALPHABET = string.ascii_lowercase + string.digits


def display_order(tasks: Iterable[Task]) -> list[Task]:
    """Sort by section order, newest first within a section, then id."""
    ordered = sorted(tasks, key=lambda t: t.id)
    ordered.sort(key=lambda t: t.created_at, reverse=True)
    ordered.sort(key=lambda t: _SECTION_RANK[t.section])
    return ordered


class StoreStats(BaseModel):
    """Snapshot of index and cache sizes."""

    tasks: int
    sections: dict[str, int] = Field(default_factory=dict)
    priorities: dict[str, int] = Field(default_factory=dict)
    completed: int = 0
    active: int = 0
    vocabulary: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    pending: int = 0


class TaskStore:
    """Indexed, cached mirror of the remote task collection."""

    def __init__(
        self,
        remote: TaskRemote,
        *,
        config: StoreConfig | None = None,
        events: EventBus | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            remote: Remote persistence service
            config: Store configuration (uses defaults if not provided)
            events: Event bus for UI notifications
            scheduler: Debounce scheduler for search input
        """
        self._config = config or StoreConfig()
        self._remote = remote
        self._events = events or EventBus()
        self._scheduler: Scheduler = scheduler or Debouncer()

        self._index = TaskIndex(min_token_length=self._config.min_token_length)
        self._engine = FilterSearchEngine(self._index)
        self._cache: ResultCache[list[Task]] = ResultCache()
        self._pagination = PaginationCoordinator(
            remote,
            self._index,
            self._cache,
            page_size=self._config.page_size,
        )

        self._filter = FilterSpec()
        self._query = ""
        self._typed_query = ""
        # In-flight remote calls per id
        self._pending: dict[str, int] = {}
        # Per id, the in-flight call that last wrote each field locally
        self._writers: dict[str, dict[str, int]] = {}
        # Per in-flight update, each field's previous writer and value
        self._undo: dict[int, dict[str, tuple[int | None, Any]]] = {}
        # Records removed locally while their delete is in flight
        self._tombstones: dict[str, Task] = {}
        self._call_ids = count(1)

    @classmethod
    def from_settings(
        cls,
        remote: TaskRemote,
        settings: Settings,
        *,
        scheduler: Scheduler | None = None,
    ) -> "TaskStore":
        """Build a store and its event bus from loaded settings."""
        return cls(
            remote,
            config=settings.store,
            events=EventBus(history_size=settings.events.history_size),
            scheduler=scheduler,
        )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def index(self) -> TaskIndex:
        return self._index

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def cache(self) -> ResultCache[list[Task]]:
        return self._cache

    @property
    def pagination(self) -> PaginationCoordinator:
        return self._pagination

    @property
    def filter_spec(self) -> FilterSpec:
        return self._filter

    @property
    def search_query(self) -> str:
        """Query the current results were computed with."""
        return self._query

    @property
    def pending_ids(self) -> frozenset[str]:
        """Ids with a local change whose remote call is still in flight."""
        return frozenset(self._pending)

    def lookup(self, task_id: str) -> Task | None:
        return self._index.lookup(task_id)

    def mutation_status(self, task_id: str) -> MutationStatus | None:
        """Remote sync state of a loaded task.

        PENDING while any remote call for the id is in flight, CONFIRMED
        once all have settled, None if the id is not loaded.
        """
        if task_id in self._pending:
            return MutationStatus.PENDING
        if task_id in self._index:
            return MutationStatus.CONFIRMED
        return None

    def __len__(self) -> int:
        return len(self._index)

    # =========================================================================
    # READS
    # =========================================================================

    def rebuild(self, tasks: Iterable[Task]) -> None:
        """Replace the whole index, e.g. on cold start."""
        self._index.rebuild_all(tasks)
        self._cache.invalidate()

    def evaluate(self, spec: FilterSpec | None = None, query: str = "") -> list[Task]:
        """Matching tasks in display order, bypassing the cache."""
        return display_order(self._engine.evaluate(spec or FilterSpec(), query))

    def results(self) -> list[Task]:
        """Tasks matching the active filter and search query."""
        return self._cache.get_or_compute(
            self._filter,
            self._query,
            lambda: self.evaluate(self._filter, self._query),
        )

    async def refresh(self) -> list[Task]:
        """Read the current results and notify subscribers."""
        results = self.results()
        await self._emit(TaskEventType.RESULTS_CHANGED, results=results, count=len(results))
        return results

    def stats(self) -> StoreStats:
        def sizes(axis: FilterAxis) -> dict[str, int]:
            return {
                getattr(key, "value", str(key)): len(self._index.bucket(axis, key) or ())
                for key in self._index.bucket_keys(axis)
            }

        return StoreStats(
            tasks=len(self._index),
            sections=sizes(FilterAxis.SECTION),
            priorities=sizes(FilterAxis.PRIORITY),
            completed=len(self._index.bucket(FilterAxis.COMPLETED, True) or ()),
            active=len(self._index.bucket(FilterAxis.COMPLETED, False) or ()),
            vocabulary=len(self._index.vocabulary()),
            cache_hits=self._cache.hits,
            cache_misses=self._cache.misses,
            pending=len(self._pending),
        )

    # =========================================================================
    # UI SURFACE
    # =========================================================================

    async def set_filter(self, spec: FilterSpec | Mapping[str, Any]) -> list[Task]:
        """Apply a new filter spec and publish the recomputed results."""
        if not isinstance(spec, FilterSpec):
            spec = FilterSpec.model_validate(dict(spec))

        previous = self._filter
        self._filter = spec
        if spec.section != previous.section and self._config.reset_scope_on_section_change:
            self._pagination.reset(spec.scope)

        logger.debug(
            "filter_changed",
            section=str(getattr(spec.section, "value", spec.section)),
            priority=str(getattr(spec.priority, "value", spec.priority)),
            completed=spec.completed.value,
        )
        return await self.refresh()

    def set_search_query(self, text: str) -> None:
        """Record search input; results recompute once typing pauses."""
        self._typed_query = text
        self._scheduler.schedule(
            self._apply_search,
            self._config.search_debounce_ms / 1000,
        )

    async def flush_search(self) -> None:
        """Run a pending debounced search immediately."""
        await self._scheduler.flush()

    async def _apply_search(self) -> None:
        self._query = self._typed_query
        await self.refresh()

    async def load_more(self, scope: Scope | str | None = None) -> PageLoad:
        """Fetch the next page of a scope (default: the active section's).

        Failures are reported through the result and an error event; they
        never change pagination or index state.
        """
        key = normalize_scope(scope if scope is not None else self._filter.scope)
        try:
            outcome = await self._pagination.load_next_page(key)
        except RemoteUnavailableError as e:
            REMOTE_FAILURES.labels(operation="fetch_page").inc()
            await self._emit(TaskEventType.ERROR, scope=key, error=e)
            return PageLoad(scope=key, has_more=self._pagination.has_more(key), error=e)

        if not outcome.skipped:
            await self._emit(TaskEventType.MORE_LOADED, scope=key, count=outcome.loaded)
        if not outcome.has_more:
            await self._emit(TaskEventType.NO_MORE, scope=key)
        return outcome

    def has_more(self, scope: Scope | str | None = None) -> bool:
        return self._pagination.has_more(scope if scope is not None else self._filter.scope)

    def reset_scope(self, scope: Scope | str | None = None) -> None:
        self._pagination.reset(scope)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create(self, draft: TaskDraft | Mapping[str, Any]) -> MutationResult:
        """Create a task under a placeholder id, then confirm it remotely.

        If the placeholder is deleted locally before the remote answers, the
        confirmed record is not indexed and its delete is forwarded.

        Raises:
            ValidationFailedError: If the draft is rejected (nothing applied)
        """
        draft = parse_draft(draft)
        task = Task.from_draft(self._placeholder_id(), draft)

        self._index.insert(task)
        self._cache.invalidate()
        self._begin(task.id)
        logger.debug("task_created_locally", task_id=task.id)

        try:
            with mutation_context("create", task.id):
                confirmed = await self._remote.create_record(task)
        except Exception as e:
            self._settle(task.id)
            # The remote never had this id, so nothing under it can stand
            self._replace(task.id, None)
            return await self._rolled_back("create", e, task.id, None)

        self._settle(task.id)
        local = self._index.lookup(task.id)
        if local is None:
            logger.info(
                "task_deleted_before_create_confirmed",
                task_id=confirmed.id,
                placeholder_id=task.id,
            )
            await self._forward_delete(confirmed.id)
            return MutationResult(status=MutationStatus.CONFIRMED, task=None)

        if local is not task:
            # Edited while the create was in flight; keep the local edits
            confirmed = local.model_copy(update={"id": confirmed.id})
        if confirmed.id != task.id:
            # Remote issued its own id; re-key the optimistic record
            self._index.remove(task.id)
        if confirmed != self._index.lookup(confirmed.id):
            self._replace(confirmed.id, confirmed)
        self._cache.invalidate()

        logger.info("task_created", task_id=confirmed.id, placeholder_id=task.id)
        await self._emit(TaskEventType.TASK_CREATED, task=confirmed)
        return MutationResult(status=MutationStatus.CONFIRMED, task=confirmed)

    async def update(self, task_id: str, patch: TaskPatch | Mapping[str, Any]) -> MutationResult:
        """Replace a task with a patched copy, then confirm it remotely.

        On a remote failure only the fields this call wrote, and that no
        later call has overwritten since, are reverted.

        Raises:
            TaskNotFoundError: If the id is not loaded
            ValidationFailedError: If the patch is rejected (nothing applied)
        """
        current = self._index.lookup(task_id)
        if current is None:
            raise TaskNotFoundError(task_id)

        patch = parse_patch(patch)
        updated = apply_patch(current, patch)

        self._replace(task_id, updated)
        call_id = self._begin(task_id)
        fields = set(patch.model_fields_set) | {"modified_at"}
        self._claim_fields(task_id, call_id, current, fields)

        changes = patch.changes()
        changes["modified_at"] = updated.modified_at
        try:
            with mutation_context("update", task_id):
                await self._remote.update_record(task_id, changes)
        except Exception as e:
            restored = self._revert_fields(task_id, call_id)
            self._settle(task_id)
            return await self._rolled_back("update", e, task_id, restored)

        self._release_fields(task_id, call_id)
        self._settle(task_id)
        logger.info("task_updated", task_id=task_id, fields=sorted(patch.model_fields_set))
        await self._emit(TaskEventType.TASK_UPDATED, task=updated)
        return MutationResult(status=MutationStatus.CONFIRMED, task=updated)

    async def delete(self, task_id: str) -> MutationResult:
        """Remove a task locally, then delete it remotely.

        Deleting an id that is not loaded is a no-op.
        """
        current = self._index.lookup(task_id)
        if current is None:
            return MutationResult(status=MutationStatus.NOOP)

        self._index.remove(current)
        self._cache.invalidate()
        self._tombstones[task_id] = current
        self._begin(task_id)

        try:
            with mutation_context("delete", task_id):
                await self._remote.delete_record(task_id)
        except Exception as e:
            restored = self._tombstones.pop(task_id, current)
            self._settle(task_id)
            if task_id in self._index:
                # Re-created or paged back in meanwhile; that record is newer
                restored = self._index.lookup(task_id)
            else:
                self._replace(task_id, restored)
            return await self._rolled_back("delete", e, task_id, restored)

        self._tombstones.pop(task_id, None)
        self._settle(task_id)
        # A page fetched while the delete was in flight may have re-indexed it
        if self._index.remove(task_id) is not None:
            self._cache.invalidate()
        logger.info("task_deleted", task_id=task_id)
        await self._emit(TaskEventType.TASK_DELETED, task=current)
        return MutationResult(status=MutationStatus.CONFIRMED, task=current)

    async def complete(self, task_id: str, completed: bool = True) -> MutationResult:
        """Mark a task completed (stamping completed_at) or not completed.

        Raises:
            TaskNotFoundError: If the id is not loaded
        """
        patch = TaskPatch(completed=completed, completed_at=utc_now() if completed else None)
        result = await self.update(task_id, patch)
        if result.status == MutationStatus.CONFIRMED:
            await self._emit(TaskEventType.TASK_COMPLETED, task=result.task)
        return result

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _placeholder_id(self) -> str:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
        task_id = f"{self._config.placeholder_prefix}-{int(time.time() * 1000)}-{suffix}"
        while task_id in self._index:
            task_id = f"{task_id}x"
        return task_id

    def _begin(self, task_id: str) -> int:
        """Count a remote call in flight for ``task_id`` and return its call id."""
        self._pending[task_id] = self._pending.get(task_id, 0) + 1
        return next(self._call_ids)

    def _settle(self, task_id: str) -> None:
        remaining = self._pending.get(task_id, 0) - 1
        if remaining > 0:
            self._pending[task_id] = remaining
            return
        self._pending.pop(task_id, None)
        self._writers.pop(task_id, None)

    def _claim_fields(self, task_id: str, call_id: int, before: Task, fields: set[str]) -> None:
        """Record ``call_id`` as the latest local writer of ``fields``."""
        writers = self._writers.setdefault(task_id, {})
        self._undo[call_id] = {
            name: (writers.get(name), getattr(before, name)) for name in fields
        }
        for name in fields:
            writers[name] = call_id

    def _release_fields(self, task_id: str, call_id: int) -> None:
        """Drop a confirmed call from the writer chains; its values stand."""
        writers = self._writers.get(task_id, {})
        for name in self._undo.pop(call_id, {}):
            if writers.get(name) == call_id:
                del writers[name]
            else:
                self._relink(name, call_id, None, None, keep_value=True)

    def _relink(
        self,
        name: str,
        call_id: int,
        writer: int | None,
        value: Any,
        *,
        keep_value: bool = False,
    ) -> None:
        # The later call that overwrote ``name`` after ``call_id`` now undoes
        # to whatever ``call_id`` would have
        for undo in self._undo.values():
            previous = undo.get(name)
            if previous is not None and previous[0] == call_id:
                undo[name] = (writer, previous[1] if keep_value else value)
                return

    def _revert_fields(self, task_id: str, call_id: int) -> Task | None:
        """Undo a rejected update against whatever the id holds now.

        Fields a later in-flight call overwrote keep that call's value, and
        that call inherits this one's undo. Returns the record as it stands
        afterwards.
        """
        writers = self._writers.get(task_id, {})
        reverts: dict[str, Any] = {}
        for name, (writer, value) in self._undo.pop(call_id, {}).items():
            if writers.get(name) == call_id:
                reverts[name] = value
                if writer is None:
                    del writers[name]
                else:
                    writers[name] = writer
            else:
                self._relink(name, call_id, writer, value)

        latest = self._index.lookup(task_id)
        target = latest if latest is not None else self._tombstones.get(task_id)
        if target is None or not reverts:
            return target
        reverted = target.model_copy(update=reverts)

        if latest is not None:
            self._replace(task_id, reverted)
        else:
            # Deleted locally meanwhile; restore this version if that delete fails
            self._tombstones[task_id] = reverted
        return reverted

    async def _forward_delete(self, task_id: str) -> None:
        try:
            with mutation_context("delete", task_id):
                await self._remote.delete_record(task_id)
        except Exception as e:
            REMOTE_FAILURES.labels(operation="delete").inc()
            logger.warning("remote_delete_forward_failed", task_id=task_id, error=str(e))

    def _replace(self, task_id: str, task: Task | None) -> None:
        """Remove whatever is indexed under ``task_id`` and index ``task``."""
        self._index.remove(task_id)
        if task is not None:
            self._index.insert(task)
        self._cache.invalidate()

    async def _rolled_back(
        self,
        operation: str,
        error: Exception,
        task_id: str,
        restored: Task | None,
    ) -> MutationResult:
        if not isinstance(error, TaskIndexError):
            error = RemoteUnavailableError(operation, error)
        REMOTE_FAILURES.labels(operation=operation).inc()
        MUTATION_ROLLBACKS.labels(operation=operation).inc()
        logger.warning(
            "remote_mutation_failed",
            operation=operation,
            task_id=task_id,
            error=str(error),
        )
        await self._emit(TaskEventType.ERROR, task=restored, task_id=task_id, error=error)
        return MutationResult(status=MutationStatus.ROLLED_BACK, task=restored, error=error)

    async def _emit(self, event_type: TaskEventType, **payload: Any) -> None:
        task = payload.get("task")
        if task is not None and "task_id" not in payload:
            payload["task_id"] = task.id
        await self._events.emit(TaskEvent(type=event_type, **payload))
