"""Indexed task store.

Components, leaf first:
- TaskIndex: primary lookup, axis buckets and token inverted index
- FilterSearchEngine: filter spec + query -> matching ids
- ResultCache: memo of the last result, invalidated by any mutation
- PaginationCoordinator: incremental loading from the remote store
- TaskStore: CRUD and UI surface tying the above together
"""

from taskindex.tasks.cache import ResultCache
from taskindex.tasks.errors import (
    ErrorCode,
    FieldError,
    RemoteUnavailableError,
    TaskIndexError,
    TaskNotFoundError,
    ValidationFailedError,
)
from taskindex.tasks.events import EventBus
from taskindex.tasks.index import DuplicateTaskError, TaskIndex
from taskindex.tasks.pagination import PaginationCoordinator, PaginationState
from taskindex.tasks.remote import TaskRemote
from taskindex.tasks.scheduling import Debouncer, Scheduler
from taskindex.tasks.search import FilterSearchEngine
from taskindex.tasks.store import StoreStats, TaskStore
from taskindex.tasks.tokenizer import tokenize

__all__ = [
    # Facade
    "TaskStore",
    "StoreStats",
    # Components
    "TaskIndex",
    "DuplicateTaskError",
    "FilterSearchEngine",
    "ResultCache",
    "PaginationCoordinator",
    "PaginationState",
    "EventBus",
    "Scheduler",
    "Debouncer",
    "TaskRemote",
    "tokenize",
    # Errors
    "ErrorCode",
    "FieldError",
    "TaskIndexError",
    "TaskNotFoundError",
    "RemoteUnavailableError",
    "ValidationFailedError",
]
