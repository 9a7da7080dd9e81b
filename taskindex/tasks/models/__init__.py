"""Task domain models.

- Task records, drafts and patches
- Filter specs, pagination scopes and pages
- Mutation results and events
"""

from taskindex.tasks.models.enums import (
    ALL,
    SECTION_ORDER,
    CompletionFilter,
    FilterAxis,
    MutationStatus,
    Priority,
    Section,
    TaskEventType,
)
from taskindex.tasks.models.filters import (
    GLOBAL_SCOPE,
    BucketKey,
    FilterSpec,
    Scope,
    TaskPage,
)
from taskindex.tasks.models.results import MutationResult, PageLoad, TaskEvent
from taskindex.tasks.models.task import Task, TaskDraft, TaskPatch, utc_now

__all__ = [
    # Enums
    "ALL",
    "SECTION_ORDER",
    "CompletionFilter",
    "FilterAxis",
    "MutationStatus",
    "Priority",
    "Section",
    "TaskEventType",
    # Records
    "Task",
    "TaskDraft",
    "TaskPatch",
    "utc_now",
    # Filters and paging
    "GLOBAL_SCOPE",
    "BucketKey",
    "FilterSpec",
    "Scope",
    "TaskPage",
    # Results
    "MutationResult",
    "PageLoad",
    "TaskEvent",
]
