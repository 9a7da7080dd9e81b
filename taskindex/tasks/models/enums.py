"""Enums for the task domain."""

from enum import Enum

ALL = "all"
"""Filter value meaning "this axis is unconstrained"."""


class Section(str, Enum):
    """Category / time-horizon bucket of a task."""

    TODAY = "today"
    UPCOMING = "upcoming"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    UNDATED = "undated"

    @classmethod
    def _missing_(cls, value: object) -> "Section | None":
        # Document-store keys look like "todayTasks" / "undatedTasks"
        if isinstance(value, str) and value.endswith("Tasks"):
            short = value[: -len("Tasks")].lower()
            for member in cls:
                if member.value == short:
                    return member
        return None


SECTION_ORDER: tuple[Section, ...] = tuple(Section)
"""Display order of sections."""


class Priority(str, Enum):
    """Task priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CompletionFilter(str, Enum):
    """Value of the completion axis of a filter spec."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class FilterAxis(str, Enum):
    """The closed set of axes a filter spec can pin."""

    SECTION = "section"
    PRIORITY = "priority"
    COMPLETED = "completed"


class TaskEventType(str, Enum):
    """Notifications emitted by the task store."""

    TASK_CREATED = "task-created"
    TASK_UPDATED = "task-updated"
    TASK_DELETED = "task-deleted"
    TASK_COMPLETED = "task-completed"
    RESULTS_CHANGED = "results-changed"
    MORE_LOADED = "more-loaded"
    NO_MORE = "no-more"
    ERROR = "error"


class MutationStatus(str, Enum):
    """Where an optimistic mutation stands relative to the remote store."""

    PENDING = "pending"
    """Applied locally, remote call still in flight."""

    CONFIRMED = "confirmed"
    """Applied locally and accepted by the remote store."""

    ROLLED_BACK = "rolled_back"
    """Rejected by the remote store; the local change was reverted."""

    NOOP = "noop"
    """Nothing to do (e.g. deleting an id that is not loaded)."""
