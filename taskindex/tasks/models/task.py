"""Task record models."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskindex.tasks.models.enums import Priority, Section


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def coerce_section(value: Any) -> Any:
    if isinstance(value, str) and not isinstance(value, Section):
        try:
            return Section(value)
        except ValueError:
            return value
    return value


class Task(BaseModel):
    """A to-do item as held by the store.

    Instances are immutable: the store replaces records on update rather
    than patching them, so the indexes never see a record change under them.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Remote-issued or placeholder id")
    text: str = Field(default="", description="Free-form description, the search target")
    section: Section = Field(default=Section.UNDATED, description="Category bucket")
    priority: Priority = Field(default=Priority.MEDIUM, description="Priority")
    completed: bool = Field(default=False, description="Completion state")
    date: datetime | None = Field(default=None, description="Scheduled date")
    sub_tasks: tuple[str, ...] = Field(default=(), description="Checklist items")
    estimated_duration: int | None = Field(
        default=None, description="Estimated duration in minutes"
    )
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")
    modified_at: datetime = Field(default_factory=utc_now, description="Last modification")
    completed_at: datetime | None = Field(default=None, description="Completion time")

    @field_validator("section", mode="before")
    @classmethod
    def normalize_section(cls, value: Any) -> Any:
        return coerce_section(value)

    @classmethod
    def from_draft(cls, task_id: str, draft: "TaskDraft", now: datetime | None = None) -> "Task":
        """Build a record for a new task."""
        now = now or utc_now()
        return cls(
            id=task_id,
            created_at=now,
            modified_at=now,
            completed_at=now if draft.completed else None,
            **draft.model_dump(),
        )

    def apply(self, patch: "TaskPatch", now: datetime | None = None) -> "Task":
        """Return a copy of this task with the patch applied."""
        data = self.model_dump()
        data.update(patch.changes())
        data["modified_at"] = now or utc_now()
        return Task.model_validate(data)


class TaskDraft(BaseModel):
    """User-supplied fields of a task that has not been created yet."""

    model_config = ConfigDict(extra="forbid")

    text: str = Field(..., description="Free-form description")
    section: Section = Field(default=Section.UNDATED)
    priority: Priority = Field(default=Priority.MEDIUM)
    completed: bool = Field(default=False)
    date: datetime | None = Field(default=None)
    sub_tasks: tuple[str, ...] = Field(default=())
    estimated_duration: int | None = Field(default=None)

    @field_validator("section", mode="before")
    @classmethod
    def normalize_section(cls, value: Any) -> Any:
        return coerce_section(value)


class TaskPatch(BaseModel):
    """Partial update of a task. Only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    text: str | None = None
    section: Section | None = None
    priority: Priority | None = None
    completed: bool | None = None
    date: datetime | None = None
    sub_tasks: tuple[str, ...] | None = None
    estimated_duration: int | None = None
    completed_at: datetime | None = None

    @field_validator("section", mode="before")
    @classmethod
    def normalize_section(cls, value: Any) -> Any:
        return coerce_section(value)

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set on this patch."""
        return {name: getattr(self, name) for name in self.model_fields_set}
