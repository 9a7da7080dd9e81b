"""Mutation results and store events."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from taskindex.tasks.models.enums import MutationStatus, TaskEventType
from taskindex.tasks.models.filters import Scope
from taskindex.tasks.models.task import Task, utc_now


class MutationResult(BaseModel):
    """Outcome of a create/update/delete/complete call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: MutationStatus
    task: Task | None = Field(default=None, description="Record as it now stands")
    error: Exception | None = Field(default=None, description="Remote failure, if rolled back")

    @property
    def ok(self) -> bool:
        return self.status != MutationStatus.ROLLED_BACK


class TaskEvent(BaseModel):
    """A notification emitted through the event bus."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: TaskEventType
    task: Task | None = None
    task_id: str | None = None
    results: list[Task] | None = None
    scope: Scope | None = None
    count: int | None = None
    error: Exception | None = None
    emitted_at: datetime = Field(default_factory=utc_now)


class PageLoad(BaseModel):
    """Outcome of a load-more request for one scope."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    scope: Scope
    skipped: bool = Field(default=False, description="No fetch issued (loading or exhausted)")
    loaded: int = Field(default=0, ge=0, description="Records newly indexed")
    duplicates: int = Field(default=0, ge=0, description="Records already indexed")
    has_more: bool = True
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
