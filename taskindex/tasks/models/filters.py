"""Filter spec and paging models."""

from collections.abc import Iterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskindex.tasks.models.enums import (
    ALL,
    CompletionFilter,
    FilterAxis,
    Priority,
    Section,
)
from taskindex.tasks.models.task import Task, coerce_section

BucketKey = Section | Priority | bool

Scope = Section | Literal["all"]
"""Pagination context: the global feed ("all") or one section."""

GLOBAL_SCOPE: Scope = ALL


class FilterSpec(BaseModel):
    """Per-axis constraint over the task set.

    Every axis is either "all" (unconstrained) or pinned to one value.
    """

    model_config = ConfigDict(frozen=True)

    section: Section | Literal["all"] = Field(default=ALL)
    priority: Priority | Literal["all"] = Field(default=ALL)
    completed: CompletionFilter = Field(default=CompletionFilter.ALL)

    @field_validator("section", mode="before")
    @classmethod
    def normalize_section(cls, value: Any) -> Any:
        return coerce_section(value)

    def constraints(self) -> Iterator[tuple[FilterAxis, BucketKey]]:
        """Yield (axis, bucket key) for every pinned axis."""
        if self.section != ALL:
            yield FilterAxis.SECTION, Section(self.section)
        if self.priority != ALL:
            yield FilterAxis.PRIORITY, Priority(self.priority)
        if self.completed != CompletionFilter.ALL:
            yield FilterAxis.COMPLETED, self.completed == CompletionFilter.COMPLETED

    @property
    def is_unconstrained(self) -> bool:
        return next(self.constraints(), None) is None

    @property
    def scope(self) -> Scope:
        """Pagination scope matching the section axis."""
        return self.section


class TaskPage(BaseModel):
    """One page of records returned by the remote store."""

    records: list[Task] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, description="Opaque continuation token")
    has_more: bool = Field(default=False)
