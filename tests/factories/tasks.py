"""Test factories for task domain models."""

from datetime import UTC, datetime, timedelta
from itertools import count

from taskindex.tasks.models import Priority, Section, Task

_sequence = count(1)
_EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


class TaskFactory:
    """Factory for creating Task instances for testing."""

    @staticmethod
    def create(
        *,
        id: str | None = None,
        text: str = "Write the weekly report",
        section: Section | str = Section.TODAY,
        priority: Priority | str = Priority.MEDIUM,
        completed: bool = False,
        created_at: datetime | None = None,
        **overrides: object,
    ) -> Task:
        """Create a Task with sensible defaults.

        Ids and creation times are sequential so display order is predictable.
        """
        n = next(_sequence)
        return Task(
            id=id or f"t{n}",
            text=text,
            section=section,
            priority=priority,
            completed=completed,
            created_at=created_at or _EPOCH + timedelta(minutes=n),
            **overrides,
        )

    @staticmethod
    def batch(size: int, *, prefix: str = "b", **kwargs: object) -> list[Task]:
        """Create ``size`` tasks with ids ``{prefix}0`` .. ``{prefix}{size-1}``."""
        return [TaskFactory.create(id=f"{prefix}{i}", **kwargs) for i in range(size)]
