"""TaskRemote abstract interface."""

from abc import ABC, abstractmethod
from typing import Any

from taskindex.tasks.models import Scope, Task, TaskPage


class TaskRemote(ABC):
    """Abstract interface for the remote persistence service.

    The remote store is the source of truth; the local index is a
    rebuildable mirror of whatever has been paged in. Implementations own
    their timeout and retry policy. Any exception they raise is treated as
    the remote being unavailable.
    """

    @abstractmethod
    async def fetch_page(
        self,
        scope: Scope,
        cursor: str | None,
        page_size: int,
    ) -> TaskPage:
        """Fetch the page following ``cursor`` (None = first page)."""
        pass

    @abstractmethod
    async def create_record(self, task: Task) -> Task:
        """Persist a new task, returning the record as stored.

        The returned id may differ from the placeholder id of ``task``.
        """
        pass

    @abstractmethod
    async def update_record(self, task_id: str, changes: dict[str, Any]) -> None:
        """Apply field changes to a stored task."""
        pass

    @abstractmethod
    async def delete_record(self, task_id: str) -> None:
        """Delete a stored task."""
        pass
