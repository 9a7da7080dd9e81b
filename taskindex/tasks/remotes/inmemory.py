"""In-memory implementation of TaskRemote."""

from typing import Any
from uuid import uuid4

from taskindex.observability.logging import get_logger
from taskindex.tasks.models import GLOBAL_SCOPE, Scope, Section, Task, TaskPage
from taskindex.tasks.remote import TaskRemote

logger = get_logger(__name__)


class InMemoryTaskRemote(TaskRemote):
    """In-memory remote store for development and testing.

    Pages are ordered by created_at descending, then id. Cursors are
    stringified offsets into that ordering, so pages can overlap or skip
    records if the collection changes between fetches, just like a real
    offset-paged backend.
    """

    def __init__(self, tasks: list[Task] | None = None, *, issue_ids: bool = False) -> None:
        """Initialize storage.

        Args:
            tasks: Records to seed the store with
            issue_ids: Replace client placeholder ids with remote-issued ones
        """
        self._tasks: dict[str, Task] = {task.id: task for task in tasks or []}
        self._issue_ids = issue_ids

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    async def fetch_page(
        self,
        scope: Scope,
        cursor: str | None,
        page_size: int,
    ) -> TaskPage:
        """Fetch the page following ``cursor``."""
        records = [
            task
            for task in self._tasks.values()
            if scope == GLOBAL_SCOPE or task.section == Section(scope)
        ]
        records.sort(key=lambda t: t.id)
        records.sort(key=lambda t: t.created_at, reverse=True)

        start = int(cursor) if cursor else 0
        end = start + page_size
        has_more = end < len(records)
        return TaskPage(
            records=records[start:end],
            next_cursor=str(end) if has_more else None,
            has_more=has_more,
        )

    async def create_record(self, task: Task) -> Task:
        """Store a new task, optionally re-keying it."""
        if self._issue_ids:
            task = task.model_copy(update={"id": uuid4().hex})
        self._tasks[task.id] = task
        logger.debug("remote_record_stored", record_id=task.id)
        return task

    async def update_record(self, task_id: str, changes: dict[str, Any]) -> None:
        """Apply field changes to a stored task."""
        current = self._tasks.get(task_id)
        if current is None:
            raise KeyError(task_id)
        self._tasks[task_id] = Task.model_validate({**current.model_dump(), **changes})
        logger.debug("remote_record_updated", fields=sorted(changes))

    async def delete_record(self, task_id: str) -> None:
        """Delete a stored task. Deleting an unknown id is not an error."""
        if self._tasks.pop(task_id, None) is None:
            logger.debug("remote_delete_unknown_id")
