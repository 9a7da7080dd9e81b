"""Tests for InMemoryTaskRemote."""

import pytest

from taskindex.tasks.models import ALL, Section
from taskindex.tasks.remotes import InMemoryTaskRemote
from tests.factories import TaskFactory


@pytest.mark.asyncio
class TestInMemoryTaskRemote:
    """Tests for the in-memory remote store."""

    async def test_pages_newest_first(self) -> None:
        tasks = TaskFactory.batch(3, prefix="r")
        remote = InMemoryTaskRemote(tasks)

        page = await remote.fetch_page(ALL, None, 2)

        assert [t.id for t in page.records] == ["r2", "r1"]
        assert page.has_more is True
        assert page.next_cursor == "2"

        last = await remote.fetch_page(ALL, page.next_cursor, 2)
        assert [t.id for t in last.records] == ["r0"]
        assert last.has_more is False
        assert last.next_cursor is None

    async def test_section_scope(self) -> None:
        remote = InMemoryTaskRemote(
            [
                TaskFactory.create(id="a", section=Section.TODAY),
                TaskFactory.create(id="b", section=Section.WEEKLY),
            ]
        )

        page = await remote.fetch_page(Section.WEEKLY, None, 10)

        assert [t.id for t in page.records] == ["b"]

    async def test_create_keeps_id_by_default(self) -> None:
        remote = InMemoryTaskRemote()
        task = TaskFactory.create(id="local")

        stored = await remote.create_record(task)

        assert stored.id == "local"
        assert remote.get("local") == task

    async def test_create_can_issue_ids(self) -> None:
        remote = InMemoryTaskRemote(issue_ids=True)

        stored = await remote.create_record(TaskFactory.create(id="local"))

        assert stored.id != "local"
        assert remote.get(stored.id) == stored
        assert len(remote) == 1

    async def test_update_applies_changes(self) -> None:
        remote = InMemoryTaskRemote([TaskFactory.create(id="a", text="Old text")])

        await remote.update_record("a", {"text": "New text"})

        assert remote.get("a").text == "New text"

    async def test_update_unknown_raises(self) -> None:
        with pytest.raises(KeyError):
            await InMemoryTaskRemote().update_record("missing", {"text": "x"})

    async def test_delete_is_idempotent(self) -> None:
        remote = InMemoryTaskRemote([TaskFactory.create(id="a")])

        await remote.delete_record("a")
        await remote.delete_record("a")

        assert len(remote) == 0
