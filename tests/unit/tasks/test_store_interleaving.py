"""Tests for TaskStore mutations that overlap on the same id.

Remote calls are held open with FakeRemote.hold so a second mutation or a
page load can land before the first call settles.
"""

import asyncio

import pytest

from taskindex.tasks import TaskStore
from taskindex.tasks.models import FilterAxis, MutationStatus, Priority
from tests.factories import TaskFactory
from tests.fakes import FakeRemote


async def started(coro) -> asyncio.Task:
    """Schedule ``coro`` and let it run up to its first held remote call."""
    task = asyncio.create_task(coro)
    await asyncio.sleep(0)
    return task


@pytest.mark.asyncio
class TestUpdateRollback:
    """A failed update only reverts what it still owns."""

    async def test_failed_update_after_confirmed_delete_restores_nothing(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        store.rebuild([TaskFactory.create(id="a", text="Buy milk")])
        release = fake_remote.hold("update_record", fail=True)

        update = await started(store.update("a", {"text": "Buy oat milk"}))
        deleted = await store.delete("a")
        release.set()
        result = await update

        assert deleted.status == MutationStatus.CONFIRMED
        assert result.status == MutationStatus.ROLLED_BACK
        assert result.task is None
        assert store.lookup("a") is None
        assert store.mutation_status("a") is None
        assert store.index.token_bucket("milk") is None

    async def test_later_confirmed_update_survives_earlier_failure(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        store.rebuild([TaskFactory.create(id="a", text="Buy milk", priority="medium")])
        release = fake_remote.hold("update_record", fail=True)

        update = await started(store.update("a", {"text": "Buy oat milk"}))
        confirmed = await store.update("a", {"priority": "high"})
        release.set()
        result = await update

        assert confirmed.status == MutationStatus.CONFIRMED
        assert result.status == MutationStatus.ROLLED_BACK
        current = store.lookup("a")
        assert current.priority == Priority.HIGH
        assert current.text == "Buy milk"
        assert result.task == current
        assert store.index.token_bucket("oat") is None
        assert store.index.bucket(FilterAxis.PRIORITY, Priority.HIGH) == {"a"}

    async def test_later_confirmed_write_to_same_field_stands(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        store.rebuild([TaskFactory.create(id="a", text="Buy milk")])
        release = fake_remote.hold("update_record", fail=True)

        update = await started(store.update("a", {"text": "Buy oat milk"}))
        await store.update("a", {"text": "Buy soy milk"})
        release.set()
        await update

        assert store.lookup("a").text == "Buy soy milk"

    async def test_earlier_confirmed_write_survives_later_failure(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        store.rebuild([TaskFactory.create(id="a", text="Buy milk")])
        first_release = fake_remote.hold("update_record")
        second_release = fake_remote.hold("update_record", fail=True)

        first = await started(store.update("a", {"text": "Buy oat milk"}))
        second = await started(store.update("a", {"text": "Buy soy milk"}))
        second_release.set()
        rolled_back = await second
        first_release.set()
        await first

        assert rolled_back.task.text == "Buy oat milk"
        assert store.lookup("a").text == "Buy oat milk"

    @pytest.mark.parametrize("first_to_fail", [0, 1])
    async def test_nested_failures_restore_original(
        self, store: TaskStore, fake_remote: FakeRemote, first_to_fail: int
    ) -> None:
        """Both writes to a field fail, in either order: the original returns."""
        original = TaskFactory.create(id="a", text="Buy milk")
        store.rebuild([original])
        releases = [
            fake_remote.hold("update_record", fail=True),
            fake_remote.hold("update_record", fail=True),
        ]

        updates = [
            await started(store.update("a", {"text": "Buy oat milk"})),
            await started(store.update("a", {"text": "Buy soy milk"})),
        ]
        releases[first_to_fail].set()
        await updates[first_to_fail]
        releases[1 - first_to_fail].set()
        await updates[1 - first_to_fail]

        current = store.lookup("a")
        assert current.text == "Buy milk"
        assert current.modified_at == original.modified_at
        assert store.pending_ids == frozenset()

    async def test_stale_page_during_update_is_skipped(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        store.rebuild([TaskFactory.create(id="a", text="Buy milk")])
        release = fake_remote.hold("update_record", fail=True)
        fake_remote.queue_page([TaskFactory.create(id="a", text="Buy milk")])

        update = await started(store.update("a", {"text": "Buy oat milk"}))
        outcome = await store.load_more()

        assert outcome.loaded == 0
        assert store.lookup("a").text == "Buy oat milk"

        release.set()
        await update

        assert store.lookup("a").text == "Buy milk"


@pytest.mark.asyncio
class TestPendingCount:
    """Mutation status follows every in-flight call on an id."""

    async def test_pending_until_last_call_settles(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        store.rebuild([TaskFactory.create(id="a")])
        first_release = fake_remote.hold("update_record")
        second_release = fake_remote.hold("update_record")

        first = await started(store.update("a", {"text": "Buy oat milk"}))
        second = await started(store.update("a", {"priority": "low"}))
        first_release.set()
        await first

        assert store.mutation_status("a") == MutationStatus.PENDING
        assert store.pending_ids == frozenset({"a"})

        second_release.set()
        await second

        assert store.mutation_status("a") == MutationStatus.CONFIRMED
        assert store.pending_ids == frozenset()


@pytest.mark.asyncio
class TestCreateInterleaving:
    """The placeholder may change or vanish before the create confirms."""

    async def test_placeholder_deleted_before_confirm(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        release = fake_remote.hold("create_record")

        create = await started(store.create({"text": "Buy milk"}))
        placeholder = fake_remote.calls_to("create_record")[0].id
        await store.delete(placeholder)
        release.set()
        result = await create

        assert result.status == MutationStatus.CONFIRMED
        assert result.task is None
        assert len(store) == 0
        assert store.mutation_status(placeholder) is None
        # The remote now holds the record, so its delete is forwarded
        assert fake_remote.calls_to("delete_record") == [placeholder, placeholder]

    async def test_placeholder_edits_carry_over_to_issued_id(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        original_create = fake_remote.create_record

        async def issue_id(task):
            fake_remote.issued_ids[task.id] = "server-1"
            return await original_create(task)

        fake_remote.create_record = issue_id  # type: ignore[method-assign]
        release = fake_remote.hold("create_record")

        create = await started(store.create({"text": "Buy milk"}))
        placeholder = fake_remote.calls_to("create_record")[0].id
        await store.update(placeholder, {"text": "Buy oat milk"})
        release.set()
        result = await create

        assert result.task.id == "server-1"
        assert store.lookup(placeholder) is None
        assert store.lookup("server-1").text == "Buy oat milk"
        assert store.index.token_bucket("oat") == {"server-1"}
        assert len(store) == 1


@pytest.mark.asyncio
class TestDeleteInterleaving:
    """Deletes racing page loads and failed updates."""

    async def test_confirmed_delete_removes_record_paged_back_in(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        task = TaskFactory.create(id="a", text="Buy milk")
        store.rebuild([task])
        release = fake_remote.hold("delete_record")
        fake_remote.queue_page([task])

        delete = await started(store.delete("a"))
        store.reset_scope()
        await store.load_more()

        assert "a" in store.index

        release.set()
        result = await delete

        assert result.status == MutationStatus.CONFIRMED
        assert "a" not in store.index
        assert store.results() == []

    async def test_failed_delete_keeps_record_paged_back_in(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        store.rebuild([TaskFactory.create(id="a", text="Buy milk")])
        release = fake_remote.hold("delete_record", fail=True)
        fake_remote.queue_page([TaskFactory.create(id="a", text="Buy fresh milk")])

        delete = await started(store.delete("a"))
        store.reset_scope()
        await store.load_more()
        release.set()
        result = await delete

        assert result.status == MutationStatus.ROLLED_BACK
        assert store.lookup("a").text == "Buy fresh milk"
        assert len(store) == 1

    async def test_failed_delete_restores_reverted_update(
        self, store: TaskStore, fake_remote: FakeRemote
    ) -> None:
        store.rebuild([TaskFactory.create(id="a", text="Buy milk")])
        update_release = fake_remote.hold("update_record", fail=True)
        delete_release = fake_remote.hold("delete_record", fail=True)

        update = await started(store.update("a", {"text": "Buy oat milk"}))
        delete = await started(store.delete("a"))
        update_release.set()
        rolled_back = await update

        assert rolled_back.task.text == "Buy milk"
        assert store.lookup("a") is None

        delete_release.set()
        await delete

        assert store.lookup("a").text == "Buy milk"
        assert store.index.token_bucket("oat") is None
        assert store.pending_ids == frozenset()
