"""Tests for Debouncer."""

import asyncio

import pytest

from taskindex.tasks.scheduling import Debouncer


@pytest.mark.asyncio
class TestDebouncer:
    """Tests for Debouncer scheduling."""

    async def test_fires_after_delay(self) -> None:
        debouncer = Debouncer()
        calls: list[str] = []

        debouncer.schedule(lambda: calls.append("x"), 0.01)
        assert debouncer.pending
        await asyncio.sleep(0.05)

        assert calls == ["x"]
        assert not debouncer.pending

    async def test_burst_collapses_to_last_callback(self) -> None:
        debouncer = Debouncer()
        calls: list[str] = []

        for text in ["b", "bu", "buy"]:
            debouncer.schedule(lambda text=text: calls.append(text), 0.02)
        await asyncio.sleep(0.08)

        assert calls == ["buy"]

    async def test_flush_runs_pending_now(self) -> None:
        debouncer = Debouncer()
        calls: list[str] = []

        async def callback() -> None:
            calls.append("flushed")

        debouncer.schedule(callback, 10)
        await debouncer.flush()

        assert calls == ["flushed"]
        assert not debouncer.pending

    async def test_flush_without_pending_is_noop(self) -> None:
        await Debouncer().flush()

    async def test_cancel_pending(self) -> None:
        debouncer = Debouncer()
        calls: list[str] = []

        debouncer.schedule(lambda: calls.append("x"), 0.01)
        debouncer.cancel_pending()
        await asyncio.sleep(0.03)

        assert calls == []

    async def test_async_callback_from_timer_completes(self) -> None:
        debouncer = Debouncer()
        calls: list[str] = []

        async def callback() -> None:
            await asyncio.sleep(0)
            calls.append("done")

        debouncer.schedule(callback, 0.01)
        await asyncio.sleep(0.03)
        await debouncer.flush()

        assert calls == ["done"]
