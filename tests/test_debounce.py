"""Tests for DebouncedTask."""

import asyncio

from app.board import DebouncedTask


def test_only_last_schedule_of_a_burst_runs():
    calls = []

    async def action():
        calls.append("run")

    async def scenario():
        task = DebouncedTask(action, delay=0.02)
        for _ in range(5):
            task.schedule()
            await asyncio.sleep(0.005)
        await asyncio.sleep(0.05)
        return task

    task = asyncio.run(scenario())
    assert calls == ["run"]
    assert task.runs == 1
    assert not task.pending


def test_close_cancels_pending_and_ignores_later_schedules():
    calls = []

    async def action():
        calls.append("run")

    async def scenario():
        task = DebouncedTask(action, delay=0.01)
        task.schedule()
        task.close()
        task.schedule()
        await asyncio.sleep(0.03)

    asyncio.run(scenario())
    assert calls == []


def test_flush_runs_pending_action_now():
    calls = []

    async def action():
        calls.append("run")

    async def scenario():
        task = DebouncedTask(action, delay=10)
        task.schedule()
        await task.flush()
        await task.flush()

    asyncio.run(scenario())
    assert calls == ["run"]


def test_action_errors_are_logged_not_raised(caplog):
    async def action():
        raise RuntimeError("boom")

    async def scenario():
        task = DebouncedTask(action, delay=0, name="failing")
        task.schedule()
        await asyncio.sleep(0.01)
        return task

    task = asyncio.run(scenario())
    assert task.runs == 1
    assert "Debounced task failing failed" in caplog.text
