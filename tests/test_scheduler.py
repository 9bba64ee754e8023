# tests/test_scheduler.py

"""
Tests for cancellable refresh jobs.
"""

import asyncio
from unittest.mock import Mock

from core.scheduler import RefreshJob


async def settle():
    """Let scheduled tasks run up to their next await."""
    for _ in range(5):
        await asyncio.sleep(0)


class Gate:
    """Cycle function whose calls block until released."""

    def __init__(self):
        self.calls = 0
        self.events = []

    async def __call__(self):
        self.calls += 1
        call = self.calls
        event = asyncio.Event()
        self.events.append(event)
        await event.wait()
        return f"result-{call}"


async def test_cycle_result_is_delivered():
    results = []

    async def cycle():
        return {"ok": True}

    job = RefreshJob("t", cycle, 60, on_result=results.append)
    assert await job.run_cycle() is True
    assert results == [{"ok": True}]


async def test_overlapping_tick_is_skipped():
    gate = Gate()
    results = []
    job = RefreshJob("t", gate, 60, on_result=results.append)

    first = asyncio.ensure_future(job.run_cycle())
    await settle()
    assert job.in_flight

    assert await job.run_cycle() is False
    assert gate.calls == 1

    gate.events[0].set()
    assert await first is True
    assert results == ["result-1"]


async def test_superseded_cycle_result_is_discarded():
    gate = Gate()
    results = []
    job = RefreshJob("t", gate, 60, on_result=results.append)

    old = asyncio.ensure_future(job.run_cycle())
    await settle()

    job.supersede()
    assert await old is False

    fresh = asyncio.ensure_future(job.run_cycle())
    await settle()
    gate.events[1].set()
    assert await fresh is True
    assert results == ["result-2"]


async def test_refresh_now_replaces_in_flight_cycle():
    gate = Gate()
    results = []
    job = RefreshJob("t", gate, 60, on_result=results.append)

    old = asyncio.ensure_future(job.run_cycle())
    await settle()

    manual = asyncio.ensure_future(job.refresh_now())
    await settle()
    gate.events[1].set()

    assert await manual is True
    assert await old is False
    assert results == ["result-2"]


async def test_failure_goes_to_on_error():
    errors = []

    async def cycle():
        raise RuntimeError("upstream down")

    job = RefreshJob("t", cycle, 60, on_result=Mock(), on_error=errors.append)
    assert await job.run_cycle() is False
    assert isinstance(errors[0], RuntimeError)
    job.on_result.assert_not_called()


async def test_stop_cancels_in_flight_and_blocks_new_cycles():
    gate = Gate()
    results = []
    job = RefreshJob("t", gate, 60, on_result=results.append)

    running = asyncio.ensure_future(job.run_cycle())
    await settle()

    job.stop()
    assert await running is False
    assert await job.run_cycle() is False
    assert gate.calls == 1
    assert results == []


def test_start_registers_immediate_interval_job():
    scheduler = Mock()
    scheduler.timezone = None
    job = RefreshJob("dash", Mock(), 300)

    job.start(scheduler)

    kwargs = scheduler.add_job.call_args.kwargs
    assert kwargs["id"] == "refresh:dash"
    assert kwargs["max_instances"] == 1
    assert kwargs["coalesce"] is True
    assert kwargs["next_run_time"] is not None
    assert kwargs["trigger"].interval.total_seconds() == 300

    job.stop()
    scheduler.add_job.return_value.remove.assert_called_once()
