# core/scheduler.py

"""
Cancellable refresh jobs on top of APScheduler.

A RefreshJob runs one cycle immediately on start, then on a fixed
interval until stop(). Cycles never overlap: a tick that arrives while a
cycle is in flight is skipped. Each cycle carries a generation number;
supersede() bumps it so an older cycle that resolves late is discarded
instead of overwriting fresher state.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.logging_config import logger


CycleFn = Callable[[], Awaitable[Any]]
ResultFn = Callable[[Any], None]
ErrorFn = Callable[[BaseException], None]


_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Process-wide scheduler, started lazily inside the running loop."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={"coalesce": True, "max_instances": 1},
        )
    if not _scheduler.running:
        _scheduler.start()
    return _scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None


class RefreshJob:
    def __init__(
        self,
        name: str,
        cycle: CycleFn,
        interval_seconds: float,
        on_result: Optional[ResultFn] = None,
        on_error: Optional[ErrorFn] = None,
    ):
        self.name = name
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.on_result = on_result
        self.on_error = on_error

        self.generation = 0
        self.stopped = False
        self._task: Optional[asyncio.Task] = None
        self._task_generation = -1
        self._job = None
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def in_flight(self) -> bool:
        """A cycle of the current generation is running."""
        return (
            self._task is not None
            and not self._task.done()
            and self._task_generation == self.generation
        )

    # -----------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------
    def start(self, scheduler: Optional[AsyncIOScheduler] = None):
        """Register the interval job; the first cycle fires immediately."""
        self._scheduler = scheduler or get_scheduler()
        self.stopped = False
        self._job = self._scheduler.add_job(
            self.run_cycle,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=f"refresh:{self.name}",
            replace_existing=True,
            next_run_time=datetime.now(self._scheduler.timezone),
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Refresh job '{self.name}' started (every {self.interval_seconds}s)")

    def stop(self):
        """Remove the timer and cancel the in-flight cycle, if any."""
        self.stopped = True
        self.generation += 1

        if self._job is not None:
            try:
                self._job.remove()
            except Exception as e:
                # JobLookupError when the scheduler already dropped it
                logger.debug(f"Refresh job '{self.name}' already removed: {e}")
            self._job = None

        self._cancel_task()
        logger.info(f"Refresh job '{self.name}' stopped")

    def supersede(self):
        """Invalidate whatever cycle is running now (e.g. the viewer's wing changed)."""
        self.generation += 1
        self._cancel_task()
        logger.info(f"Refresh job '{self.name}' superseded (generation {self.generation})")

    async def refresh_now(self) -> bool:
        """Manual reload: drop any in-flight cycle and run a fresh one."""
        if self.in_flight:
            self.supersede()
        return await self.run_cycle()

    def _cancel_task(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # -----------------------------------------------------
    # One cycle
    # -----------------------------------------------------
    async def run_cycle(self) -> bool:
        """
        Run one fetch-and-compute cycle. Returns False when skipped
        (already in flight or stopped) or when the result was discarded.
        """
        if self.stopped:
            return False
        if self.in_flight:
            logger.info(f"Refresh job '{self.name}': previous cycle still running, skipping tick")
            return False

        generation = self.generation
        task = asyncio.ensure_future(self.cycle())
        self._task = task
        self._task_generation = generation
        try:
            result = await task
        except asyncio.CancelledError:
            if self.generation != generation:
                logger.info(f"Refresh job '{self.name}': cycle {generation} cancelled")
                return False
            raise
        except Exception as e:
            if self.generation != generation:
                return False
            logger.warning(f"Refresh job '{self.name}': cycle failed: {e}")
            if self.on_error is not None:
                self.on_error(e)
            return False
        finally:
            if self._task is task:
                self._task = None

        if self.generation != generation:
            logger.info(f"Refresh job '{self.name}': discarding stale result from cycle {generation}")
            return False

        if self.on_result is not None:
            self.on_result(result)
        return True
