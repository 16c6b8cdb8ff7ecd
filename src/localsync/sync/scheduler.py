"""Periodic driver for sync cycles.

``SyncScheduler`` runs an async *cycle* callable on a fixed interval, with
a warm-up delay before the first tick, plus on demand via
``trigger_now()``.

Re-entrancy: at most one cycle runs at a time.  A trigger that arrives
while a cycle is in flight is dropped, not queued; the next tick picks up
whatever was missed.  The guard is a plain flag, checked and set with no
``await`` in between, which is enough on a single event loop.

``stop()`` cancels the tick loop, and any tick that is queued but has not
started finds the stop flag and does nothing.  A cycle that is already
running completes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .models import SyncSummary

logger = logging.getLogger(__name__)

CycleFn = Callable[[], Awaitable[SyncSummary]]


class SyncScheduler:
    """Run *cycle* periodically with at-most-one-in-flight semantics.

    Args:
        cycle: Coroutine function performing one sync cycle.
        warmup_delay_ms: Delay before the first scheduled cycle.
    """

    def __init__(self, cycle: CycleFn, warmup_delay_ms: int = 800) -> None:
        self._cycle = cycle
        self.warmup_delay_ms = warmup_delay_ms
        self._in_flight = False
        self._stopped = False
        self._loop_task: asyncio.Task | None = None
        self._tick_tasks: set[asyncio.Task] = set()
        self.interval_ms: int | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        """``True`` while the periodic loop is active."""
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> bool:
        """``True`` while a cycle is executing."""
        return self._in_flight

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self, interval_ms: int) -> None:
        """Begin periodic cycles on the running event loop.

        Raises:
            ValueError: If *interval_ms* is not positive.
            RuntimeError: If the scheduler is already running, or no
                event loop is running.
        """
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        if self.running:
            raise RuntimeError("Scheduler is already running")

        loop = asyncio.get_running_loop()
        self._stopped = False
        self.interval_ms = interval_ms
        self._loop_task = loop.create_task(self._tick_loop(interval_ms))
        logger.info(
            "Sync scheduler started: first cycle in %dms, then every %dms",
            self.warmup_delay_ms,
            interval_ms,
        )

    def stop(self) -> None:
        """Cancel the tick loop; queued ticks find the stop flag and exit.

        Idempotent.  A cycle already executing is not interrupted.
        """
        self._stopped = True
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
        logger.info("Sync scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for every spawned tick task to finish."""
        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)

    async def trigger_now(self) -> SyncSummary | None:
        """Run an out-of-band cycle immediately.

        Returns:
            The cycle's summary, or ``None`` if the trigger was dropped
            because a cycle is in flight or the scheduler was stopped.
        """
        return await self._run_guarded("manual")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_guarded(self, source: str) -> SyncSummary | None:
        if self._stopped:
            logger.debug("Dropping %s trigger: scheduler stopped", source)
            return None
        if self._in_flight:
            logger.debug("Dropping %s trigger: cycle in flight", source)
            return None

        self._in_flight = True
        try:
            return await self._cycle()
        finally:
            self._in_flight = False

    async def _tick_loop(self, interval_ms: int) -> None:
        await asyncio.sleep(self.warmup_delay_ms / 1000)
        while not self._stopped:
            self._spawn_tick()
            await asyncio.sleep(interval_ms / 1000)

    def _spawn_tick(self) -> None:
        # One task per tick; the interval does not wait for the cycle.
        task = asyncio.get_running_loop().create_task(self._scheduled_tick())
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    async def _scheduled_tick(self) -> None:
        try:
            await self._run_guarded("scheduled")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled sync cycle failed")
