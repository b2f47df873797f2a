"""Refresh scheduler -- owned timer driving the fetch aggregator.

Lifecycle IDLE -> POLLING -> STOPPED. While polling, a full refresh cycle
fires immediately and then on a fixed interval. Cycles run as detached
tasks so a slow backend never delays the timer. A timeframe change
refetches only the affected chart and leaves the timer phase alone.

Stopping cancels the timer only. Requests already in flight settle into
this scheduler's own state, which nothing new ever reads.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from enum import Enum
from typing import Any

from tradewatch.logging import get_logger
from tradewatch.models import ChartKind, Timeframe
from tradewatch.sync.aggregator import FetchAggregator

logger = get_logger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


class RefreshScheduler:
    """Periodic and on-demand refresh of the dashboard state.

    No backoff and no retry: every tick is independent and a failed tick
    simply takes part in the next one.

    Args:
        aggregator: Aggregator that fetches and applies results.
        interval: Seconds between timer-driven cycles.
    """

    def __init__(self, aggregator: FetchAggregator, interval: float = 10.0) -> None:
        self._aggregator = aggregator
        self._interval = interval
        self._status = SchedulerState.IDLE
        self._timer: asyncio.Task | None = None  # type: ignore[type-arg]
        self._inflight: set[asyncio.Task] = set()  # type: ignore[type-arg]
        self._ticks = 0

    @property
    def status(self) -> SchedulerState:
        return self._status

    @property
    def ticks(self) -> int:
        """Number of timer-driven cycles fired so far."""
        return self._ticks

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def start(self) -> None:
        """Begin polling: one cycle now, then one every interval."""
        if self._status is SchedulerState.POLLING:
            logger.warning("refresh_scheduler_already_running")
            return
        if self._status is SchedulerState.STOPPED:
            logger.warning("refresh_scheduler_restart_ignored")
            return
        self._status = SchedulerState.POLLING
        self._timer = asyncio.create_task(self._timer_loop())
        logger.info("refresh_scheduler_started", interval=self._interval)

    async def stop(self) -> None:
        """Disarm the timer. No cycle starts after this returns."""
        self._status = SchedulerState.STOPPED
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None
        logger.info("refresh_scheduler_stopped", inflight=len(self._inflight))

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight cycles to settle (used before closing the gateway)."""
        if not self._inflight:
            return
        done, pending = await asyncio.wait(set(self._inflight), timeout=timeout)
        if pending:
            logger.warning("refresh_drain_timeout", pending=len(pending))

    def set_timeframe(self, kind: ChartKind, timeframe: Timeframe) -> bool:
        """Select a chart timeframe and refetch that chart right away.

        Returns:
            True if a refetch was triggered.
        """
        changed = self._aggregator.state.set_timeframe(kind, timeframe)
        if not changed or self._status is not SchedulerState.POLLING:
            return False
        self._spawn(self._aggregator.refresh_chart(kind))
        return True

    def refresh_now(self) -> bool:
        """Trigger a full cycle outside the timer. Ignored unless polling."""
        if self._status is not SchedulerState.POLLING:
            return False
        self._spawn(self._aggregator.refresh_all())
        return True

    async def _timer_loop(self) -> None:
        while self._status is SchedulerState.POLLING:
            try:
                self._ticks += 1
                self._spawn(self._aggregator.refresh_all())
            except Exception:
                logger.warning("refresh_tick_error", exc_info=True)
            await asyncio.sleep(self._interval)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._on_cycle_done)

    def _on_cycle_done(self, task: asyncio.Task) -> None:  # type: ignore[type-arg]
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("refresh_cycle_failed", exc_info=exc)
