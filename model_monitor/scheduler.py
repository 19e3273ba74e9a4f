"""Interval-driven refresh scheduler.

States move ``IDLE -> STARTING -> RUNNING -> STOPPED``. While running, two
periodic tasks call the same tick: the main refresh every interval, and a
preload offset by a fixed lead time. The tick itself decides whether a
refresh is already in flight.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from .errors import RefreshCycleError

logger = logging.getLogger(__name__)

TickFn = Callable[[str], Awaitable[None]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class RefreshScheduler:
    """Owns the periodic refresh tasks and the lifecycle state machine."""

    def __init__(
        self,
        tick: TickFn,
        *,
        interval_seconds: float = 120.0,
        preload_lead_seconds: float = 60.0,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._tick = tick
        self._interval = float(interval_seconds)
        self._preload_lead = max(0.0, float(preload_lead_seconds))
        self._state = SchedulerState.IDLE
        self._tasks: list[asyncio.Task] = []

    @property
    def state(self) -> SchedulerState:
        return self._state

    def is_active(self) -> bool:
        return self._state is SchedulerState.RUNNING and any(not t.done() for t in self._tasks)

    async def start(self, initial_cycle: Callable[[], Awaitable[Any]]) -> None:
        """Run the first cycle, then arm the timers. No-op if already started."""
        if self._state in (SchedulerState.STARTING, SchedulerState.RUNNING):
            return
        self._state = SchedulerState.STARTING
        logger.info("Starting background monitoring")

        try:
            await initial_cycle()
        except BaseException:
            if self._state is SchedulerState.STARTING:
                self._state = SchedulerState.IDLE
            raise

        if self._state is not SchedulerState.STARTING:
            logger.info("Monitoring stopped during startup; timers not armed")
            return

        try:
            self._tasks = [
                asyncio.create_task(self._run_loop("refresh", self._interval)),
                asyncio.create_task(self._run_loop("preload", self._preload_lead)),
            ]
        except Exception as e:
            await self._cancel_tasks()
            self._state = SchedulerState.IDLE
            raise RefreshCycleError(f"could not arm refresh timers: {e}") from e

        self._state = SchedulerState.RUNNING
        logger.info(
            "Background monitoring active (interval=%.0fs, preload lead=%.0fs)",
            self._interval, self._preload_lead,
        )

    async def stop(self) -> None:
        if self._state not in (SchedulerState.STARTING, SchedulerState.RUNNING):
            return
        self._state = SchedulerState.STOPPED
        await self._cancel_tasks()
        logger.info("Background monitoring stopped")

    async def _cancel_tasks(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run_loop(self, name: str, first_delay: float) -> None:
        delay = first_delay
        while True:
            await asyncio.sleep(delay)
            delay = self._interval
            try:
                await self._tick(name)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Keep the timer alive; the next tick retries.
                logger.error("Error during scheduled %s: %s", name, e, exc_info=True)
