import asyncio

import pytest

from model_monitor.scheduler import RefreshScheduler, SchedulerState


class TickRecorder:
    def __init__(self, fail_first: bool = False):
        self.ticks: list[str] = []
        self._fail_first = fail_first

    async def __call__(self, name: str) -> None:
        self.ticks.append(name)
        if self._fail_first and len(self.ticks) == 1:
            raise RuntimeError("transient tick failure")


async def _noop_cycle():
    return None


async def test_stop_while_idle_is_noop():
    scheduler = RefreshScheduler(TickRecorder())
    await scheduler.stop()
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.is_active() is False


async def test_start_runs_initial_cycle_then_arms_timers():
    cycles = []

    async def initial():
        cycles.append("initial")

    scheduler = RefreshScheduler(TickRecorder(), interval_seconds=60, preload_lead_seconds=30)
    await scheduler.start(initial)
    try:
        assert cycles == ["initial"]
        assert scheduler.state is SchedulerState.RUNNING
        assert scheduler.is_active() is True
    finally:
        await scheduler.stop()


async def test_start_is_idempotent():
    cycles = []

    async def initial():
        cycles.append("initial")

    scheduler = RefreshScheduler(TickRecorder(), interval_seconds=60)
    await scheduler.start(initial)
    await scheduler.start(initial)
    try:
        assert cycles == ["initial"]
    finally:
        await scheduler.stop()


async def test_concurrent_start_while_starting_is_noop():
    gate = asyncio.Event()
    cycles = []

    async def initial():
        cycles.append("initial")
        await gate.wait()

    scheduler = RefreshScheduler(TickRecorder(), interval_seconds=60)
    first = asyncio.create_task(scheduler.start(initial))
    await asyncio.sleep(0)
    assert scheduler.state is SchedulerState.STARTING
    await scheduler.start(initial)
    gate.set()
    await first
    try:
        assert cycles == ["initial"]
        assert scheduler.state is SchedulerState.RUNNING
    finally:
        await scheduler.stop()


async def test_failed_initial_cycle_reverts_to_idle_and_propagates():
    async def initial():
        raise RuntimeError("startup failed")

    scheduler = RefreshScheduler(TickRecorder())
    with pytest.raises(RuntimeError, match="startup failed"):
        await scheduler.start(initial)
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.is_active() is False

    await scheduler.start(_noop_cycle)
    try:
        assert scheduler.state is SchedulerState.RUNNING
    finally:
        await scheduler.stop()


async def test_stop_cancels_both_timers():
    scheduler = RefreshScheduler(TickRecorder(), interval_seconds=60, preload_lead_seconds=30)
    await scheduler.start(_noop_cycle)
    tasks = list(scheduler._tasks)
    assert len(tasks) == 2

    await scheduler.stop()
    assert scheduler.state is SchedulerState.STOPPED
    assert scheduler.is_active() is False
    assert all(t.cancelled() for t in tasks)

    await scheduler.stop()
    assert scheduler.state is SchedulerState.STOPPED


async def test_stop_during_startup_leaves_timers_unarmed():
    gate = asyncio.Event()

    async def initial():
        await gate.wait()

    scheduler = RefreshScheduler(TickRecorder(), interval_seconds=60)
    starting = asyncio.create_task(scheduler.start(initial))
    await asyncio.sleep(0)
    await scheduler.stop()
    gate.set()
    await starting
    assert scheduler.state is SchedulerState.STOPPED
    assert scheduler._tasks == []


async def test_restart_after_stop():
    scheduler = RefreshScheduler(TickRecorder(), interval_seconds=60)
    await scheduler.start(_noop_cycle)
    await scheduler.stop()
    await scheduler.start(_noop_cycle)
    try:
        assert scheduler.is_active() is True
    finally:
        await scheduler.stop()


async def test_preload_fires_before_main_refresh():
    recorder = TickRecorder()
    scheduler = RefreshScheduler(recorder, interval_seconds=0.4, preload_lead_seconds=0.1)
    await scheduler.start(_noop_cycle)
    try:
        await asyncio.sleep(0.25)
        assert recorder.ticks == ["preload"]
        await asyncio.sleep(0.3)
        assert "refresh" in recorder.ticks
    finally:
        await scheduler.stop()


async def test_tick_failure_keeps_timer_running():
    recorder = TickRecorder(fail_first=True)
    scheduler = RefreshScheduler(recorder, interval_seconds=0.03, preload_lead_seconds=10)
    await scheduler.start(_noop_cycle)
    try:
        await asyncio.sleep(0.15)
    finally:
        await scheduler.stop()
    assert recorder.ticks.count("refresh") >= 2


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        RefreshScheduler(TickRecorder(), interval_seconds=0)
