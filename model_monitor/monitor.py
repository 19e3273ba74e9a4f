"""Model status monitor: owns discovery, probing, the cache, and refresh timing."""

from __future__ import annotations

import asyncio
import logging

from .batch_runner import BatchRunner
from .cache_store import CacheStore, Clock, utc_now
from .classifier import KeywordTable
from .config import Settings, override_list
from .discovery import FALLBACK_MODELS, Discovery
from .errors import RefreshCycleError
from .http_utils import describe_error
from .models import CachedResponse, ModelStatus
from .prober import Prober
from .scheduler import RefreshScheduler, SchedulerState
from .upstream_client import UpstreamClient

logger = logging.getLogger(__name__)

REFRESH_MODES = ("interval", "lazy")


class ModelMonitor:
    """Single owner of the status cache.

    At most one refresh cycle runs at a time. Timer ticks skip while a cycle
    is in flight; explicit refreshes join the in-flight cycle instead of
    starting another, so the cache only ever receives whole-cycle writes.
    """

    def __init__(
        self,
        client: UpstreamClient,
        settings: Settings,
        *,
        mode: str | None = None,
        overrides: dict | None = None,
        clock: Clock = utc_now,
    ):
        self.mode = mode or settings.resolved_refresh_mode()
        if self.mode not in REFRESH_MODES:
            raise ValueError(f"Unknown refresh mode: {self.mode}")

        overrides = overrides or {}
        table = KeywordTable.from_lists(
            chat=override_list(overrides, "chat_indicators"),
            non_chat=override_list(overrides, "non_chat_indicators"),
        )
        fallback = override_list(overrides, "fallback_models") or list(FALLBACK_MODELS)

        self.discovery = Discovery(
            client,
            timeout=settings.discovery_timeout_seconds,
            fallback=fallback,
        )
        self.prober = Prober(
            client,
            table=table,
            prompt=settings.probe_prompt,
            max_tokens=settings.probe_max_tokens,
            chat_timeout=settings.chat_timeout_seconds,
            catalog_timeout=settings.chat_timeout_seconds,
        )
        self.runner = BatchRunner(
            self.prober.probe,
            batch_size=settings.batch_size,
            max_concurrent_batches=settings.max_concurrent_batches,
        )
        self.cache = CacheStore(ttl_seconds=settings.cache_ttl_seconds, clock=clock)
        self.scheduler = RefreshScheduler(
            self._on_tick,
            interval_seconds=settings.refresh_interval_seconds,
            preload_lead_seconds=settings.preload_lead_seconds,
        )
        self._refresh_task: asyncio.Task | None = None
        self._refresh_discovers = False
        self.cycles_completed = 0

    # --- Lifecycle ---

    async def start(self) -> None:
        if self.mode == "lazy":
            logger.info("Lazy refresh mode, skipping background monitoring")
            return
        await self.scheduler.start(lambda: self.refresh(discover=True))

    async def stop(self) -> None:
        """Cancel the timers and any cycle still in flight."""
        await self.scheduler.stop()
        task, self._refresh_task = self._refresh_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except (asyncio.CancelledError, RefreshCycleError):
            pass
        logger.info("Cancelled in-flight refresh cycle")

    def is_active(self) -> bool:
        return self.scheduler.is_active()

    @property
    def state(self) -> SchedulerState:
        return self.scheduler.state

    @property
    def catalog(self) -> list[str]:
        return self.discovery.catalog

    # --- Refresh ---

    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def refresh(self, *, discover: bool = True) -> dict[str, ModelStatus]:
        """Run one cycle, or join the one already running.

        Returns the cycle's own results, keyed by every catalog identifier.
        """
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._run_cycle(discover))
            self._refresh_task = task
            self._refresh_discovers = discover
        else:
            logger.debug("Refresh already in flight, awaiting it")
        return await asyncio.shield(task)

    async def force_refresh(self) -> dict[str, ModelStatus]:
        """Full discovery and probe pass, bypassing the TTL.

        A timer cycle in flight reuses the old catalog, so it is awaited first
        and a discovering cycle follows it.
        """
        task = self._refresh_task
        if task is not None and not task.done() and not self._refresh_discovers:
            logger.debug("Waiting for timer refresh before rediscovering")
            try:
                await asyncio.shield(task)
            except RefreshCycleError:
                pass
        return await self.refresh(discover=True)

    async def ensure_fresh(self) -> None:
        """Refresh before a read when the cache is empty or past its TTL."""
        empty = self.cache.is_empty()
        if not empty and not self.cache.is_stale():
            return
        logger.info("Cache is %s, refreshing...", "empty" if empty else "stale")
        await self.refresh(discover=False)

    async def _run_cycle(self, discover: bool) -> dict[str, ModelStatus]:
        try:
            if discover or not self.discovery.catalog:
                catalog = await self.discovery.discover()
            else:
                catalog = self.discovery.catalog
            results = await self.runner.run_all(catalog)
            if self.scheduler.state is SchedulerState.STOPPED:
                logger.info("Monitoring stopped, discarding refresh results")
                return results
            self.cache.write(results)
        except Exception as e:
            logger.exception("Refresh cycle failed")
            raise RefreshCycleError(describe_error(e)) from e
        self.cycles_completed += 1
        return results

    async def _on_tick(self, name: str) -> None:
        if self.refresh_in_flight():
            logger.debug("Skipping %s tick, refresh already in flight", name)
            return
        await self.refresh(discover=False)

    # --- Read ---

    def snapshot(self) -> CachedResponse:
        return self.cache.cached_response()

    async def get_snapshot(self) -> CachedResponse:
        """Read contract; never raises.

        In lazy mode this may wait for one refresh cycle. In interval mode a
        monitor whose startup failed retries ``start()`` here.
        """
        if self.mode == "lazy":
            try:
                await self.ensure_fresh()
            except RefreshCycleError as e:
                logger.warning("Serving cached data after failed refresh: %s", e)
        elif self.state is SchedulerState.IDLE:
            try:
                await self.start()
            except RefreshCycleError as e:
                logger.warning("Background monitoring still not started: %s", e)
        return self.snapshot()
