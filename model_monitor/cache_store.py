"""In-memory TTL cache holding the latest status snapshot."""

from __future__ import annotations

import logging
import math
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from .models import CacheInfo, CachedResponse, ModelState, ModelStats, ModelStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheStore:
    """Latest status map plus its last-refresh time.

    Writes merge into a fresh dict and swap the reference under a lock, so a
    reader sees either the previous cycle or the new one, never a mix.
    """

    def __init__(self, ttl_seconds: float = 120.0, clock: Clock = utc_now):
        self._ttl_seconds = max(0.0, float(ttl_seconds))
        self._clock = clock
        self._lock = threading.Lock()
        self._statuses: dict[str, ModelStatus] = {}
        self._last_update: datetime = clock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def last_update(self) -> datetime:
        with self._lock:
            return self._last_update

    def _age_since(self, last_update: datetime) -> int:
        elapsed = (self._clock() - last_update).total_seconds()
        return max(0, math.floor(elapsed))

    def age_seconds(self) -> int:
        return self._age_since(self.last_update)

    def is_stale(self) -> bool:
        return self.age_seconds() > self._ttl_seconds

    def is_empty(self) -> bool:
        return not self._statuses

    def snapshot(self) -> CacheInfo:
        last_update = self.last_update
        age = self._age_since(last_update)
        return CacheInfo(
            last_update=last_update.isoformat(),
            next_update=(last_update + timedelta(seconds=self._ttl_seconds)).isoformat(),
            is_stale=age > self._ttl_seconds,
            cache_age=age,
        )

    def read(self) -> dict[str, ModelStatus]:
        with self._lock:
            return dict(self._statuses)

    def write(self, results: dict[str, ModelStatus]) -> None:
        with self._lock:
            merged = dict(self._statuses)
            merged.update(results)
            self._statuses = merged
            self._last_update = updated = self._clock()
        logger.info("Cache updated at %s (%d entries)", updated.isoformat(), len(merged))

    def stats(self) -> ModelStats:
        return compute_stats(self.read())

    def cached_response(self) -> CachedResponse:
        data = self.read()
        return CachedResponse(data=data, cache=self.snapshot(), stats=compute_stats(data))


def compute_stats(statuses: dict[str, ModelStatus]) -> ModelStats:
    total = len(statuses)
    online = sum(1 for s in statuses.values() if s.status is ModelState.ONLINE)
    uptime = f"{online / total * 100:.1f}" if total > 0 else "0"
    return ModelStats(total=total, online=online, offline=total - online, uptime=uptime)
