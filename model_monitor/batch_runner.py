import asyncio
import contextlib
import logging
import time
from typing import Awaitable, Callable

from .http_utils import describe_error
from .models import ModelState, ModelStatus

logger = logging.getLogger(__name__)

ProbeFn = Callable[[str], Awaitable[ModelStatus]]


def partition(model_ids: list[str], batch_size: int) -> list[list[str]]:
    """Split ids into fixed-size batches, dropping repeats."""
    size = max(1, batch_size)
    unique = list(dict.fromkeys(model_ids))
    return [unique[i:i + size] for i in range(0, len(unique), size)]


class BatchRunner:
    """Probe a whole catalog in concurrent batches with settle-all joins.

    Every batch is started at once unless ``max_concurrent_batches`` is set,
    so a slow upstream can hold up to catalog-size probes in flight.
    """

    def __init__(self, probe: ProbeFn, *, batch_size: int = 10, max_concurrent_batches: int = 0):
        self._probe = probe
        self._batch_size = max(1, batch_size)
        self._max_concurrent_batches = max(0, max_concurrent_batches)

    async def run_all(self, catalog: list[str]) -> dict[str, ModelStatus]:
        batches = partition(catalog, self._batch_size)
        if not batches:
            return {}

        limiter = asyncio.Semaphore(self._max_concurrent_batches) if self._max_concurrent_batches else None
        started = time.monotonic()
        batch_results = await asyncio.gather(*(self._run_batch(batch, limiter) for batch in batches))

        merged: dict[str, ModelStatus] = {}
        for result in batch_results:
            for model_id, status in result.items():
                merged.setdefault(model_id, status)

        online = sum(1 for s in merged.values() if s.status is ModelState.ONLINE)
        logger.info(
            "Probed %d models in %d batches (%d online) in %.1fs",
            len(merged), len(batches), online, time.monotonic() - started,
        )
        return merged

    async def _run_batch(
        self,
        batch: list[str],
        limiter: asyncio.Semaphore | None,
    ) -> dict[str, ModelStatus]:
        async with limiter if limiter is not None else contextlib.nullcontext():
            outcomes = await asyncio.gather(
                *(self._probe(model_id) for model_id in batch),
                return_exceptions=True,
            )

        results: dict[str, ModelStatus] = {}
        for model_id, outcome in zip(batch, outcomes):
            if isinstance(outcome, ModelStatus):
                results[model_id] = outcome
                continue
            if isinstance(outcome, BaseException):
                error = describe_error(outcome)
            else:
                error = f"Unexpected probe result: {type(outcome).__name__}"
            logger.error("Probe for %s failed unexpectedly: %s", model_id, error)
            results[model_id] = ModelStatus.failed(model_id, error)
        return results
