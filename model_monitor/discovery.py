"""Model catalog discovery with a static fallback list."""

from __future__ import annotations

import logging
from typing import Any

from .errors import DiscoveryError
from .http_utils import describe_error
from .upstream_client import UpstreamClient

logger = logging.getLogger(__name__)

FALLBACK_MODELS: tuple[str, ...] = (
    "gpt-3.5-turbo",
    "gpt-4",
    "claude-3-haiku",
    "claude-3-sonnet",
    "gemini-pro",
)


def extract_model_ids(payload: Any) -> list[str]:
    """Pull ``data[].id`` from a /models payload, de-duplicated in order."""
    if not isinstance(payload, dict):
        raise DiscoveryError("Invalid response format")
    data = payload.get("data")
    if not isinstance(data, list):
        raise DiscoveryError("Invalid response format")
    ids: list[str] = []
    seen: set[str] = set()
    for entry in data:
        if not isinstance(entry, dict):
            continue
        model_id = entry.get("id")
        if not isinstance(model_id, str) or not model_id.strip() or model_id in seen:
            continue
        seen.add(model_id)
        ids.append(model_id)
    return ids


class Discovery:
    """Owns the current catalog; ``discover()`` never raises."""

    def __init__(
        self,
        client: UpstreamClient,
        *,
        timeout: float = 30.0,
        fallback: list[str] | tuple[str, ...] = FALLBACK_MODELS,
    ) -> None:
        if not fallback:
            raise ValueError("Fallback catalog must not be empty")
        self._client = client
        self._timeout = timeout
        self._fallback = list(fallback)
        self._catalog: list[str] = []
        self.used_fallback = False

    @property
    def catalog(self) -> list[str]:
        return list(self._catalog)

    async def discover(self) -> list[str]:
        try:
            payload = await self._client.list_models(timeout=self._timeout)
            ids = extract_model_ids(payload)
            if not ids:
                raise DiscoveryError("Catalog is empty")
        except Exception as e:
            reason = describe_error(e)
            logger.warning(
                "Failed to fetch models from API: %s; using %d fallback models",
                reason, len(self._fallback),
            )
            self._catalog = list(self._fallback)
            self.used_fallback = True
            return self.catalog

        self._catalog = ids
        self.used_fallback = False
        logger.info("Discovered %d models", len(ids))
        return self.catalog
