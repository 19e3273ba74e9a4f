import asyncio
import logging
from typing import Any

import httpx

from .errors import MonitorError, UpstreamError
from .http_utils import upstream_error_message

logger = logging.getLogger(__name__)

RETRY_DELAYS = (0.5, 1.0, 2.0)


class UpstreamClient:
    """Async client for an OpenAI-compatible API with connect-error retry."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        connect_retries: int = 2,
        retry_delays: tuple[float, ...] = RETRY_DELAYS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._connect_retries = max(0, connect_retries)
        self._retry_delays = retry_delays or (0.0,)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        if self._client is not None:
            return
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        self._client = httpx.AsyncClient(
            headers=headers,
            follow_redirects=True,
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            transport=self._transport,
        )

    async def stop(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        """Return initialized client or raise a clear runtime error."""
        if self._client is None:
            raise RuntimeError("Upstream client is not started")
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        **kwargs,
    ) -> httpx.Response:
        """Send request, retrying only connection failures; raise on non-2xx."""
        url = f"{self.base_url}{path}"
        attempts = self._connect_retries + 1
        for attempt in range(attempts):
            try:
                resp = await self._require_client().request(method, url, timeout=timeout, **kwargs)
                break
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                if attempt >= attempts - 1:
                    raise
                delay = self._retry_delays[min(attempt, len(self._retry_delays) - 1)]
                logger.warning(
                    "%s %s attempt %d failed: %s (retry in %.1fs)",
                    method, path, attempt + 1, e, delay,
                )
                await asyncio.sleep(delay)

        if resp.status_code >= 400:
            raise UpstreamError(resp.status_code, upstream_error_message(resp))
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise MonitorError(f"Upstream returned invalid JSON (HTTP {resp.status_code})") from e

    async def list_models(self, *, timeout: float) -> Any:
        """GET /models and return the decoded payload."""
        resp = await self.request("GET", "/models", timeout=timeout)
        return self._json(resp)

    async def chat_completion(
        self,
        model: str,
        content: str,
        *,
        max_tokens: int,
        timeout: float,
    ) -> Any:
        """POST a single-turn chat completion and return the decoded payload."""
        body = {
            "model": model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": max_tokens,
        }
        resp = await self.request("POST", "/chat/completions", timeout=timeout, json=body)
        return self._json(resp)
