"""Single-model liveness probe."""

from __future__ import annotations

import logging
from typing import Any

from .classifier import DEFAULT_TABLE, KeywordTable, ProbeKind, classify
from .discovery import extract_model_ids
from .errors import ModelNotFoundError
from .http_utils import describe_error
from .models import ModelStatus
from .upstream_client import UpstreamClient

logger = logging.getLogger(__name__)

NON_CHAT_RESPONSE = "Model available (non-chat)"
# Upstream wording when a model rejects a chat-shaped body, e.g. "unknown field `messages`".
UNKNOWN_FIELD_MARKER = "unknown field"


def _first_choice_text(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str) and content:
        return content
    return None


class Prober:
    """Checks one model; every failure becomes an ``offline`` record."""

    def __init__(
        self,
        client: UpstreamClient,
        *,
        table: KeywordTable = DEFAULT_TABLE,
        prompt: str = "Hello, are you working?",
        max_tokens: int = 16,
        chat_timeout: float = 60.0,
        catalog_timeout: float = 60.0,
    ) -> None:
        self._client = client
        self._table = table
        self._prompt = prompt
        self._max_tokens = max_tokens
        self._chat_timeout = chat_timeout
        self._catalog_timeout = catalog_timeout

    async def probe(self, model_id: str) -> ModelStatus:
        kind = classify(model_id, self._table)
        try:
            if kind is ProbeKind.CHAT:
                return await self._probe_chat(model_id)
            return await self._probe_catalog(model_id)
        except Exception as e:
            message = describe_error(e)

        if kind is ProbeKind.CHAT and UNKNOWN_FIELD_MARKER in message.lower():
            logger.info("%s rejected chat probe, retrying as non-chat", model_id)
            try:
                return await self._probe_catalog(model_id)
            except Exception as retry_exc:
                message = describe_error(retry_exc)

        logger.debug("%s offline: %s", model_id, message)
        return ModelStatus.offline(model_id, message)

    async def _probe_chat(self, model_id: str) -> ModelStatus:
        payload = await self._client.chat_completion(
            model_id,
            self._prompt,
            max_tokens=self._max_tokens,
            timeout=self._chat_timeout,
        )
        return ModelStatus.online(model_id, _first_choice_text(payload) or "OK")

    async def _probe_catalog(self, model_id: str) -> ModelStatus:
        payload = await self._client.list_models(timeout=self._catalog_timeout)
        if model_id not in extract_model_ids(payload):
            raise ModelNotFoundError(model_id)
        return ModelStatus.online(model_id, NON_CHAT_RESPONSE)
