"""Keyword heuristic that picks the probe shape for a model identifier."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProbeKind(str, Enum):
    CHAT = "chat"
    NON_CHAT = "non_chat"


CHAT_INDICATORS: tuple[str, ...] = (
    "gpt", "claude", "gemini", "llama", "mistral", "qwen", "deepseek",
    "chat", "instruct", "turbo", "sonnet", "haiku", "opus",
)

NON_CHAT_INDICATORS: tuple[str, ...] = (
    "tts", "whisper", "embedding", "ada", "babbage", "curie", "davinci",
    "dall-e", "midjourney", "stable-diffusion", "clip", "codex",
)


@dataclass(frozen=True)
class KeywordTable:
    """Lowercase substring sets; non-chat matches win over chat matches."""

    chat: tuple[str, ...] = CHAT_INDICATORS
    non_chat: tuple[str, ...] = NON_CHAT_INDICATORS
    default: ProbeKind = ProbeKind.CHAT

    @classmethod
    def from_lists(
        cls,
        chat: list[str] | None = None,
        non_chat: list[str] | None = None,
    ) -> KeywordTable:
        return cls(
            chat=tuple(k.lower() for k in chat) if chat is not None else CHAT_INDICATORS,
            non_chat=tuple(k.lower() for k in non_chat) if non_chat is not None else NON_CHAT_INDICATORS,
        )


DEFAULT_TABLE = KeywordTable()


def classify(model_id: str, table: KeywordTable = DEFAULT_TABLE) -> ProbeKind:
    name = (model_id or "").lower()
    if any(keyword in name for keyword in table.non_chat):
        return ProbeKind.NON_CHAT
    if any(keyword in name for keyword in table.chat):
        return ProbeKind.CHAT
    # Unrecognized identifiers are probed as chat models.
    return table.default
