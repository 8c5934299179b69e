"""Chat capability protocol shared by every provider adapter."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

ChatMessage = dict[str, str]  # {"role": "system" | "user" | "assistant", "content": str}


@dataclass
class ChatResult:
    """Normalized chat completion: text plus token usage."""

    content: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0


class ChatError(Exception):
    """Any provider-side failure: timeout, non-2xx, network, missing credentials."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status if status is not None else extract_http_status(message)


class ChatProvider(Protocol):
    """Protocol for chat backends (OpenAI, Groq, Anthropic, router, fakes)."""

    async def chat(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResult:
        ...


_PAREN_STATUS_RE = re.compile(r"error\s*\((\d{3})\)", re.IGNORECASE)
_BARE_STATUS_RE = re.compile(r"\b(\d{3})\b")


def extract_http_status(message: str) -> int | None:
    """Pull an HTTP status out of an error message.

    Prefers the ``error (NNN)`` form, else the first standalone 3-digit number.
    Only 100-599 counts as a status.
    """
    text = message or ""
    m = _PAREN_STATUS_RE.search(text)
    if m and 100 <= int(m.group(1)) <= 599:
        return int(m.group(1))
    m = _BARE_STATUS_RE.search(text)
    if not m:
        return None
    code = int(m.group(1))
    return code if 100 <= code <= 599 else None
