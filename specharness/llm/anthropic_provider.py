"""Anthropic messages API behind the chat protocol."""

from __future__ import annotations

from typing import Any

import httpx
from anthropic import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncAnthropic

from specharness.llm.base import ChatError, ChatMessage, ChatResult

DEFAULT_MAX_TOKENS = 1024


class AnthropicChatProvider:
    """Async Anthropic chat; system messages are lifted into the ``system`` parameter."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_s: float = 60.0,
    ):
        kwargs: dict[str, Any] = {"api_key": api_key, "timeout": httpx.Timeout(timeout_s), "max_retries": 0}
        if base_url:
            kwargs["base_url"] = base_url.strip()
        self._client = AsyncAnthropic(**kwargs)

    async def aclose(self) -> None:
        await self._client.close()

    async def chat(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResult:
        system = "\n\n".join(m["content"] for m in messages if m.get("role") == "system")
        turns = [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m.get("role") in ("user", "assistant")
        ]
        kwargs: dict[str, Any] = {}
        if system:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = temperature
        try:
            response = await self._client.messages.create(
                model=model,
                max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
                messages=turns,  # type: ignore[arg-type]
                **kwargs,
            )
        except APITimeoutError as e:
            raise ChatError(f"Anthropic request timed out: {e}") from e
        except APIStatusError as e:
            raise ChatError(f"Anthropic error ({e.status_code}): {e.message}", status=e.status_code) from e
        except APIConnectionError as e:
            raise ChatError(f"Anthropic connection failed: {e}") from e
        except APIError as e:
            raise ChatError(f"Anthropic API error: {e}") from e

        text = "".join(
            getattr(block, "text", "") for block in response.content or [] if getattr(block, "type", "") == "text"
        )
        usage = response.usage
        return ChatResult(
            content=text,
            prompt_tokens=getattr(usage, "input_tokens", 0) or 0,
            completion_tokens=getattr(usage, "output_tokens", 0) or 0,
        )
