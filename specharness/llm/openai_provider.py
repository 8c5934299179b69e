"""OpenAI chat completions; also serves Groq through its OpenAI-compatible endpoint."""

from __future__ import annotations

from typing import Any

import httpx
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI

from specharness.llm.base import ChatError, ChatMessage, ChatResult


class OpenAIChatProvider:
    """Async chat completion against any OpenAI-compatible base URL."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_s: float = 60.0,
        label: str = "OpenAI",
    ):
        self._label = label
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url.strip(),
            timeout=httpx.Timeout(timeout_s),
            max_retries=0,
        )

    async def aclose(self) -> None:
        await self._client.close()

    async def chat(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResult:
        kwargs: dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,  # type: ignore[arg-type]
                **kwargs,
            )
        except APITimeoutError as e:
            raise ChatError(f"{self._label} request timed out: {e}") from e
        except APIStatusError as e:
            raise ChatError(f"{self._label} error ({e.status_code}): {e.message}", status=e.status_code) from e
        except APIConnectionError as e:
            raise ChatError(f"{self._label} connection failed: {e}") from e
        except APIError as e:
            raise ChatError(f"{self._label} API error: {e}") from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        usage = response.usage
        return ChatResult(
            content=content,
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )
