"""Route ``provider:model`` ids to the matching provider client."""

from __future__ import annotations

import logging
from typing import Any

from specharness.config import Settings, get_settings
from specharness.llm.anthropic_provider import AnthropicChatProvider
from specharness.llm.base import ChatError, ChatMessage, ChatResult
from specharness.llm.openai_provider import OpenAIChatProvider
from specharness.llm.registry import parse_provider_model_id

logger = logging.getLogger(__name__)

_Client = OpenAIChatProvider | AnthropicChatProvider


class ProviderRouter:
    """Chat provider that dispatches on the model id prefix.

    Clients are created on first use so that a run touching only one provider
    does not require keys for the others.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._clients: dict[str, _Client] = {}

    def _client(self, provider: str) -> _Client:
        if provider in self._clients:
            return self._clients[provider]
        s = self._settings
        timeout = s.provider_timeout_s
        if provider == "openai":
            key = (s.openai_api_key or "").strip()
            if not key:
                raise ChatError("Missing OPENAI_API_KEY")
            client: _Client = OpenAIChatProvider(key, s.openai_base_url, timeout, label="OpenAI")
        elif provider == "groq":
            key = (s.groq_api_key or "").strip()
            if not key:
                raise ChatError("Missing GROQ_API_KEY")
            client = OpenAIChatProvider(key, s.groq_base_url, timeout, label="Groq")
        else:
            key = (s.anthropic_api_key or "").strip()
            if not key:
                raise ChatError("Missing ANTHROPIC_API_KEY")
            client = AnthropicChatProvider(key, s.anthropic_base_url, timeout)
        logger.debug("Created %s chat client", provider)
        self._clients[provider] = client
        return client

    async def chat(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResult:
        try:
            provider, model_name = parse_provider_model_id(model)
        except ValueError as e:
            raise ChatError(str(e)) from e
        client = self._client(provider)
        return await client.chat(model_name, messages, temperature=temperature, max_tokens=max_tokens)

    async def aclose(self) -> None:
        """Close the HTTP pools of every client created so far."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()


def env_diagnostics(settings: Settings | None = None) -> dict[str, Any]:
    """Which providers have keys configured, and their base URLs. Never the keys."""
    s = settings or get_settings()
    return {
        "openai": {"has_key": bool((s.openai_api_key or "").strip()), "base_url": s.openai_base_url.strip()},
        "groq": {"has_key": bool((s.groq_api_key or "").strip()), "base_url": s.groq_base_url.strip()},
        "anthropic": {
            "has_key": bool((s.anthropic_api_key or "").strip()),
            "base_url": (s.anthropic_base_url or "https://api.anthropic.com").strip(),
        },
    }
