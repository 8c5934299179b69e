"""LLM adapter layer: OpenAI, Groq and Anthropic behind a common chat protocol."""

from specharness.config import Settings
from specharness.llm.anthropic_provider import AnthropicChatProvider
from specharness.llm.base import ChatError, ChatMessage, ChatProvider, ChatResult, extract_http_status
from specharness.llm.openai_provider import OpenAIChatProvider
from specharness.llm.registry import (
    DEFAULT_AUDITOR_MODEL_ID,
    DEFAULT_SELECTED_MODELS,
    MODEL_REGISTRY,
    assert_registry_model_id,
    parse_provider_model_id,
)
from specharness.llm.router import ProviderRouter, env_diagnostics


def get_provider(settings: Settings | None = None) -> ProviderRouter:
    """Return the chat capability used for runs (routes by model id prefix)."""
    return ProviderRouter(settings)


__all__ = [
    "AnthropicChatProvider",
    "ChatError",
    "ChatMessage",
    "ChatProvider",
    "ChatResult",
    "DEFAULT_AUDITOR_MODEL_ID",
    "DEFAULT_SELECTED_MODELS",
    "MODEL_REGISTRY",
    "OpenAIChatProvider",
    "ProviderRouter",
    "assert_registry_model_id",
    "env_diagnostics",
    "extract_http_status",
    "get_provider",
    "parse_provider_model_id",
]
