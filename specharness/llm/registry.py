"""Model registry: the provider-prefixed model ids a run may select."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel

Provider = Literal["openai", "groq", "anthropic"]


class ProviderModelOption(BaseModel):
    id: str  # e.g. "openai:gpt-4o-mini"
    label: str
    provider: Provider
    badge: Literal["Reasoning", "Fast", "Base"] | None = None


# Examples; change to whatever your accounts support.
MODEL_REGISTRY: list[ProviderModelOption] = [
    ProviderModelOption(id="openai:gpt-4.1-mini", label="GPT-4.1 mini", provider="openai", badge="Base"),
    ProviderModelOption(id="openai:gpt-4o-mini", label="GPT-4o mini", provider="openai", badge="Fast"),
    ProviderModelOption(
        id="groq:llama-3.1-70b-versatile", label="Llama 3.1 70B Versatile", provider="groq", badge="Fast"
    ),
    ProviderModelOption(
        id="groq:llama-3.1-8b-instant", label="Llama 3.1 8B Instant", provider="groq", badge="Fast"
    ),
    ProviderModelOption(
        id="anthropic:claude-3-5-sonnet-20241022", label="Claude 3.5 Sonnet", provider="anthropic", badge="Reasoning"
    ),
    ProviderModelOption(
        id="anthropic:claude-3-5-haiku-20241022", label="Claude 3.5 Haiku", provider="anthropic", badge="Fast"
    ),
]

DEFAULT_SELECTED_MODELS = ["openai:gpt-4o-mini", "groq:llama-3.1-70b-versatile"]
DEFAULT_AUDITOR_MODEL_ID = "openai:gpt-4o-mini"

_MODEL_ID_RE = re.compile(r"^(openai|groq|anthropic):(.+)$", re.IGNORECASE)


def parse_provider_model_id(model_id: str) -> tuple[Provider, str]:
    """Split ``provider:model`` into its parts."""
    s = str(model_id or "").strip()
    m = _MODEL_ID_RE.match(s)
    if not m:
        raise ValueError(
            f'Invalid model id "{model_id}". Expected "openai:<model>", "groq:<model>" or "anthropic:<model>".'
        )
    provider = m.group(1).lower()
    return provider, m.group(2).strip()  # type: ignore[return-value]


def registry_ids() -> list[str]:
    return [m.id for m in MODEL_REGISTRY]


def assert_registry_model_id(model_id: str) -> None:
    if model_id not in registry_ids():
        raise ValueError(f'Model "{model_id}" is not in registry.')
