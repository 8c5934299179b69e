"""Rate card: per-model token pricing used for cost estimates."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import ValidationError

from specharness.schemas.models import ModelRate

logger = logging.getLogger(__name__)

# Placeholders. Supply your own rate card for accurate accounting.
DEFAULT_RATECARD: list[ModelRate] = [
    ModelRate(model="openai:gpt-4o-mini", input_per_1k=0.00015, output_per_1k=0.0006),
    ModelRate(model="openai:gpt-4.1-mini", input_per_1k=0.0004, output_per_1k=0.0016),
    ModelRate(model="groq:llama-3.1-70b-versatile", input_per_1k=0.00059, output_per_1k=0.00079),
    ModelRate(model="groq:llama-3.1-8b-instant", input_per_1k=0.00005, output_per_1k=0.00008),
]

_ZERO_RATE = (0.0, 0.0)


def validate_ratecard(rates: Any) -> list[ModelRate]:
    """Keep the valid entries; fall back to the default card when none survive."""
    if not isinstance(rates, list):
        return list(DEFAULT_RATECARD)
    parsed: list[ModelRate] = []
    for r in rates:
        try:
            parsed.append(ModelRate.model_validate(r))
        except ValidationError:
            logger.debug("Dropping invalid rate card entry: %r", r)
    return parsed if parsed else list(DEFAULT_RATECARD)


class RateLookup:
    """Exact model-id → (input_per_1k, output_per_1k). Unknown ids cost nothing."""

    def __init__(self, rates: Iterable[ModelRate]):
        self._rates: dict[str, tuple[float, float]] = {}
        for r in rates:
            # first entry wins, matching a linear search over the card
            self._rates.setdefault(r.model, (r.input_per_1k, r.output_per_1k))

    def __contains__(self, model: str) -> bool:
        return model in self._rates

    def get(self, model: str) -> tuple[float, float]:
        return self._rates.get(model, _ZERO_RATE)

    def estimate(self, model: str, input_tokens: int, output_tokens: int) -> float:
        in_rate, out_rate = self.get(model)
        cost = (input_tokens / 1000) * in_rate + (output_tokens / 1000) * out_rate
        return round(cost, 6)


def estimate_cost_usd(
    model: str,
    input_tokens: int,
    output_tokens: int,
    rates: Iterable[ModelRate],
) -> float:
    """Cost for one job, rounded to 6 decimal places; 0 without an exact rate match."""
    return RateLookup(rates).estimate(model, input_tokens, output_tokens)
