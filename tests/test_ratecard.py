"""Tests for rate card validation and cost estimation."""

import pytest

from specharness.ratecard import DEFAULT_RATECARD, RateLookup, estimate_cost_usd, validate_ratecard
from specharness.schemas.models import ModelRate


def test_non_list_falls_back_to_default():
    assert validate_ratecard(None) == DEFAULT_RATECARD
    assert validate_ratecard({"model": "x"}) == DEFAULT_RATECARD


def test_invalid_entries_dropped():
    rates = validate_ratecard([
        {"model": "openai:gpt-4o-mini", "input_per_1k": 0.001, "output_per_1k": 0.002},
        {"model": "", "input_per_1k": 1, "output_per_1k": 1},
        {"model": "neg", "input_per_1k": -1, "output_per_1k": 1},
        "garbage",
    ])
    assert [r.model for r in rates] == ["openai:gpt-4o-mini"]
    assert rates[0].currency == "USD"


def test_all_invalid_falls_back_to_default():
    assert validate_ratecard([{"model": "x"}]) == DEFAULT_RATECARD


def test_lookup_first_entry_wins():
    lookup = RateLookup([
        ModelRate(model="m", input_per_1k=1.0, output_per_1k=1.0),
        ModelRate(model="m", input_per_1k=9.0, output_per_1k=9.0),
    ])
    assert lookup.get("m") == (1.0, 1.0)


def test_unknown_model_costs_zero():
    lookup = RateLookup(DEFAULT_RATECARD)
    assert "openai:unknown" not in lookup
    assert lookup.estimate("openai:unknown", 10_000, 10_000) == 0.0


def test_lookup_is_exact_match():
    lookup = RateLookup([ModelRate(model="openai:gpt-4o-mini", input_per_1k=1.0, output_per_1k=1.0)])
    assert lookup.estimate("gpt-4o-mini", 1000, 1000) == 0.0


def test_estimate_rounds_to_six_places():
    rates = [ModelRate(model="m", input_per_1k=0.001, output_per_1k=0.0)]
    assert estimate_cost_usd("m", 1234, 0, rates) == pytest.approx(0.001234, abs=1e-12)
    cost = estimate_cost_usd("m", 1, 0, [ModelRate(model="m", input_per_1k=0.0003, output_per_1k=0)])
    assert cost == 0.0


def test_estimate_combines_input_and_output():
    rates = [ModelRate(model="m", input_per_1k=0.00015, output_per_1k=0.0006)]
    assert estimate_cost_usd("m", 1000, 1000, rates) == pytest.approx(0.00075)
