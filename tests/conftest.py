"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Callable

import pytest

from specharness.config import Settings
from specharness.llm.base import ChatResult
from specharness.schemas.models import Case, Rule, Severity, Spec

SPEC_YAML = """\
id: refund-policy
domain: support
description: Refund answers for the help desk
rules:
  - id: must-include-order-fields
    type: required_fields
    severity: critical
    fields: [order_id, purchase_date]
  - id: no-guarantees
    type: forbidden_phrases
    severity: high
    phrases: ["guaranteed refund", "100% refund"]
  - id: admit-unknown-policy
    type: must_admit_unknown
    severity: medium
    trigger: unreleased
    required_phrase_any: ["I don't know", "not sure"]
  - id: concise
    type: max_words
    severity: low
    max_words: 120
"""

COMPLIANT_REPLY = "Please share your order_id and purchase_date so we can check eligibility."


class FakeChatProvider:
    """Scripted chat backend that records calls and in-flight overlap."""

    def __init__(
        self,
        reply: Callable[[str, list], str] | str = COMPLIANT_REPLY,
        delay: Callable[[str, list], float] | float = 0.0,
        prompt_tokens: int = 10,
        completion_tokens: int = 5,
    ):
        self._reply = reply
        self._delay = delay
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.calls: list[dict] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def chat(self, model, messages, temperature=None, max_tokens=None):
        self.calls.append(
            {"model": model, "messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self._delay(model, messages) if callable(self._delay) else self._delay
            await asyncio.sleep(delay)
            content = self._reply(model, messages) if callable(self._reply) else self._reply
        finally:
            self.in_flight -= 1
        return ChatResult(
            content=content,
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.completion_tokens,
        )


def is_audit_call(messages: list) -> bool:
    return "compliance auditor" in messages[0]["content"]


@pytest.fixture
def spec_yaml():
    return SPEC_YAML


@pytest.fixture
def refund_spec():
    return Spec(
        id="refund-policy",
        domain="support",
        rules=[
            Rule(
                id="must-include-order-fields",
                type="required_fields",
                severity=Severity.CRITICAL,
                fields=["order_id", "purchase_date"],
            ),
            Rule(
                id="no-guarantees",
                type="forbidden_phrases",
                severity=Severity.HIGH,
                phrases=["guaranteed refund", "100% refund"],
            ),
        ],
    )


@pytest.fixture
def cases():
    return [
        Case(id="c1", task="Can I get a refund?"),
        Case(id="c2", task="My order arrived broken.", context="You are a support agent."),
    ]


@pytest.fixture
def fake_chat():
    return FakeChatProvider()


@pytest.fixture
def no_key_settings(tmp_path):
    """Settings with no provider keys and runs under a temp dir."""
    return Settings(
        openai_api_key=None,
        groq_api_key=None,
        anthropic_api_key=None,
        specharness_runs_dir=str(tmp_path / "runs"),
        disable_runs_persist=None,
        force_runs_persist=None,
        vercel=None,
    )
