"""Tests for the run orchestrator: fan-out, gating, error capture, aggregation."""

import json

import pytest

from specharness.errors import AllRunsFailedError, RunValidationError
from specharness.harness.orchestrator import clamp_concurrency, run_harness
from specharness.llm.base import ChatError
from specharness.schemas.models import Case, ModelRate, RunSettings, VerifierMode

from conftest import FakeChatProvider, is_audit_call

GPT = "openai:gpt-4o-mini"
LLAMA = "groq:llama-3.1-8b-instant"


def _local(**kwargs):
    return {"verifier_mode": VerifierMode.LOCAL_ONLY, **kwargs}


@pytest.mark.asyncio
async def test_missing_critical_field_fails_row(refund_spec):
    chat = FakeChatProvider(reply="Your order_id is 12.")
    result = await run_harness(refund_spec, [Case(id="c1", task="refund?")], [GPT], chat, **_local())

    row = result.bundle.rows[0]
    assert row.pass_ == 0
    assert row.critical == 1
    assert result.bundle.totals.by_model[0].pass_ == 0


@pytest.mark.asyncio
async def test_two_cases_two_models_local_only(refund_spec, cases, fake_chat):
    result = await run_harness(refund_spec, cases, [GPT, LLAMA], fake_chat, **_local())

    assert len(result.bundle.rows) == 4
    assert result.bundle.totals.total_rows == 4
    assert result.bundle.totals.total_cases == 2
    assert result.job_errors == []
    assert len(fake_chat.calls) == 4
    assert all(line.auditor_model is None for line in result.evidence)
    assert [(r.case_id, r.model) for r in result.bundle.rows] == [
        ("c1", LLAMA), ("c1", GPT), ("c2", LLAMA), ("c2", GPT),
    ]


@pytest.mark.asyncio
async def test_concurrency_one_never_overlaps(refund_spec):
    cases = [Case(id=f"c{i}", task=f"task {i}") for i in range(5)]
    delays = {f"task {i}": d for i, d in enumerate([0.03, 0.0, 0.02, 0.01, 0.0])}
    chat = FakeChatProvider(delay=lambda model, messages: delays[messages[-1]["content"]])

    result = await run_harness(
        refund_spec, cases, [GPT], chat, settings=RunSettings(concurrency=1), **_local()
    )

    assert chat.max_in_flight == 1
    assert len(result.bundle.rows) == 5
    assert result.concurrency == 1


@pytest.mark.asyncio
async def test_concurrency_bounds_in_flight_calls(refund_spec):
    cases = [Case(id=f"c{i}", task=f"task {i}") for i in range(8)]
    chat = FakeChatProvider(delay=0.01)

    await run_harness(refund_spec, cases, [GPT], chat, settings=RunSettings(concurrency=3), **_local())

    assert 1 < chat.max_in_flight <= 3


@pytest.mark.asyncio
async def test_generation_failure_recorded_per_job(refund_spec, cases):
    def reply(model, messages):
        if model == LLAMA:
            raise ChatError("Groq error (429): rate limited")
        return "order_id 1, purchase_date today"

    result = await run_harness(refund_spec, cases, [GPT, LLAMA], FakeChatProvider(reply=reply), **_local())

    assert {r.model for r in result.bundle.rows} == {GPT}
    assert len(result.job_errors) == 2
    err = result.job_errors[0]
    assert err.stage == "generate"
    assert err.status == 429
    assert err.model == LLAMA


@pytest.mark.asyncio
async def test_all_jobs_failing_raises(refund_spec, cases):
    def reply(model, messages):
        raise ChatError("Missing OPENAI_API_KEY")

    with pytest.raises(AllRunsFailedError) as exc:
        await run_harness(refund_spec, cases, [GPT], FakeChatProvider(reply=reply), **_local())
    assert len(exc.value.job_errors) == 2
    assert exc.value.model_ids == [GPT]
    assert str(exc.value) == "All model-runs failed."


@pytest.mark.asyncio
async def test_auditor_verdict_overrides_local(refund_spec, cases):
    verdict = json.dumps({
        "pass": False,
        "violations": [{"rule_id": "tone", "severity": "high", "evidence": "x", "explanation": "rude"}],
    })

    def reply(model, messages):
        return verdict if is_audit_call(messages) else "order_id and purchase_date please"

    chat = FakeChatProvider(reply=reply, prompt_tokens=100, completion_tokens=20)
    result = await run_harness(
        refund_spec, cases[:1], [LLAMA], chat,
        verifier_mode=VerifierMode.LLM_AUDITOR, auditor_model_id=GPT,
    )

    row = result.bundle.rows[0]
    assert row.pass_ == 0
    assert row.high == 1
    assert row.input_tokens == 200
    assert row.output_tokens == 40
    audit_call = [c for c in chat.calls if c["model"] == GPT][0]
    assert audit_call["temperature"] == 0
    assert audit_call["max_tokens"] == 700
    assert result.evidence[0].auditor_model == GPT


@pytest.mark.asyncio
async def test_auditor_non_json_keeps_local_verdict(refund_spec, cases):
    def reply(model, messages):
        return "Looks fine to me!" if is_audit_call(messages) else "order_id and purchase_date"

    result = await run_harness(refund_spec, cases[:1], [LLAMA], FakeChatProvider(reply=reply))

    assert result.bundle.rows[0].pass_ == 1
    assert result.job_errors == []
    assert result.auditor_model == GPT


@pytest.mark.asyncio
async def test_auditor_failure_keeps_row(refund_spec, cases):
    def reply(model, messages):
        if is_audit_call(messages):
            raise ChatError("OpenAI error (500): upstream")
        return "no fields here"

    result = await run_harness(refund_spec, cases[:1], [LLAMA], FakeChatProvider(reply=reply))

    assert len(result.bundle.rows) == 1
    assert result.bundle.rows[0].pass_ == 0
    assert result.job_errors[0].stage == "audit"
    assert result.job_errors[0].status == 500


@pytest.mark.asyncio
async def test_generation_prompt_uses_context_or_default(refund_spec, cases, fake_chat):
    await run_harness(refund_spec, cases, [GPT], fake_chat, settings=RunSettings(temperature=0.7, max_tokens=64), **_local())

    systems = {c["messages"][1]["content"]: c["messages"][0]["content"] for c in fake_chat.calls}
    assert systems["Can I get a refund?"] == "You are a helpful assistant."
    assert systems["My order arrived broken."] == "You are a support agent."
    assert all(c["temperature"] == 0.7 and c["max_tokens"] == 64 for c in fake_chat.calls)


@pytest.mark.asyncio
async def test_cost_from_rate_card(refund_spec, cases):
    chat = FakeChatProvider(prompt_tokens=1000, completion_tokens=1000)
    rates = [ModelRate(model=GPT, input_per_1k=0.001, output_per_1k=0.002)]

    result = await run_harness(refund_spec, cases, [GPT, LLAMA], chat, ratecard=rates, **_local())

    costs = {(r.case_id, r.model): r.cost_usd for r in result.bundle.rows}
    assert costs[("c1", GPT)] == pytest.approx(0.003)
    assert costs[("c1", LLAMA)] == 0.0
    gpt_totals = [m for m in result.bundle.totals.by_model if m.model == GPT][0]
    assert gpt_totals.cost_usd == pytest.approx(0.006)


@pytest.mark.asyncio
async def test_totals_follow_first_seen_model_order(refund_spec, cases, fake_chat):
    result = await run_harness(refund_spec, cases, [LLAMA, GPT], fake_chat, **_local())
    models = [m.model for m in result.bundle.totals.by_model]
    assert sorted(models) == sorted([LLAMA, GPT])
    assert all(m.total == 2 and m.pass_ == 2 for m in result.bundle.totals.by_model)


class TestValidation:

    @pytest.mark.asyncio
    async def test_no_cases(self, refund_spec, fake_chat):
        with pytest.raises(RunValidationError, match="Add at least one test case."):
            await run_harness(refund_spec, [], [GPT], fake_chat, **_local())

    @pytest.mark.asyncio
    async def test_no_models(self, refund_spec, cases, fake_chat):
        with pytest.raises(RunValidationError, match="No models selected."):
            await run_harness(refund_spec, cases, [" ", ""], fake_chat, **_local())

    @pytest.mark.asyncio
    async def test_unknown_model(self, refund_spec, cases, fake_chat):
        with pytest.raises(RunValidationError) as exc:
            await run_harness(refund_spec, cases, [GPT, "openai:gpt-9"], fake_chat, **_local())
        assert exc.value.debug["selected"] == [GPT, "openai:gpt-9"]
        assert GPT in exc.value.debug["allowed"]
        assert fake_chat.calls == []

    @pytest.mark.asyncio
    async def test_unknown_auditor(self, refund_spec, cases, fake_chat):
        with pytest.raises(RunValidationError) as exc:
            await run_harness(
                refund_spec, cases, [GPT], fake_chat,
                verifier_mode=VerifierMode.LLM_AUDITOR, auditor_model_id="openai:judge",
            )
        assert exc.value.debug["auditorModelId"] == "openai:judge"

    @pytest.mark.asyncio
    async def test_unknown_auditor_ignored_in_local_mode(self, refund_spec, cases, fake_chat):
        result = await run_harness(refund_spec, cases, [GPT], fake_chat, **_local(auditor_model_id="openai:judge"))
        assert result.auditor_model is None


@pytest.mark.parametrize(
    "value,expected",
    [(None, 4), (0, 1), (-3, 1), (1, 1), (7, 7), (20, 20), (50, 20), ("abc", 4), ("6", 6)],
)
def test_clamp_concurrency(value, expected):
    assert clamp_concurrency(value) == expected


@pytest.mark.asyncio
async def test_auditor_unrecognised_severities_count_in_no_bucket(refund_spec, cases):
    verdict = json.dumps({"pass": True, "violations": [{"severity": "severe"}, {"severity": "CRITICAL"}]})

    def reply(model, messages):
        return verdict if is_audit_call(messages) else "order_id and purchase_date please"

    result = await run_harness(refund_spec, cases[:1], [LLAMA], FakeChatProvider(reply=reply))

    row = result.bundle.rows[0]
    assert row.pass_ == 1
    assert (row.critical, row.high, row.medium, row.low) == (0, 0, 0, 0)
    line = result.evidence[0].model_dump(mode="json", by_alias=True)
    assert [v["severity"] for v in line["violations"]] == ["severe", "CRITICAL"]


@pytest.mark.asyncio
async def test_auditor_fenced_reply_keeps_local_verdict(refund_spec, cases):
    def reply(model, messages):
        if is_audit_call(messages):
            return '```json\n{"pass": false, "violations": []}\n```'
        return "order_id and purchase_date please"

    result = await run_harness(refund_spec, cases[:1], [LLAMA], FakeChatProvider(reply=reply))

    assert result.bundle.rows[0].pass_ == 1
