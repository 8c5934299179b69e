"""Run orchestrator: fan every case out to every model, evaluate, aggregate.

Jobs are asyncio tasks admitted through a semaphore. Each job generates a
response, runs the local rule checks, optionally asks the auditor model for a
verdict, estimates cost and appends one row plus one evidence line. Failures
are recorded per job and never abort the run; the run only fails outright when
no job produced a row.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from specharness.audit.auditor import (
    AUDITOR_MAX_TOKENS,
    AUDITOR_TEMPERATURE,
    build_audit_user_message,
    build_system_prompt,
    parse_auditor_verdict,
)
from specharness.audit.rule_engine import evaluate, summarize_pass
from specharness.errors import AllRunsFailedError, RunValidationError
from specharness.llm.base import ChatProvider, extract_http_status
from specharness.llm.registry import DEFAULT_AUDITOR_MODEL_ID, assert_registry_model_id, registry_ids
from specharness.ratecard import DEFAULT_RATECARD, RateLookup
from specharness.report.summary import sort_detailed_rows
from specharness.schemas.models import (
    SEVERITY_ORDER,
    Case,
    ComplianceRow,
    EvidenceLine,
    JobError,
    ModelRate,
    ModelTotals,
    RunBundle,
    RunSettings,
    RunTotals,
    Severity,
    Spec,
    VerifierMode,
    Violation,
)
from specharness.validate.loader import normalize_model_ids

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4
MAX_CONCURRENCY = 20
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


@dataclass
class HarnessResult:
    """Everything a finished run produced."""

    bundle: RunBundle
    evidence: list[EvidenceLine] = field(default_factory=list)
    job_errors: list[JobError] = field(default_factory=list)
    model_ids: list[str] = field(default_factory=list)
    concurrency: int = DEFAULT_CONCURRENCY
    auditor_model: str | None = None


def new_run_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clamp_concurrency(value: Any) -> int:
    """Concurrency limit clamped to [1, 20]; missing or non-numeric means 4."""
    if value is None or isinstance(value, bool):
        return DEFAULT_CONCURRENCY
    try:
        n = int(value)
    except (TypeError, ValueError):
        return DEFAULT_CONCURRENCY
    return min(max(n, 1), MAX_CONCURRENCY)


def resolve_models(
    model_ids: Any,
    verifier_mode: VerifierMode,
    auditor_model_id: str | None = None,
) -> tuple[list[str], str | None]:
    """Validate selected and auditor model ids against the registry."""
    selected = normalize_model_ids(model_ids)
    if not selected:
        raise RunValidationError("No models selected.")
    for model_id in selected:
        try:
            assert_registry_model_id(model_id)
        except ValueError as e:
            raise RunValidationError(
                str(e), debug={"selected": selected, "allowed": registry_ids()}
            ) from e

    if verifier_mode != VerifierMode.LLM_AUDITOR:
        return selected, None
    auditor = (auditor_model_id or "").strip() or DEFAULT_AUDITOR_MODEL_ID
    try:
        assert_registry_model_id(auditor)
    except ValueError as e:
        raise RunValidationError(
            str(e), debug={"auditorModelId": auditor, "allowed": registry_ids()}
        ) from e
    return selected, auditor


def count_severities(violations: list[Violation]) -> dict[str, int]:
    counts = {sev: 0 for sev in SEVERITY_ORDER}
    for v in violations:
        sev = v.severity.value if isinstance(v.severity, Severity) else v.severity
        if sev in counts:
            counts[sev] += 1
    return counts


def aggregate_totals(rows: list[ComplianceRow], total_cases: int) -> RunTotals:
    """Per-model count, passes, mean latency and summed cost, in first-seen model order."""
    acc: dict[str, dict[str, float]] = {}
    for r in rows:
        cur = acc.setdefault(r.model, {"total": 0, "pass": 0, "latency": 0.0, "cost": 0.0})
        cur["total"] += 1
        cur["pass"] += r.pass_
        cur["latency"] += r.latency_ms
        cur["cost"] += r.cost_usd
    by_model = [
        ModelTotals(
            model=model,
            total=int(v["total"]),
            pass_=int(v["pass"]),
            avg_latency_ms=v["latency"] / max(1, v["total"]),
            cost_usd=v["cost"],
        )
        for model, v in acc.items()
    ]
    return RunTotals(total_cases=total_cases, total_rows=len(rows), by_model=by_model)


def _job_error(case: Case, model_id: str, stage: str, exc: BaseException, fallback: str) -> JobError:
    message = str(exc) or fallback
    status = getattr(exc, "status", None)
    return JobError(
        case_id=case.id,
        model=model_id,
        stage=stage,  # type: ignore[arg-type]
        status=status if isinstance(status, int) else extract_http_status(message),
        message=message,
    )


async def run_harness(
    spec: Spec,
    cases: list[Case],
    model_ids: list[str],
    chat: ChatProvider,
    settings: RunSettings | None = None,
    ratecard: list[ModelRate] | None = None,
    verifier_mode: VerifierMode = VerifierMode.LLM_AUDITOR,
    auditor_model_id: str | None = None,
    run_id: str | None = None,
    created_at: str | None = None,
) -> HarnessResult:
    """Execute every case × model job and build the run bundle.

    Raises RunValidationError for bad input and AllRunsFailedError when no job
    produced a row.
    """
    if not cases:
        raise RunValidationError("Add at least one test case.")
    models, auditor_model = resolve_models(model_ids, verifier_mode, auditor_model_id)

    settings = settings or RunSettings()
    concurrency = clamp_concurrency(settings.concurrency)
    rates = RateLookup(ratecard if ratecard is not None else DEFAULT_RATECARD)
    auditor_system_prompt = build_system_prompt(spec) if auditor_model else ""
    gate = asyncio.Semaphore(concurrency)

    rows: list[ComplianceRow] = []
    evidence: list[EvidenceLine] = []
    job_errors: list[JobError] = []

    async def run_job(case: Case, model_id: str) -> None:
        async with gate:
            t0 = time.monotonic()
            system = case.context.strip() or DEFAULT_SYSTEM_PROMPT

            try:
                gen = await chat.chat(
                    model_id,
                    [{"role": "system", "content": system}, {"role": "user", "content": case.task}],
                    temperature=settings.temperature,
                    max_tokens=settings.max_tokens,
                )
            except Exception as e:
                logger.warning("Generation failed for %s / %s: %s", case.id, model_id, e)
                job_errors.append(_job_error(case, model_id, "generate", e, "Generation failed."))
                return

            content = gen.content or ""
            local_violations = evaluate(spec, case, content)
            verdict_pass = summarize_pass(local_violations)
            audit_violations: list[Violation] = []
            audit_in = audit_out = 0

            if auditor_model:
                try:
                    audit = await chat.chat(
                        auditor_model,
                        [
                            {"role": "system", "content": auditor_system_prompt},
                            {"role": "user", "content": build_audit_user_message(case, content)},
                        ],
                        temperature=AUDITOR_TEMPERATURE,
                        max_tokens=AUDITOR_MAX_TOKENS,
                    )
                except Exception as e:
                    logger.warning("Audit failed for %s / %s: %s", case.id, model_id, e)
                    job_errors.append(_job_error(case, model_id, "audit", e, "Audit failed."))
                else:
                    audit_in, audit_out = audit.prompt_tokens, audit.completion_tokens
                    verdict = parse_auditor_verdict(audit.content)
                    if verdict is not None:
                        audit_violations = verdict.violations
                        if verdict.pass_ is not None:
                            verdict_pass = verdict.pass_

            latency_ms = int(round((time.monotonic() - t0) * 1000))
            input_tokens = gen.prompt_tokens + audit_in
            output_tokens = gen.completion_tokens + audit_out
            cost = rates.estimate(model_id, input_tokens, output_tokens)
            all_violations = local_violations + audit_violations
            counts = count_severities(all_violations)

            rows.append(
                ComplianceRow(
                    case_id=case.id,
                    model=model_id,
                    pass_=1 if verdict_pass else 0,
                    latency_ms=latency_ms,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    cost_usd=cost,
                    **counts,
                )
            )
            evidence.append(
                EvidenceLine(
                    case_id=case.id,
                    model=model_id,
                    auditor_model=auditor_model,
                    pass_=verdict_pass,
                    response=content,
                    violations=all_violations,
                    latency_ms=latency_ms,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    cost_usd=cost,
                )
            )

    jobs = [(c, m) for c in cases for m in models]
    logger.info(
        "Running %d job(s): %d case(s) x %d model(s), concurrency=%d, verifier=%s",
        len(jobs), len(cases), len(models), concurrency, verifier_mode.value,
    )
    results = await asyncio.gather(*(run_job(c, m) for c, m in jobs), return_exceptions=True)
    for (c, m), res in zip(jobs, results):
        if isinstance(res, BaseException):
            logger.error("Job %s / %s crashed: %r", c.id, m, res)
            job_errors.append(_job_error(c, m, "unknown", res, "Job failed."))

    if not rows:
        raise AllRunsFailedError(job_errors, model_ids=models)

    bundle = RunBundle(
        run_id=run_id or new_run_id(),
        spec_id=spec.id,
        created_at=created_at or now_iso(),
        rows=sort_detailed_rows(rows),
        totals=aggregate_totals(rows, total_cases=len(cases)),
    )
    logger.info(
        "Run %s finished: %d row(s), %d job error(s)", bundle.run_id, len(rows), len(job_errors)
    )
    return HarnessResult(
        bundle=bundle,
        evidence=evidence,
        job_errors=job_errors,
        model_ids=models,
        concurrency=concurrency,
        auditor_model=auditor_model,
    )
