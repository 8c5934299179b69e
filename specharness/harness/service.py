"""Run submission flow shared by the HTTP API and the CLI.

Seeds meta.json, validates the request, runs the orchestrator, renders and
stores the four artifacts, writes the final meta.json and builds the response
payload. Errors that the caller should see come back as a status code plus a
JSON body rather than as exceptions.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from specharness.config import Settings, get_settings
from specharness.errors import AllRunsFailedError, RunValidationError
from specharness.harness.orchestrator import (
    HarnessResult,
    clamp_concurrency,
    new_run_id,
    now_iso,
    run_harness,
)
from specharness.llm import get_provider
from specharness.llm.base import ChatProvider
from specharness.llm.registry import DEFAULT_AUDITOR_MODEL_ID
from specharness.llm.router import env_diagnostics
from specharness.ratecard import validate_ratecard
from specharness.report import to_csv, to_html, to_jsonl, to_pdf
from specharness.schemas.api_schemas import RunRequest
from specharness.schemas.models import (
    ARTIFACT_FILES,
    ArtifactStatus,
    JobError,
    RunMeta,
    RunSettings,
    VerifierMode,
    empty_artifacts,
)
from specharness.store import META_FILENAME, RunStore
from specharness.validate import parse_cases, parse_spec_yaml

logger = logging.getLogger(__name__)

ALL_FAILED_HINT = (
    "Common causes: missing/invalid provider API keys, unsupported model name, base URL mismatch, "
    "quota/credit limits, or network/timeout."
)
PERSISTENCE_DISABLED_NOTICE = (
    "Runs persistence is disabled in this environment (e.g. Vercel). Artifacts are returned inline."
)
MAX_ERROR_DETAILS = 50

# Write order matters: HTML is the primary artifact, PDF is best-effort.
ARTIFACT_ORDER = ("jsonl", "csv", "html", "pdf")


@dataclass
class RunOutcome:
    """HTTP-shaped result of a run submission."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def normalize_verifier_mode(value: Any) -> VerifierMode:
    """``local_only`` stays; the legacy ``tinker`` value and anything else mean auditor mode."""
    s = str(value).strip() if value is not None else ""
    if s == VerifierMode.LOCAL_ONLY.value:
        return VerifierMode.LOCAL_ONLY
    return VerifierMode.LLM_AUDITOR


def resolve_run_settings(request: RunRequest) -> RunSettings:
    defaults = RunSettings()
    s = request.settings
    if s is None:
        return defaults
    return RunSettings(
        temperature=s.temperature if s.temperature is not None else defaults.temperature,
        max_tokens=s.max_tokens if s.max_tokens is not None else defaults.max_tokens,
        concurrency=clamp_concurrency(s.concurrency),
    )


def _dump_errors(errors: list[JobError], limit: int) -> list[dict[str, Any]]:
    return [e.model_dump(mode="json", exclude_none=True) for e in errors[:limit]]


def _dump_artifacts(artifacts: dict[str, ArtifactStatus]) -> dict[str, Any]:
    return {
        kind: status.model_dump(mode="json", by_alias=True, exclude_none=True)
        for kind, status in artifacts.items()
    }


def _write_meta(store: RunStore, meta: RunMeta) -> None:
    """Best-effort meta.json write; failures are logged, never raised."""
    try:
        store.write(meta.run_id, META_FILENAME, meta.to_json())
    except Exception as e:
        logger.warning("Could not write meta.json for run %s: %s", meta.run_id, e)


class _ArtifactWriter:
    """Renders each artifact, then stores it or keeps it inline."""

    def __init__(self, store: RunStore, run_id: str, created_at: str):
        self.store = store
        self.run_id = run_id
        self.persist = store.enabled
        self.status = empty_artifacts(created_at)
        self.inline: dict[str, dict[str, Any]] = {}
        self.warnings: list[str] = []

    def emit(self, kind: str, render: Callable[[], str | bytes]) -> None:
        name = ARTIFACT_FILES[kind]
        try:
            content = render()
            data = content.encode("utf-8") if isinstance(content, str) else content
            if self.persist:
                self.store.write(self.run_id, name, data)
            elif isinstance(content, bytes):
                self.inline[kind] = {
                    "name": name,
                    "base64": base64.b64encode(content).decode("ascii"),
                    "bytes": len(content),
                }
            else:
                self.inline[kind] = {"name": name, "content": content, "bytes": len(data)}
        except Exception as e:
            message = str(e) or f"Failed to write {name}"
            logger.warning("Artifact %s failed for run %s: %s", name, self.run_id, message)
            self.status[kind] = ArtifactStatus(
                name=name, available=False, error=message, created_at=now_iso()
            )
            self.warnings.append(f"{kind}: {message}")
            return
        self.status[kind] = ArtifactStatus(
            name=name, available=True, bytes=len(data), created_at=now_iso()
        )


def _renderers(result: HarnessResult) -> dict[str, Callable[[], str | bytes]]:
    bundle = result.bundle
    return {
        "jsonl": lambda: to_jsonl(result.evidence),
        "csv": lambda: to_csv(bundle.rows),
        "html": lambda: to_html(bundle),
        "pdf": lambda: to_pdf(bundle),
    }


async def execute_run(
    request: RunRequest,
    store: RunStore,
    chat: ChatProvider | None = None,
    settings: Settings | None = None,
) -> RunOutcome:
    """Run a harness submission end to end and shape the response."""
    settings = settings or get_settings()
    run_id = new_run_id()
    created_at = now_iso()

    _write_meta(
        store, RunMeta(run_id=run_id, created_at=created_at, artifacts=empty_artifacts(created_at))
    )

    router = get_provider(settings) if chat is None else None
    try:
        return await _execute(request, store, chat or router, settings, run_id, created_at)
    except Exception as e:
        message = str(e) or "Run failed"
        logger.exception("Run %s failed", run_id)
        if store.enabled:
            _write_meta(
                store,
                RunMeta(
                    run_id=run_id,
                    created_at=created_at,
                    fatal=True,
                    error=message,
                    artifacts=empty_artifacts(created_at),
                ),
            )
        return RunOutcome(
            500,
            {
                "error": message,
                "runId": run_id,
                "details": [{"case_id": "-", "model": "-", "stage": "unknown", "message": message}],
            },
        )
    finally:
        if router is not None:
            await router.aclose()


async def _execute(
    request: RunRequest,
    store: RunStore,
    chat: ChatProvider,
    settings: Settings,
    run_id: str,
    created_at: str,
) -> RunOutcome:
    verifier_mode = normalize_verifier_mode(request.verifier_mode)
    run_settings = resolve_run_settings(request)
    auditor_model = None
    if verifier_mode == VerifierMode.LLM_AUDITOR:
        auditor_model = (request.auditor_model or "").strip() or DEFAULT_AUDITOR_MODEL_ID

    try:
        spec = parse_spec_yaml(request.spec_yaml)
        cases = parse_cases(request.cases)
        result = await run_harness(
            spec,
            cases,
            request.models,
            chat,
            settings=run_settings,
            ratecard=validate_ratecard(request.ratecard),
            verifier_mode=verifier_mode,
            auditor_model_id=auditor_model,
            run_id=run_id,
            created_at=created_at,
        )
    except RunValidationError as e:
        logger.info("Run %s rejected: %s", run_id, e.message)
        body: dict[str, Any] = {"error": e.message}
        if e.details is not None:
            body["details"] = e.details
        if e.debug is not None:
            body["debug"] = e.debug
        return RunOutcome(400, body)
    except AllRunsFailedError as e:
        env = env_diagnostics(settings)
        _write_meta(
            store,
            RunMeta(
                run_id=run_id,
                created_at=created_at,
                spec_id=spec.id,
                selected_model_ids=e.model_ids,
                concurrency=run_settings.concurrency,
                verifier_mode=verifier_mode,
                auditor_model=auditor_model,
                env=env,
                job_errors=e.job_errors,
                artifacts=empty_artifacts(created_at),
                warnings=["All model-runs failed. No artifacts were generated."],
            ),
        )
        logger.warning("Run %s: all %d job(s) failed", run_id, len(e.job_errors))
        return RunOutcome(
            500,
            {
                "error": str(e),
                "hint": ALL_FAILED_HINT,
                "env": env,
                "details": _dump_errors(e.job_errors, MAX_ERROR_DETAILS),
                "runId": run_id,
            },
        )

    bundle = result.bundle
    writer = _ArtifactWriter(store, run_id, created_at)
    renderers = _renderers(result)
    for kind in ARTIFACT_ORDER:
        writer.emit(kind, renderers[kind])
    warnings = writer.warnings

    final_meta = RunMeta(
        run_id=run_id,
        created_at=created_at,
        spec_id=bundle.spec_id,
        selected_model_ids=result.model_ids,
        concurrency=result.concurrency,
        verifier_mode=verifier_mode,
        auditor_model=result.auditor_model,
        env=env_diagnostics(settings),
        job_errors=result.job_errors,
        artifacts=writer.status,
        warnings=warnings,
    )
    if store.enabled:
        try:
            store.write(run_id, META_FILENAME, final_meta.to_json())
        except Exception as e:
            message = str(e) or "Failed to write meta.json"
            logger.warning("Could not write final meta.json for run %s: %s", run_id, message)
            warnings.append(f"meta: {message}")

    totals = bundle.totals.model_dump(mode="json", by_alias=True)
    artifacts = _dump_artifacts(writer.status)

    if not writer.status["html"].available:
        return RunOutcome(
            500,
            {
                "error": "Run completed but failed to generate report.html (primary artifact).",
                "runId": run_id,
                "createdAt": created_at,
                "specId": bundle.spec_id,
                "totals": totals,
                "warnings": warnings,
                "debug": {"jobErrors": _dump_errors(result.job_errors, 10), "artifacts": artifacts},
            },
        )

    body = {
        "runId": run_id,
        "createdAt": created_at,
        "specId": bundle.spec_id,
        "totals": totals,
        "warnings": warnings,
        "debug": {
            "first_errors": _dump_errors(result.job_errors, 5),
            "artifacts": artifacts,
            "persistenceEnabled": store.enabled,
        },
    }
    if not store.enabled:
        body["artifacts_inline"] = writer.inline
        body["notice"] = PERSISTENCE_DISABLED_NOTICE
    logger.info("Run %s completed with %d warning(s)", run_id, len(warnings))
    return RunOutcome(200, body)
