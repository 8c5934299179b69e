"""Pydantic models: single source of truth for Spec, Case, Violation, ComplianceRow, RunBundle, RunMeta."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_ORDER: tuple[str, ...] = ("critical", "high", "medium", "low")

RuleType = Literal["required_fields", "forbidden_phrases", "must_admit_unknown", "max_words"]


class VerifierMode(str, Enum):
    LOCAL_ONLY = "local_only"
    LLM_AUDITOR = "llm_auditor"


# ── Spec & cases ─────────────────────────────────────────────────────────

class Rule(BaseModel):
    """One compliance check. Type-specific fields are optional on the model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    type: RuleType
    severity: Severity = Severity.MEDIUM
    # required_fields
    fields: list[str] | None = None
    # forbidden_phrases
    phrases: list[str] | None = None
    # must_admit_unknown
    trigger: str | None = None
    required_phrase_any: list[str] | None = None
    # max_words
    max_words: PositiveInt | None = None


class Spec(BaseModel):
    """A named set of rules applied to every case."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    domain: str = Field(default="general", min_length=1)
    description: str | None = None
    rules: list[Rule] = Field(min_length=1)


class Case(BaseModel):
    """One prompt scenario submitted to every selected model."""

    id: str = Field(min_length=1)
    task: str = Field(min_length=1)
    context: str = ""

    @field_validator("context", mode="before")
    @classmethod
    def _none_context(cls, v: Any) -> Any:
        return "" if v is None else v


class ModelRate(BaseModel):
    """Pricing for one model id, per 1k tokens."""

    model: str = Field(min_length=1)
    input_per_1k: float = Field(ge=0)
    output_per_1k: float = Field(ge=0)
    currency: str = "USD"


# ── Evaluation output ────────────────────────────────────────────────────

class Violation(BaseModel):
    rule_id: str
    # Auditor violations keep unrecognised severities verbatim; they count in no bucket.
    severity: Severity | str
    evidence: str = ""
    explanation: str = ""


class ComplianceRow(BaseModel):
    """Outcome of one (case, model) job."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    case_id: str
    model: str
    pass_: Literal[0, 1] = Field(alias="pass")
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    latency_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


class EvidenceLine(BaseModel):
    """One line of violations.jsonl."""

    case_id: str
    model: str
    auditor_model: str | None = None
    pass_: bool = Field(alias="pass")
    response: str = ""
    violations: list[Violation] = Field(default_factory=list)
    latency_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0

    model_config = ConfigDict(populate_by_name=True)


class ModelTotals(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    model: str
    total: int = 0
    pass_: int = Field(default=0, alias="pass")
    avg_latency_ms: float = 0.0
    cost_usd: float = 0.0


class RunTotals(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_cases: int = Field(default=0, alias="totalCases")
    total_rows: int = Field(default=0, alias="totalRows")
    by_model: list[ModelTotals] = Field(default_factory=list, alias="byModel")


class RunBundle(BaseModel):
    """Aggregated run handed to the reporters."""

    model_config = ConfigDict(populate_by_name=True)

    run_id: str = Field(alias="runId")
    spec_id: str = Field(alias="specId")
    created_at: str = Field(alias="createdAt")
    rows: list[ComplianceRow] = Field(default_factory=list)
    totals: RunTotals = Field(default_factory=RunTotals)
    time_zone: str | None = Field(default=None, alias="timeZone")


# ── Run metadata ─────────────────────────────────────────────────────────

class JobError(BaseModel):
    case_id: str
    model: str
    stage: Literal["generate", "audit", "unknown"]
    status: int | None = None
    message: str


class ArtifactStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    available: bool = False
    bytes: int | None = None
    error: str | None = None
    created_at: str = Field(alias="createdAt")


ARTIFACT_FILES: dict[str, str] = {
    "html": "report.html",
    "csv": "compliance_table.csv",
    "jsonl": "violations.jsonl",
    "pdf": "report.pdf",
}


def empty_artifacts(created_at: str) -> dict[str, ArtifactStatus]:
    """All four artifacts, marked unavailable."""
    return {
        kind: ArtifactStatus(name=name, available=False, created_at=created_at)
        for kind, name in ARTIFACT_FILES.items()
    }


class RunMeta(BaseModel):
    """Contents of meta.json: diagnostics and artifact availability."""

    model_config = ConfigDict(populate_by_name=True)

    run_id: str = Field(alias="runId")
    created_at: str = Field(alias="createdAt")
    spec_id: str | None = Field(default=None, alias="specId")
    selected_model_ids: list[str] | None = None
    concurrency: int | None = None
    verifier_mode: VerifierMode | None = Field(default=None, alias="verifierMode")
    auditor_model: str | None = Field(default=None, alias="auditorModel")
    env: dict[str, Any] | None = None
    job_errors: list[JobError] = Field(default_factory=list, alias="jobErrors")
    fatal: bool | None = None
    error: str | None = None
    artifacts: dict[str, ArtifactStatus] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class RunSettings(BaseModel):
    """Generation settings for one run."""

    temperature: float = 0.2
    max_tokens: int = 512
    concurrency: int = 4


class RunSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    run_id: str = Field(alias="runId")
    created_at: str = Field(default="", alias="createdAt")
