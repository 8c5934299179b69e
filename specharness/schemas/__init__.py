"""Pydantic models: single source of truth for all data shapes."""

from specharness.schemas.models import (
    ARTIFACT_FILES,
    SEVERITY_ORDER,
    ArtifactStatus,
    Case,
    ComplianceRow,
    EvidenceLine,
    JobError,
    ModelRate,
    ModelTotals,
    Rule,
    RunBundle,
    RunMeta,
    RunSettings,
    RunSummary,
    RunTotals,
    Severity,
    Spec,
    VerifierMode,
    Violation,
    empty_artifacts,
)

__all__ = [
    "ARTIFACT_FILES",
    "SEVERITY_ORDER",
    "ArtifactStatus",
    "Case",
    "ComplianceRow",
    "EvidenceLine",
    "JobError",
    "ModelRate",
    "ModelTotals",
    "Rule",
    "RunBundle",
    "RunMeta",
    "RunSettings",
    "RunSummary",
    "RunTotals",
    "Severity",
    "Spec",
    "VerifierMode",
    "Violation",
    "empty_artifacts",
]
