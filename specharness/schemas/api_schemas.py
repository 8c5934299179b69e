"""Request / response envelopes for the run API.

The request model is intentionally loose: cases, models and the rate card are
validated by the run service so that each failure maps to its own client error
message instead of a generic 422.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RunSettingsIn(BaseModel):
    temperature: float | None = None
    max_tokens: int | None = None
    concurrency: int | None = None


class RunRequest(BaseModel):
    """Body for POST /api/run."""

    model_config = ConfigDict(populate_by_name=True)

    spec_yaml: str = Field(default="", alias="specYaml")
    cases: Any = None
    models: Any = None
    settings: RunSettingsIn | None = None
    ratecard: Any = None
    verifier_mode: str | None = Field(default=None, alias="verifierMode")
    auditor_model: str | None = Field(default=None, alias="auditorModel")


class RunListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    runs: list[dict[str, str]] = Field(default_factory=list)
    persistence_enabled: bool = Field(default=True, alias="persistenceEnabled")
