"""Exception types shared across the harness."""

from __future__ import annotations

from typing import Any


class HarnessError(Exception):
    """Base class for harness errors."""


class RunValidationError(HarnessError):
    """Bad run input (spec, cases, models). The run never starts."""

    def __init__(self, message: str, details: Any = None, debug: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.debug = debug


class AllRunsFailedError(HarnessError):
    """Every case × model job failed at generation; no rows were produced."""

    def __init__(self, job_errors: list, model_ids: list[str] | None = None):
        super().__init__("All model-runs failed.")
        self.job_errors = job_errors
        self.model_ids = model_ids or []


class ReportError(HarnessError):
    """A report renderer produced no usable output."""


class InvalidPathError(ValueError):
    """A run id or artifact filename would escape the runs root."""


class StoreDisabledError(HarnessError):
    """Persistent run storage is not available in this environment."""
