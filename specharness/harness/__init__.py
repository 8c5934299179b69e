"""Run orchestration: the case x model fan-out and the run submission flow."""

from specharness.harness.orchestrator import HarnessResult, clamp_concurrency, run_harness
from specharness.harness.service import RunOutcome, execute_run, normalize_verifier_mode

__all__ = [
    "HarnessResult",
    "RunOutcome",
    "clamp_concurrency",
    "execute_run",
    "normalize_verifier_mode",
    "run_harness",
]
