"""LLM auditor: judge prompt construction and lenient verdict parsing."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from specharness.schemas.models import Case, Severity, Spec, Violation

logger = logging.getLogger(__name__)
PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

AUDITOR_TEMPERATURE = 0
AUDITOR_MAX_TOKENS = 700

_SEVERITIES = frozenset(s.value for s in Severity)


@dataclass
class AuditorVerdict:
    """Parsed auditor reply. ``pass_`` is None when the reply carried no boolean verdict."""

    pass_: bool | None = None
    violations: list[Violation] = field(default_factory=list)


def build_system_prompt(spec: Spec) -> str:
    """Judge instructions embedding the full spec as pretty-printed JSON."""
    env = Environment(loader=FileSystemLoader(str(PROMPTS_DIR)))
    template = env.get_template("auditor_system.j2")
    policy_json = json.dumps(spec.model_dump(mode="json", exclude_none=True), indent=2)
    return template.render(policy_json=policy_json)


def build_audit_user_message(case: Case, model_response: str) -> str:
    return json.dumps(
        {"case": case.model_dump(mode="json"), "model_response": model_response},
        ensure_ascii=False,
    )


def _normalize_violation(raw: Any) -> Violation | None:
    if not isinstance(raw, dict):
        return None
    sev = str(raw.get("severity") or Severity.MEDIUM.value)
    return Violation(
        rule_id=str(raw.get("rule_id") or "auditor"),
        severity=Severity(sev) if sev in _SEVERITIES else sev,
        evidence=str(raw.get("evidence") or ""),
        explanation=str(raw.get("explanation") or "Auditor-reported violation."),
    )


def parse_auditor_verdict(raw: str | None) -> AuditorVerdict | None:
    """Parse the auditor reply; return None when it is not JSON at all."""
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.debug("Auditor reply is not JSON; keeping local verdict")
        return None

    if not isinstance(data, dict):
        return AuditorVerdict()
    items = data.get("violations")
    violations = [
        v for v in (_normalize_violation(x) for x in items) if v is not None
    ] if isinstance(items, list) else []
    verdict = data.get("pass")
    return AuditorVerdict(
        pass_=verdict if isinstance(verdict, bool) else None,
        violations=violations,
    )
