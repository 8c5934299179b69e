"""Parse the policy YAML and the case list into validated models."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from specharness.errors import RunValidationError
from specharness.schemas.models import Case, Spec

logger = logging.getLogger(__name__)


def _safe_string(v: Any) -> str:
    if isinstance(v, str):
        return v
    if v is None:
        return ""
    return str(v)


def _error_details(exc: ValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into {loc, msg} pairs for API responses."""
    return [
        {"loc": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


# ── Spec ─────────────────────────────────────────────────────────────────

def parse_spec(data: Any) -> Spec:
    """Validate an already-decoded spec mapping."""
    try:
        spec = Spec.model_validate(data)
    except ValidationError as e:
        raise RunValidationError("Invalid spec YAML.", details=_error_details(e)) from e
    logger.debug("Parsed spec %s with %d rule(s)", spec.id, len(spec.rules))
    return spec


def parse_spec_yaml(text: str) -> Spec:
    """Decode and validate the spec YAML document."""
    try:
        data = yaml.safe_load(text or "")
    except yaml.YAMLError as e:
        raise RunValidationError("Invalid spec YAML.", details=[{"loc": "", "msg": str(e)}]) from e
    if not isinstance(data, dict):
        raise RunValidationError(
            "Invalid spec YAML.",
            details=[{"loc": "", "msg": "Spec must be a mapping with id and rules."}],
        )
    return parse_spec(data)


def load_spec_file(path: str | Path) -> Spec:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Spec YAML not found: {path}")
    return parse_spec_yaml(path.read_text(encoding="utf-8"))


# ── Cases ────────────────────────────────────────────────────────────────

def parse_cases(raw: Any) -> list[Case]:
    """Validate the case list. Every case needs a non-empty id and task."""
    if not isinstance(raw, list) or not raw:
        raise RunValidationError("Add at least one test case.")

    cases: list[Case] = []
    for item in raw:
        item = item if isinstance(item, dict) else {}
        case_id = _safe_string(item.get("id"))
        try:
            cases.append(
                Case(
                    id=case_id,
                    task=_safe_string(item.get("task")),
                    context=_safe_string(item.get("context")),
                )
            )
        except ValidationError as e:
            raise RunValidationError(
                "Invalid test case. Ensure each case has { id, task }. "
                f'Offending case id: "{case_id}"',
                details=_error_details(e),
            ) from e
    return cases


def load_cases_file(path: str | Path) -> list[Case]:
    """Load cases from YAML: either a flat list or a mapping with a ``cases`` key."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Cases YAML not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if isinstance(data, dict):
        data = data.get("cases", [])
    return parse_cases(data)


# ── Models ───────────────────────────────────────────────────────────────

def normalize_model_ids(models: Any) -> list[str]:
    """Trim, drop blanks and de-duplicate while keeping first-seen order."""
    if not isinstance(models, list):
        return []
    out: list[str] = []
    for m in models:
        s = _safe_string(m).strip()
        if s and s not in out:
            out.append(s)
    return out
