"""Deterministic rule checks: required fields, forbidden phrases, must-admit-unknown, max words."""

from __future__ import annotations

from typing import Any

from specharness.schemas.models import Case, Rule, Severity, Spec, Violation


def _safe_string(v: Any) -> str:
    if isinstance(v, str):
        return v
    return "" if v is None else str(v)


def includes_insensitive(haystack: Any, needle: Any) -> bool:
    """Case-insensitive substring test. An empty needle never matches."""
    n = _safe_string(needle).lower()
    if not n:
        return False
    return n in _safe_string(haystack).lower()


def count_words(text: Any) -> int:
    """Whitespace-delimited, non-empty tokens of the trimmed text."""
    return len(_safe_string(text).split())


def _severity(rule: Rule) -> Severity:
    return Severity(rule.severity or Severity.MEDIUM)


# ── Per-type checks ──────────────────────────────────────────────────────

def check_required_fields(rule: Rule, response: str) -> Violation | None:
    """Flag the first missing field only; one violation per rule."""
    for field in rule.fields or []:
        if not includes_insensitive(response, field):
            return Violation(
                rule_id=rule.id,
                severity=_severity(rule),
                evidence=_safe_string(field),
                explanation=f"Missing required field: {_safe_string(field)}",
            )
    return None


def check_forbidden_phrases(rule: Rule, response: str) -> Violation | None:
    """Flag the first configured phrase found in the response."""
    hit = next((p for p in rule.phrases or [] if includes_insensitive(response, p)), None)
    if hit is None:
        return None
    return Violation(
        rule_id=rule.id,
        severity=_severity(rule),
        evidence=_safe_string(hit),
        explanation=f'Contains forbidden phrase: "{_safe_string(hit)}"',
    )


def check_must_admit_unknown(rule: Rule, case: Case, response: str) -> Violation | None:
    trigger = rule.trigger
    ctx = f"{_safe_string(case.task)} {_safe_string(case.context)}"
    if not trigger or not includes_insensitive(ctx, trigger):
        return None
    required = rule.required_phrase_any or []
    if not required or any(includes_insensitive(response, p) for p in required):
        return None
    return Violation(
        rule_id=rule.id,
        severity=_severity(rule),
        evidence=_safe_string(trigger),
        explanation=(
            f'Did not admit uncertainty for trigger "{_safe_string(trigger)}". '
            f"Expected one of: {', '.join(_safe_string(p) for p in required)}"
        ),
    )


def check_max_words(rule: Rule, response: str) -> Violation | None:
    if not isinstance(rule.max_words, int):
        return None
    wc = count_words(response)
    if wc <= rule.max_words:
        return None
    return Violation(
        rule_id=rule.id,
        severity=_severity(rule),
        evidence=str(wc),
        explanation=f"Response exceeds max word count ({wc} > {rule.max_words}).",
    )


# ── Evaluate ─────────────────────────────────────────────────────────────

def evaluate(spec: Spec, case: Case, response_text: str) -> list[Violation]:
    """Run every rule in the spec against one response.

    Rule types this engine does not know are skipped without a violation.
    """
    response = _safe_string(response_text)
    violations: list[Violation] = []
    for rule in spec.rules:
        if rule.type == "required_fields":
            v = check_required_fields(rule, response)
        elif rule.type == "forbidden_phrases":
            v = check_forbidden_phrases(rule, response)
        elif rule.type == "must_admit_unknown":
            v = check_must_admit_unknown(rule, case, response)
        elif rule.type == "max_words":
            v = check_max_words(rule, response)
        else:
            continue
        if v is not None:
            violations.append(v)
    return violations


def summarize_pass(violations: list[Violation]) -> bool:
    """A case passes unless at least one violation is critical."""
    return not any(v.severity == Severity.CRITICAL for v in violations)
