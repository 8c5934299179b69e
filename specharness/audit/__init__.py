"""Response evaluation: deterministic rule engine and LLM auditor."""

from specharness.audit.auditor import (
    AuditorVerdict,
    build_audit_user_message,
    build_system_prompt,
    parse_auditor_verdict,
)
from specharness.audit.rule_engine import count_words, evaluate, summarize_pass

__all__ = [
    "AuditorVerdict",
    "build_audit_user_message",
    "build_system_prompt",
    "count_words",
    "evaluate",
    "parse_auditor_verdict",
    "summarize_pass",
]
