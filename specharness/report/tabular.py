"""CSV compliance table and JSONL evidence export."""

from __future__ import annotations

import csv
import io
import json
import re
from typing import Iterable

from specharness.report.summary import round_half_up, sort_detailed_rows
from specharness.schemas.models import ComplianceRow, EvidenceLine

CSV_COLUMNS = [
    "case_id",
    "model",
    "status",
    "critical",
    "high",
    "medium",
    "low",
    "latency_ms",
    "input_tokens",
    "output_tokens",
    "cost_usd",
]

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _safe_text(v: object) -> str:
    return _CONTROL_CHARS_RE.sub(" ", "" if v is None else str(v))


def to_csv(rows: Iterable[ComplianceRow]) -> str:
    """One row per (case, model), in the same order as the HTML detailed table."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for r in sort_detailed_rows(rows):
        writer.writerow({
            "case_id": _safe_text(r.case_id),
            "model": _safe_text(r.model),
            "status": "PASS" if r.pass_ == 1 else "FAIL",
            "critical": round_half_up(r.critical),
            "high": round_half_up(r.high),
            "medium": round_half_up(r.medium),
            "low": round_half_up(r.low),
            "latency_ms": round_half_up(r.latency_ms),
            "input_tokens": round_half_up(r.input_tokens),
            "output_tokens": round_half_up(r.output_tokens),
            "cost_usd": f"${r.cost_usd:.6f}",
        })
    return buf.getvalue()


def to_jsonl(lines: Iterable[EvidenceLine]) -> str:
    """violations.jsonl: one JSON object per evaluated job, newline-terminated."""
    body = "\n".join(
        json.dumps(line.model_dump(mode="json", by_alias=True), ensure_ascii=False)
        for line in lines
    )
    return body + "\n"
