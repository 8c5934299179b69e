"""Report data shaping shared by the CSV, HTML and PDF renderers.

Everything here is presentational: row ordering, model rankings, the top
problem rows and timestamp labels. The HTML and PDF reports are both rendered
from one ``ReportSummary`` so they always agree.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from specharness.config import get_settings
from specharness.schemas.models import ComplianceRow, RunBundle

DEFAULT_REPORT_TIMEZONE = "Asia/Jakarta"
TOP_ISSUES_LIMIT = 5


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


# ── Formatting ───────────────────────────────────────────────────────────

def fmt_int(n: float | int | None) -> str:
    return f"{round_half_up(n or 0):,}"


def fmt_usd(n: float | int | None, digits: int = 6) -> str:
    return f"${(n or 0):.{digits}f}"


def fmt_ms(n: float | int | None) -> str:
    return f"{fmt_int(n)} ms"


# ── Ordering ─────────────────────────────────────────────────────────────

def sort_detailed_rows(rows: Iterable[ComplianceRow]) -> list[ComplianceRow]:
    """Detailed-results order used by every report format: case_id, then model."""
    return sorted(rows or [], key=lambda r: (str(r.case_id), str(r.model)))


# ── Summary ──────────────────────────────────────────────────────────────

@dataclass
class ScoredModel:
    model: str
    total: int
    passed: int
    pass_rate: float  # 0.0-1.0
    avg_latency: float
    cost: float

    @property
    def pass_pct(self) -> int:
        return round_half_up(self.pass_rate * 100)

    @property
    def badge(self) -> str:
        pct = self.pass_pct
        if pct >= 80:
            return "good"
        if pct >= 50:
            return "warn"
        return "bad" if pct > 0 else "neutral"


@dataclass
class ProblemRow:
    case_id: str
    model: str
    passed: bool
    critical: int
    high: int
    medium: int
    low: int
    latency_ms: int
    cost_usd: float

    @property
    def severity_label(self) -> str:
        if self.critical > 0:
            return "Critical"
        if self.high > 0:
            return "High"
        if self.medium > 0:
            return "Medium"
        if self.low > 0:
            return "Low"
        return "None"

    @property
    def counts_label(self) -> str:
        return f"C:{self.critical} H:{self.high} M:{self.medium} L:{self.low}"


@dataclass
class ReportSummary:
    overall_pass: int = 0
    overall_total: int = 0
    overall_pass_rate: int = 0  # percent, rounded
    cost_total: float = 0.0
    latency_avg_all: float = 0.0
    models: list[ScoredModel] = field(default_factory=list)
    best: ScoredModel | None = None
    worst: ScoredModel | None = None
    fastest: ScoredModel | None = None
    cheapest: ScoredModel | None = None
    top_issues: list[ProblemRow] = field(default_factory=list)
    rows: list[ComplianceRow] = field(default_factory=list)


def _first(items: list[ScoredModel], key) -> ScoredModel | None:
    return sorted(items, key=key)[0] if items else None


def rank_models(scored: list[ScoredModel]) -> dict[str, ScoredModel | None]:
    """Best/worst reliability, fastest and cheapest model with their tie-breaks."""
    return {
        "best": _first(scored, lambda m: (-m.pass_rate, m.avg_latency, m.model)),
        "worst": _first(scored, lambda m: (m.pass_rate, -m.avg_latency, m.model)),
        "fastest": _first(scored, lambda m: (m.avg_latency, -m.pass_rate, m.model)),
        "cheapest": _first(scored, lambda m: (m.cost, -m.pass_rate, m.model)),
    }


def top_problem_rows(rows: Iterable[ComplianceRow], limit: int = TOP_ISSUES_LIMIT) -> list[ProblemRow]:
    """Worst rows first: critical, high, medium, low counts, then latency, all descending."""
    items = [
        ProblemRow(
            case_id=str(r.case_id),
            model=str(r.model),
            passed=r.pass_ == 1,
            critical=r.critical,
            high=r.high,
            medium=r.medium,
            low=r.low,
            latency_ms=r.latency_ms,
            cost_usd=r.cost_usd,
        )
        for r in rows
    ]
    items.sort(key=lambda x: (-x.critical, -x.high, -x.medium, -x.low, -x.latency_ms))
    return items[:limit]


def build_report_summary(bundle: RunBundle) -> ReportSummary:
    by_model = bundle.totals.by_model
    scored = [
        ScoredModel(
            model=m.model,
            total=m.total,
            passed=m.pass_,
            pass_rate=(m.pass_ / m.total) if m.total > 0 else 0.0,
            avg_latency=m.avg_latency_ms,
            cost=m.cost_usd,
        )
        for m in by_model
    ]
    overall_pass = sum(m.pass_ for m in by_model)
    overall_total = sum(m.total for m in by_model)
    weighted = sum(m.total * m.avg_latency_ms for m in by_model)
    ranks = rank_models(scored)
    return ReportSummary(
        overall_pass=overall_pass,
        overall_total=overall_total,
        overall_pass_rate=round_half_up(overall_pass / overall_total * 100) if overall_total > 0 else 0,
        cost_total=sum(m.cost_usd for m in by_model),
        latency_avg_all=(weighted / overall_total) if overall_total > 0 else 0.0,
        models=scored,
        best=ranks["best"],
        worst=ranks["worst"],
        fastest=ranks["fastest"],
        cheapest=ranks["cheapest"],
        top_issues=top_problem_rows(bundle.rows),
        rows=sort_detailed_rows(bundle.rows),
    )


# ── Timestamps ───────────────────────────────────────────────────────────

def resolve_report_timezone(bundle: RunBundle | None = None) -> str:
    """Per-run override, else REPORT_TIMEZONE, else Asia/Jakarta."""
    if bundle is not None and (bundle.time_zone or "").strip():
        return bundle.time_zone.strip()  # type: ignore[union-attr]
    configured = (get_settings().report_timezone or "").strip()
    return configured or DEFAULT_REPORT_TIMEZONE


def format_created_at(created_at: str, tz_name: str) -> tuple[str, str, str]:
    """Return (YYYY-MM-DD, HH:MM:SS, zone) in the report time zone; raw text on failure."""
    raw = str(created_at or "")
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        zone = ZoneInfo(tz_name)
    except (ValueError, ZoneInfoNotFoundError):
        return raw, raw, tz_name
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    local = dt.astimezone(zone)
    return local.strftime("%Y-%m-%d"), local.strftime("%H:%M:%S"), tz_name
