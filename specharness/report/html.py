"""HTML report: render the run bundle through the Jinja2 report template."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from specharness.report.summary import (
    build_report_summary,
    fmt_int,
    fmt_ms,
    fmt_usd,
    format_created_at,
    resolve_report_timezone,
)
from specharness.schemas.models import RunBundle

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


def _env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=True,
        undefined=StrictUndefined,
    )
    env.filters["fmt_int"] = fmt_int
    env.filters["fmt_usd"] = fmt_usd
    env.filters["fmt_ms"] = fmt_ms
    return env


def render_bundle_template(template_name: str, bundle: RunBundle) -> str:
    """Render any report template with the shared summary context."""
    tz = resolve_report_timezone(bundle)
    date_label, time_label, tz_label = format_created_at(bundle.created_at, tz)
    template = _env().get_template(template_name)
    return template.render(
        run_id=bundle.run_id,
        spec_id=bundle.spec_id,
        date_label=date_label,
        time_label=time_label,
        tz_label=tz_label,
        total_cases=bundle.totals.total_cases,
        total_rows=bundle.totals.total_rows,
        summary=build_report_summary(bundle),
    )


def to_html(bundle: RunBundle) -> str:
    return render_bundle_template("report.html.j2", bundle)
