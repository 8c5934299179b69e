"""Report rendering: CSV table, JSONL evidence, HTML and PDF reports."""

from specharness.report.html import to_html
from specharness.report.pdf import to_pdf
from specharness.report.summary import build_report_summary, sort_detailed_rows
from specharness.report.tabular import to_csv, to_jsonl

__all__ = [
    "build_report_summary",
    "sort_detailed_rows",
    "to_csv",
    "to_html",
    "to_jsonl",
    "to_pdf",
]
