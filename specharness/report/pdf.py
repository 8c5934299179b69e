"""PDF report: render the print template and convert it with xhtml2pdf."""

import logging
from io import BytesIO

from xhtml2pdf import pisa

from specharness.errors import ReportError
from specharness.report.html import render_bundle_template
from specharness.schemas.models import RunBundle

logger = logging.getLogger(__name__)


def render_pdf_report(html_content: str) -> bytes:
    """Convert an HTML document string to PDF bytes."""
    buffer = BytesIO()
    pisa_status = pisa.CreatePDF(html_content, dest=buffer, encoding="utf-8")

    if pisa_status.err:
        logger.error("xhtml2pdf returned %d error(s)", pisa_status.err)
        raise ReportError(f"PDF generation failed with {pisa_status.err} error(s)")

    pdf_bytes = buffer.getvalue()
    buffer.close()
    if not pdf_bytes:
        raise ReportError("PDF generation produced an empty document.")
    return pdf_bytes


def to_pdf(bundle: RunBundle) -> bytes:
    """PDF rendition of the run report; same summary and row order as the HTML report."""
    return render_pdf_report(render_bundle_template("report_pdf.html.j2", bundle))
