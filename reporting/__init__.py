"""
Reporting module for Condy.

Renders condo access reports as PDFs.

Usage:
    from core.access.report import generate_access_report
    from reporting import AccessReportPDF

    report = await generate_access_report(store, condo_id, start, end)
    pdf_bytes = AccessReportPDF().generate_to_buffer(report, condo_name)
"""

from .access_pdf import (
    AccessReportPDF,
    ReportNoRequests,
    ReportResult,
    ReportSuccess,
    generate_access_pdf,
)

__all__ = [
    "AccessReportPDF",
    "ReportNoRequests",
    "ReportResult",
    "ReportSuccess",
    "generate_access_pdf",
]
