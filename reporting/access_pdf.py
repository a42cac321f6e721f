"""
Condo Access Report PDF

Renders an AccessReport as a short A4 document for the gatehouse and the
condo administration. Uses ReportLab for deterministic PDF generation.

Output Structure:
1. Header (condo, period, generation time)
2. Summary (totals and rates)
3. Requests by status
4. Requests by time of day
5. Requests by day
6. Top drivers and top units
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from core.access.report import AccessReport
from core.models import utc_now
from utils.formatting import format_percent


# =============================================================================
# Report Generation Result Types
# =============================================================================

@dataclass
class ReportSuccess:
    """Returned when PDF generation succeeds."""
    path: Path
    total_requests: int


@dataclass
class ReportNoRequests:
    """Returned when the period has no requests to report."""
    message: str = "No access requests in the selected period."


ReportResult = Union[ReportSuccess, ReportNoRequests]


STATUS_LABELS = {
    "pending": "Pending",
    "authorized": "Authorized",
    "denied": "Denied",
    "arrived": "Arrived",
    "entered": "Entered",
    "completed": "Completed",
}

TIME_OF_DAY_LABELS = {
    "morning": "Morning (06-12h)",
    "afternoon": "Afternoon (12-18h)",
    "evening": "Evening (18-22h)",
    "night": "Night (22-06h)",
}


# =============================================================================
# Color Palette
# =============================================================================

class Palette:
    """Print-friendly palette: charcoal text, one accent."""
    BLACK = colors.Color(0.1, 0.1, 0.1)
    CHARCOAL = colors.Color(0.2, 0.2, 0.22)
    GRAY = colors.Color(0.5, 0.5, 0.5)
    LIGHT_GRAY = colors.Color(0.85, 0.85, 0.85)
    PALE_GRAY = colors.Color(0.95, 0.95, 0.95)
    WHITE = colors.white

    ACCENT = colors.Color(0.15, 0.25, 0.4)
    SUCCESS = colors.Color(0.15, 0.4, 0.25)
    DANGER = colors.Color(0.55, 0.18, 0.18)


def get_report_styles():
    """Paragraph styles for the access report."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='ReportTitle',
        parent=styles['Normal'],
        fontSize=18,
        leading=22,
        textColor=Palette.BLACK,
        fontName='Helvetica-Bold',
        alignment=TA_LEFT,
        spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        name='ReportMeta',
        parent=styles['Normal'],
        fontSize=9,
        leading=12,
        textColor=Palette.GRAY,
        fontName='Helvetica',
    ))
    styles.add(ParagraphStyle(
        name='SectionTitle',
        parent=styles['Normal'],
        fontSize=12,
        leading=16,
        textColor=Palette.ACCENT,
        fontName='Helvetica-Bold',
        spaceBefore=10,
        spaceAfter=6,
    ))
    styles.add(ParagraphStyle(
        name='EmptyNote',
        parent=styles['Normal'],
        fontSize=9,
        leading=12,
        textColor=Palette.GRAY,
        fontName='Helvetica-Oblique',
    ))
    return styles


# =============================================================================
# Generator
# =============================================================================

class AccessReportPDF:
    """
    Generates access report PDFs.

    Usage:
        pdf = AccessReportPDF()
        data = pdf.generate_to_buffer(report, condo_name="Residencial Jardim Real")
    """

    PAGE_WIDTH, PAGE_HEIGHT = A4
    MARGIN_LEFT = 18*mm
    MARGIN_RIGHT = 18*mm
    MARGIN_TOP = 18*mm
    MARGIN_BOTTOM = 22*mm

    OUTPUT_DIR = Path("reports")

    def __init__(self, output_dir: Optional[Path] = None):
        self.styles = get_report_styles()
        self.output_dir = Path(output_dir) if output_dir else self.OUTPUT_DIR

    def generate_report(
        self,
        report: AccessReport,
        condo_name: Optional[str] = None,
    ) -> ReportResult:
        """
        Write the report to ``output_dir``.

        Returns:
            ReportSuccess with path if a PDF was written
            ReportNoRequests if the period is empty
        """
        if not report.total_requests:
            return ReportNoRequests()

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"access-{report.condo_id}-{report.start:%Y%m%d}-{report.end:%Y%m%d}.pdf"
        output_path = self.output_dir / filename
        output_path.write_bytes(self.generate_to_buffer(report, condo_name))

        return ReportSuccess(path=output_path, total_requests=report.total_requests)

    def generate_to_buffer(self, report: AccessReport, condo_name: Optional[str] = None) -> bytes:
        """Generate PDF and return as bytes (for streaming)."""
        buffer = BytesIO()
        self._build_document(report, condo_name or report.condo_id, buffer)
        return buffer.getvalue()

    def _build_document(self, report: AccessReport, condo_name: str, buffer: BytesIO):
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=self.MARGIN_LEFT,
            rightMargin=self.MARGIN_RIGHT,
            topMargin=self.MARGIN_TOP,
            bottomMargin=self.MARGIN_BOTTOM,
            title=f"Access Report - {condo_name}",
            author="Condy",
            subject="Condominium access report",
        )

        story = []
        story.extend(self._build_header(report, condo_name))
        story.extend(self._build_summary(report))
        story.extend(self._build_counts(
            "Requests by Status",
            [(STATUS_LABELS.get(k, k), v) for k, v in report.by_status.items()],
            report.total_requests,
        ))
        story.extend(self._build_counts(
            "Requests by Time of Day",
            [(TIME_OF_DAY_LABELS.get(k, k), v) for k, v in report.by_time_of_day.items()],
            report.total_requests,
        ))
        story.extend(self._build_counts(
            "Requests by Day",
            list(report.by_day.items()),
            report.total_requests,
        ))
        story.extend(self._build_ranking("Top Drivers", "Driver", report.top_drivers))
        story.extend(self._build_ranking("Top Units", "Unit", report.top_units))

        doc.build(story, onFirstPage=self._draw_page_frame, onLaterPages=self._draw_page_frame)

    # =========================================================================
    # Page Drawing
    # =========================================================================

    def _draw_page_frame(self, canvas_obj: canvas.Canvas, doc):
        """Footer: wordmark left, page number right."""
        canvas_obj.saveState()
        canvas_obj.setFont('Helvetica', 7)
        canvas_obj.setFillColor(Palette.GRAY)
        canvas_obj.drawString(self.MARGIN_LEFT, self.MARGIN_BOTTOM - 10*mm, "CONDY")
        canvas_obj.drawRightString(
            self.PAGE_WIDTH - self.MARGIN_RIGHT,
            self.MARGIN_BOTTOM - 10*mm,
            f"Page {doc.page}",
        )
        canvas_obj.restoreState()

    # =========================================================================
    # Sections
    # =========================================================================

    def _build_header(self, report: AccessReport, condo_name: str) -> list:
        generated = utc_now()
        return [
            Paragraph("Access Report", self.styles['ReportTitle']),
            Paragraph(escape(condo_name), self.styles['SectionTitle']),
            Paragraph(
                f"Period: {report.start:%d/%m/%Y} - {report.end:%d/%m/%Y}",
                self.styles['ReportMeta'],
            ),
            Paragraph(
                f"Generated: {generated:%d/%m/%Y %H:%M} UTC",
                self.styles['ReportMeta'],
            ),
            Spacer(1, 6),
            HRFlowable(width="100%", thickness=0.5, color=Palette.LIGHT_GRAY),
        ]

    def _build_summary(self, report: AccessReport) -> list:
        rows = [
            ["Total requests", "Approval rate", "Denial rate"],
            [
                str(report.total_requests),
                format_percent(report.approval_rate),
                format_percent(report.denial_rate),
            ],
        ]
        table = Table(rows, colWidths=[58*mm, 58*mm, 58*mm])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, 0), 8),
            ('TEXTCOLOR', (0, 0), (-1, 0), Palette.GRAY),
            ('FONTNAME', (0, 1), (-1, 1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 1), (-1, 1), 16),
            ('TEXTCOLOR', (0, 1), (0, 1), Palette.CHARCOAL),
            ('TEXTCOLOR', (1, 1), (1, 1), Palette.SUCCESS),
            ('TEXTCOLOR', (2, 1), (2, 1), Palette.DANGER),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('BACKGROUND', (0, 0), (-1, -1), Palette.PALE_GRAY),
            ('TOPPADDING', (0, 0), (-1, -1), 3*mm),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3*mm),
        ]))
        return [Paragraph("Summary", self.styles['SectionTitle']), table]

    def _table_style(self) -> TableStyle:
        return TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 8.5),
            ('BACKGROUND', (0, 0), (-1, 0), Palette.CHARCOAL),
            ('TEXTCOLOR', (0, 0), (-1, 0), Palette.WHITE),
            ('TEXTCOLOR', (0, 1), (-1, -1), Palette.CHARCOAL),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, Palette.LIGHT_GRAY),
            ('TOPPADDING', (0, 0), (-1, -1), 2*mm),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 2*mm),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [Palette.WHITE, Palette.PALE_GRAY]),
        ])

    def _build_counts(self, title: str, items: list, total: int) -> list:
        elements = [Paragraph(title, self.styles['SectionTitle'])]
        if not items:
            elements.append(Paragraph("No data.", self.styles['EmptyNote']))
            return elements

        rows = [["", "Requests", "Share"]]
        for label, count in items:
            share = count / total * 100 if total else 0.0
            rows.append([label, str(count), format_percent(share)])

        table = Table(rows, colWidths=[94*mm, 40*mm, 40*mm])
        table.setStyle(self._table_style())
        elements.append(table)
        return elements

    def _build_ranking(self, title: str, label: str, items: list) -> list:
        elements = [Paragraph(title, self.styles['SectionTitle'])]
        if not items:
            elements.append(Paragraph("No data.", self.styles['EmptyNote']))
            return elements

        rows = [["#", label, "Requests"]]
        for position, (name, count) in enumerate(items, 1):
            rows.append([str(position), name, str(count)])

        table = Table(rows, colWidths=[14*mm, 120*mm, 40*mm])
        table.setStyle(self._table_style())
        elements.append(table)
        return elements


def generate_access_pdf(report: AccessReport, condo_name: Optional[str] = None) -> bytes:
    """Convenience wrapper returning PDF bytes."""
    return AccessReportPDF().generate_to_buffer(report, condo_name)
