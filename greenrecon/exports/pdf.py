"""PDF export — renders a reconciliation report as a printable handout."""

from __future__ import annotations

import logging
from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from greenrecon.config import settings
from greenrecon.models.report import ReconciliationReport, SessionParticipation

logger = logging.getLogger(__name__)

PRIMARY_COLOR = HexColor("#1a4d4d")
MUTED_COLOR = HexColor("#6b7280")
STAT_BOX_BG = HexColor("#f0f5f5")
CRITICAL_COLOR = HexColor("#dc2626")
HIGH_COLOR = HexColor("#ea580c")
MEDIUM_COLOR = HexColor("#d97706")

PLACE_LABELS = ("1st Place", "2nd Place", "3rd Place")


def severity_color(severity: str) -> HexColor:
    severity = severity.lower()
    if severity == "critical":
        return CRITICAL_COLOR
    if severity == "high":
        return HIGH_COLOR
    return MEDIUM_COLOR


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "banner": ParagraphStyle(
            "Banner",
            parent=base["Heading1"],
            fontSize=20,
            textColor=PRIMARY_COLOR,
            spaceAfter=4,
            fontName="Helvetica-Bold",
        ),
        "title": ParagraphStyle(
            "ReportTitle",
            parent=base["Heading2"],
            fontSize=14,
            textColor=colors.black,
            spaceAfter=6,
            fontName="Helvetica-Bold",
        ),
        "heading": ParagraphStyle(
            "Section",
            parent=base["Heading2"],
            fontSize=13,
            textColor=PRIMARY_COLOR,
            spaceBefore=12,
            spaceAfter=8,
            fontName="Helvetica-Bold",
        ),
        "body": ParagraphStyle("Body", parent=base["BodyText"], fontSize=10, spaceAfter=6),
        "small": ParagraphStyle(
            "Small", parent=base["BodyText"], fontSize=9, textColor=MUTED_COLOR
        ),
        "stat_value": ParagraphStyle(
            "StatValue",
            parent=base["BodyText"],
            fontSize=18,
            leading=22,
            alignment=TA_CENTER,
            textColor=PRIMARY_COLOR,
            fontName="Helvetica-Bold",
        ),
        "stat_label": ParagraphStyle(
            "StatLabel", parent=base["BodyText"], fontSize=8, alignment=TA_CENTER
        ),
    }


def _statistics_table(report: ReconciliationReport, styles: dict) -> Table:
    stats = report.statistics
    cells = [
        ("Total Processed", str(stats.total_processed)),
        ("Clean Matches", str(stats.clean_matches)),
        ("Discrepancies", str(stats.discrepancies_found)),
        ("Avg Confidence", f"{stats.avg_confidence}%"),
    ]
    table = Table(
        [
            [Paragraph(value, styles["stat_value"]) for _, value in cells],
            [Paragraph(label, styles["stat_label"]) for label, _ in cells],
        ],
        colWidths=[1.7 * inch] * 4,
    )
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), STAT_BOX_BG),
        ("BOX", (0, 0), (0, -1), 0.5, PRIMARY_COLOR),
        ("BOX", (1, 0), (1, -1), 0.5, PRIMARY_COLOR),
        ("BOX", (2, 0), (2, -1), 0.5, PRIMARY_COLOR),
        ("BOX", (3, 0), (3, -1), 0.5, PRIMARY_COLOR),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, 0), 8),
        ("BOTTOMPADDING", (0, -1), (-1, -1), 8),
    ]))
    return table


def _discrepancy_box(detail, styles: dict) -> Table:
    color = severity_color(detail.severity)
    rows = [
        [Paragraph(
            f"<b>{escape(detail.subject_id)}</b> "
            f'<font color="#{color.hexval()[2:]}">[{escape(detail.severity.upper())}]</font>',
            styles["body"],
        )],
        [Paragraph(escape(detail.issue), styles["body"])],
        [Paragraph(f"<i>Action: {escape(detail.recommendation)}</i>", styles["small"])],
    ]
    box = Table(rows, colWidths=[6.8 * inch])
    box.setStyle(TableStyle([
        ("LINEBEFORE", (0, 0), (0, -1), 3, color),
        ("BOX", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("LEFTPADDING", (0, 0), (-1, -1), 8),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    return box


def _participation_story(participation: SessionParticipation, styles: dict) -> list:
    story: list = [
        PageBreak(),
        Paragraph("Session Acknowledgments", styles["banner"]),
        Paragraph(
            f"Session {escape(participation.session_code)} - "
            f"{participation.total_participants} participants",
            styles["small"],
        ),
        Spacer(1, 0.2 * inch),
    ]

    if participation.challenge_winners:
        story.append(Paragraph("Challenge Winners", styles["heading"]))
        for place, winner in zip(PLACE_LABELS, participation.challenge_winners):
            story.append(Paragraph(
                f"<b>{place}:</b> {escape(str(winner.get('name', '')))}"
                f" - {winner.get('score', 0)} pts",
                styles["body"],
            ))

    if participation.scan_contributors:
        story.append(Paragraph("Scan Contributors", styles["heading"]))
        for contributor in participation.scan_contributors:
            story.append(Paragraph(
                f"{escape(str(contributor.get('name', '')))}: "
                f"{contributor.get('units', 0)} units scanned",
                styles["body"],
            ))

    story.append(Paragraph("Value Generated", styles["heading"]))
    story.append(Paragraph(
        f"Errors caught during this session prevented an estimated "
        f"${participation.errors_prevented_value:,.2f} in losses and saved "
        f"{participation.time_saved_minutes} minutes of manual reconciliation.",
        styles["body"],
    ))
    return story


def _draw_footer(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(MUTED_COLOR)
    canvas.drawString(doc.leftMargin, 0.5 * inch, f"{settings.company_name} - greenrecon")
    canvas.drawRightString(
        doc.pagesize[0] - doc.rightMargin, 0.5 * inch, f"Page {doc.page}"
    )
    canvas.restoreState()


def render_pdf(
    report: ReconciliationReport,
    participation: SessionParticipation | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    """Render the report (and optional session credits page) to PDF bytes."""
    generated_at = generated_at or datetime.now()
    styles = _styles()
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.85 * inch,
        title=report.title,
    )

    story: list = [
        Paragraph("Data Reconciliation Report", styles["banner"]),
        Paragraph(generated_at.strftime("%B %d, %Y"), styles["small"]),
        Spacer(1, 0.15 * inch),
        Paragraph(escape(report.title), styles["title"]),
        Paragraph("Executive Summary", styles["heading"]),
        Paragraph(escape(report.executive_summary), styles["body"]),
        Paragraph("Processing Statistics", styles["heading"]),
        _statistics_table(report, styles),
    ]

    if report.clean_ids:
        story.append(Paragraph(
            f"Successfully Matched ({len(report.clean_ids)})", styles["heading"]
        ))
        story.append(Paragraph(escape(", ".join(report.clean_ids)), styles["body"]))

    if report.discrepancy_details:
        story.append(Paragraph("Discrepancies Identified", styles["heading"]))
        for detail in report.discrepancy_details:
            story.append(KeepTogether([_discrepancy_box(detail, styles), Spacer(1, 6)]))

    if report.recommendations:
        story.append(Paragraph("Process Improvement Recommendations", styles["heading"]))
        for i, recommendation in enumerate(report.recommendations, 1):
            story.append(Paragraph(f"{i}. {escape(recommendation)}", styles["body"]))

    if participation is not None:
        story.extend(_participation_story(participation, styles))

    doc.build(story, onFirstPage=_draw_footer, onLaterPages=_draw_footer)
    pdf = buffer.getvalue()
    logger.info("Rendered PDF report %r (%d bytes)", report.title, len(pdf))
    return pdf
