"""CSV export of reconciliation reports."""

from __future__ import annotations

import csv
from datetime import datetime
from io import StringIO

from greenrecon.models.report import ReconciliationReport


def _writer(buffer: StringIO):
    return csv.writer(buffer, lineterminator="\n")


def render_discrepancy_csv(
    report: ReconciliationReport, generated_at: datetime | None = None
) -> str:
    """Discrepancies only, with a commented summary header."""
    generated_at = generated_at or datetime.now()
    stats = report.statistics
    buffer = StringIO()
    buffer.write(f"# Reconciliation Report: {report.title}\n")
    buffer.write(f"# Generated: {generated_at.isoformat(timespec='seconds')}\n")
    buffer.write(f"# Total Processed: {stats.total_processed}\n")
    buffer.write(f"# Clean Matches: {stats.clean_matches}\n")
    buffer.write(f"# Discrepancies: {stats.discrepancies_found}\n")
    buffer.write("\n")

    writer = _writer(buffer)
    writer.writerow(["ID", "Issue", "Severity", "Recommendation"])
    for detail in report.discrepancy_details:
        writer.writerow([detail.subject_id, detail.issue, detail.severity, detail.recommendation])
    return buffer.getvalue()


def render_full_csv(
    report: ReconciliationReport, generated_at: datetime | None = None
) -> str:
    """Statistics, every processed id (matched and flagged) and recommendations."""
    generated_at = generated_at or datetime.now()
    stats = report.statistics
    buffer = StringIO()
    writer = _writer(buffer)

    buffer.write("# Full Reconciliation Data Export\n")
    buffer.write(f"# Report: {report.title}\n")
    buffer.write(f"# Generated: {generated_at.isoformat(timespec='seconds')}\n")
    buffer.write("\n")

    buffer.write("# Summary Statistics\n")
    writer.writerow(["Metric", "Value"])
    writer.writerow(["Total Processed", stats.total_processed])
    writer.writerow(["Clean Matches", stats.clean_matches])
    writer.writerow(["Discrepancies Found", stats.discrepancies_found])
    writer.writerow(["Average Confidence", f"{stats.avg_confidence}%"])
    buffer.write("\n")

    buffer.write("# Record Details\n")
    writer.writerow(["ID", "Status", "Issue", "Severity", "Recommendation"])
    for subject_id in report.clean_ids:
        writer.writerow([subject_id, "Matched", "", "", ""])
    for detail in report.discrepancy_details:
        writer.writerow(
            [detail.subject_id, "Discrepancy", detail.issue, detail.severity, detail.recommendation]
        )
    buffer.write("\n")

    buffer.write("# Recommendations\n")
    for i, recommendation in enumerate(report.recommendations, 1):
        writer.writerow([i, recommendation])
    return buffer.getvalue()
