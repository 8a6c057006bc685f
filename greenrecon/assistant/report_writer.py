"""Report writer — turns a reconciliation result into a management report."""

from __future__ import annotations

import logging
from typing import Any

from greenrecon.backends.base import GenerativeBackend, extract_json
from greenrecon.config import settings
from greenrecon.models.discrepancy import ReconciliationResult
from greenrecon.models.report import (
    Decision,
    DiscrepancyDetail,
    ReconciliationReport,
    ReportStatistics,
)

logger = logging.getLogger(__name__)

SUBJECT_NOUNS = {
    "shipping": "shipments",
    "quality": "received materials",
    "customer_orders": "customer orders",
    "expenses": "expense submissions",
}

REPORT_TITLES = {
    "shipping": "Shipping Reconciliation Report",
    "quality": "Quality & Compliance Reconciliation Report",
    "customer_orders": "Customer Order Validation Report",
    "expenses": "Expense Policy Review Report",
}

DEFAULT_RECOMMENDATIONS = {
    "shipping": [
        "Implement barcode validation at loading dock to catch shortages before dispatch",
        "Add SKU verification step during order fulfillment to prevent variant mix-ups",
        "Review supplier accuracy rates and address chronic discrepancy sources",
    ],
    "quality": [
        "Require COAs before materials are released from quarantine",
        "Add minimum shelf-life checks to the receiving checklist",
        "Review supplier compliance history at the next vendor evaluation",
    ],
    "customer_orders": [
        "Send updated price lists to customers whenever pricing changes",
        "Check inventory availability before confirming large orders",
        "Flag discontinued SKUs on customer order templates",
    ],
    "expenses": [
        "Remind employees of category limits and receipt requirements",
        "Enable duplicate detection at submission time",
        "Require pre-approval for expenses expected to exceed policy limits",
    ],
}

REPORT_PROMPT = """\
Generate a comprehensive {noun_singular} reconciliation report for {company} greenhouse.

Processing Results:
- Total {noun} processed: {total}
- Clean matches: {clean}
- Discrepancies found: {flagged}
- Average confidence: {confidence}%

Discrepancy Breakdown:
{breakdown}
{decisions}
Write in professional business tone. Be specific with data. Include a 2-3 sentence \
executive summary for management and 2-3 actionable process recommendations based \
on the discrepancy patterns.

Return JSON format:
{{
  "title": "report title",
  "executiveSummary": "2-3 sentence summary",
  "discrepancyDetails": [
    {{"subject_id": "ID", "issue": "description", "severity": "level", "recommendation": "action"}}
  ],
  "recommendations": ["improvement 1", "improvement 2", "improvement 3"]
}}

Only return valid JSON, no markdown formatting.\
"""


class ReportWriter:
    """Writes reconciliation reports, falling back to a canned report."""

    def __init__(self, backend: GenerativeBackend | None = None) -> None:
        self.backend = backend

    async def write(
        self,
        result: ReconciliationResult,
        decisions: list[Decision] | None = None,
        use_case: str = "shipping",
    ) -> ReconciliationReport:
        fallback = self.fallback_report(result, use_case)
        if self.backend is None:
            return fallback

        prompt = self._build_prompt(result, decisions or [], use_case)
        try:
            raw_text = await self.backend.generate(prompt)
            parsed = extract_json(raw_text)
            return self._parse_report(parsed, fallback)
        except Exception as exc:
            logger.error("Report generation failed, using fallback report: %s", exc)
            return fallback

    def _build_prompt(
        self, result: ReconciliationResult, decisions: list[Decision], use_case: str
    ) -> str:
        noun = SUBJECT_NOUNS.get(use_case, "records")
        breakdown = "\n\n".join(
            f"{i}. {d.subject_id}: {d.type.value.replace('_', ' ')} ({d.severity.value} severity)\n"
            f"   - Expected: {d.expected}\n"
            f"   - Actual: {d.actual}\n"
            f"   - Details: {d.details}\n"
            f"   - Recommended Action: {d.recommended_action}"
            for i, d in enumerate(result.by_severity(), 1)
        ) or "None"
        decision_text = ""
        if decisions:
            lines = [
                f"- {d.item_id}: {d.decision}" + (f" ({d.comment})" if d.comment else "")
                for d in decisions
            ]
            decision_text = "\nDecisions Made:\n" + "\n".join(lines) + "\n"
        return REPORT_PROMPT.format(
            noun_singular=use_case.replace("_", " "),
            company=settings.company_name,
            noun=noun,
            total=result.total_processed,
            clean=len(result.clean),
            flagged=result.total_flagged,
            confidence=result.avg_confidence,
            breakdown=breakdown,
            decisions=decision_text,
        )

    def _parse_report(
        self, parsed: dict[str, Any], fallback: ReconciliationReport
    ) -> ReconciliationReport:
        """Take the model's prose; keep the computed numbers from the result."""
        details = [
            DiscrepancyDetail(
                subject_id=str(d.get("subject_id") or d.get("shipment_id", "")),
                issue=str(d.get("issue", "")),
                severity=str(d.get("severity", "")),
                recommendation=str(d.get("recommendation", "")),
            )
            for d in parsed.get("discrepancyDetails") or []
        ]
        return ReconciliationReport(
            title=parsed.get("title") or fallback.title,
            executive_summary=parsed.get("executiveSummary") or fallback.executive_summary,
            statistics=fallback.statistics,
            clean_ids=fallback.clean_ids,
            discrepancy_details=details or fallback.discrepancy_details,
            recommendations=list(parsed.get("recommendations") or fallback.recommendations),
            generated_by=getattr(self.backend, "name", "ai"),
        )

    @staticmethod
    def fallback_report(result: ReconciliationResult, use_case: str = "shipping") -> ReconciliationReport:
        noun = SUBJECT_NOUNS.get(use_case, "records")
        return ReconciliationReport(
            title=REPORT_TITLES.get(use_case, "Reconciliation Report"),
            executive_summary=(
                f"Reconciliation processed {result.total_processed} {noun} with "
                f"{result.total_flagged} discrepancies detected. Average data confidence: "
                f"{result.avg_confidence}%. {len(result.clean)} {noun} matched perfectly "
                "across all sources."
            ),
            statistics=ReportStatistics(
                total_processed=result.total_processed,
                clean_matches=len(result.clean),
                discrepancies_found=result.total_flagged,
                avg_confidence=result.avg_confidence,
            ),
            clean_ids=list(result.clean),
            discrepancy_details=[
                DiscrepancyDetail(
                    subject_id=d.subject_id,
                    issue=d.details,
                    severity=d.severity.value,
                    recommendation=d.recommended_action,
                )
                for d in result.by_severity()
            ],
            recommendations=list(
                DEFAULT_RECOMMENDATIONS.get(use_case, DEFAULT_RECOMMENDATIONS["shipping"])
            ),
        )
