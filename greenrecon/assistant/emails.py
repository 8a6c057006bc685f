"""Email drafting — demo inbound mail, discrepancy escalations, incident digests."""

from __future__ import annotations

import logging
import re

from greenrecon.backends.base import GenerativeBackend, extract_json
from greenrecon.config import settings
from greenrecon.models.discrepancy import Discrepancy
from greenrecon.models.document import EmailDraft
from greenrecon.models.incident import Incident

logger = logging.getLogger(__name__)

CRITICAL_INCIDENT_SEVERITY = 4
MODERATE_INCIDENT_SEVERITY = 3

DEMO_EMAIL_PROMPT = """\
Generate a realistic business email for a greenhouse operations context.

Context:
- Use case: {use_case}
- Vendor/Sender company: {vendor}
{shipment_line}
Generate a JSON response with:
{{
  "from": "Sender Name",
  "fromEmail": "email@company.com",
  "subject": "Email subject line",
  "body": "Full email body with greeting, content, and signature",
  "hasAttachment": true
}}

Make it sound authentic for a greenhouse/agriculture supply chain context.
Only return valid JSON, no markdown formatting.\
"""

ESCALATION_PROMPT = """\
Draft a professional escalation email for a reconciliation discrepancy.

Discrepancy Details:
- Record ID: {subject_id}
- Issue Type: {issue}
- Severity: {severity}
- Expected: {expected}
- Actual: {actual}
{difference_line}
Issue Description:
{details}

Recommended Action:
{action}

Write an urgent but professional email to the Operations Manager that states the \
issue in a concise subject line, opens with the immediate impact, lists specific \
details as bullets, explains potential business consequences and requests specific \
action with a timeline.

Context: {company} is a commercial greenhouse. This is a real discrepancy that needs \
immediate attention.

Return JSON format:
{{
  "subject": "concise subject line",
  "body": "email body with proper formatting"
}}

Only return valid JSON, no markdown formatting.\
"""

INCIDENT_SUMMARY_PROMPT = """\
Draft a professional incident summary email for {company} operations team.

INCIDENTS SUMMARY:
- Total incidents: {total}
- Critical (Severity 4-5): {critical}
- Moderate (Severity 3): {moderate}
- Minor (Severity 1-2): {minor}

INCIDENT DETAILS:
{details}

Write an email with an urgent but professional subject line (mention the critical \
count if > 0) that opens with an executive summary, lists incidents critical first, \
and ends with recommended actions and a timeline.

Return JSON format:
{{
  "subject": "subject line",
  "body": "email body with proper formatting"
}}

Only return valid JSON, no markdown formatting.\
"""


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


class EmailWriter:
    """Drafts emails with a model, or from templates when it is unavailable."""

    def __init__(self, backend: GenerativeBackend | None = None) -> None:
        self.backend = backend

    async def _draft(self, prompt: str, fallback: EmailDraft) -> EmailDraft:
        if self.backend is None:
            return fallback
        try:
            parsed = extract_json(await self.backend.generate(prompt))
            return EmailDraft(
                subject=str(parsed["subject"]),
                body=str(parsed["body"]),
                sender=str(parsed.get("from") or fallback.sender),
                sender_email=str(parsed.get("fromEmail") or fallback.sender_email),
                has_attachment=bool(parsed.get("hasAttachment", fallback.has_attachment)),
            )
        except Exception as exc:
            logger.error("Email generation failed, using template: %s", exc)
            return fallback

    async def demo_email(
        self, use_case: str, vendor: str, shipment_id: str | None = None
    ) -> EmailDraft:
        """An inbound vendor email to seed the Outlook source in the demo."""
        prompt = DEMO_EMAIL_PROMPT.format(
            use_case=use_case,
            vendor=vendor,
            shipment_line=f"- Related shipment ID: {shipment_id}\n" if shipment_id else "",
        )
        return await self._draft(prompt, demo_email_fallback(vendor, shipment_id))

    async def escalation_email(self, discrepancy: Discrepancy) -> EmailDraft:
        prompt = ESCALATION_PROMPT.format(
            subject_id=discrepancy.subject_id,
            issue=discrepancy.type.value.replace("_", " "),
            severity=discrepancy.severity.value,
            expected=discrepancy.expected,
            actual=discrepancy.actual,
            difference_line=(
                f"- Difference: {discrepancy.difference}\n"
                if discrepancy.difference is not None
                else ""
            ),
            details=discrepancy.details,
            action=discrepancy.recommended_action,
            company=settings.company_name,
        )
        return await self._draft(prompt, escalation_email_fallback(discrepancy))

    async def incident_summary_email(self, incidents: list[Incident]) -> EmailDraft:
        critical, moderate, minor = split_by_severity(incidents)
        details = "\n".join(
            f"{i}. [Severity {inc.severity}] {inc.incident_type} - {inc.location}\n"
            f"   Reported by: {inc.reported_by}\n"
            f"   Time: {inc.reported_at}\n"
            f"   Description: {inc.description}"
            for i, inc in enumerate(incidents, 1)
        )
        prompt = INCIDENT_SUMMARY_PROMPT.format(
            company=settings.company_name,
            total=len(incidents),
            critical=len(critical),
            moderate=len(moderate),
            minor=len(minor),
            details=details,
        )
        return await self._draft(prompt, incident_summary_fallback(incidents))


def demo_email_fallback(vendor: str, shipment_id: str | None = None) -> EmailDraft:
    domain = re.sub(r"\s+", "", vendor.lower())
    return EmailDraft(
        subject=f"Shipment Update - {shipment_id or 'Order Confirmation'}",
        body=(
            "Dear Team,\n\nPlease find the attached documentation for your recent "
            f"shipment.\n\nBest regards,\n{vendor} Team"
        ),
        sender=vendor,
        sender_email=f"shipping@{domain}.com",
        has_attachment=True,
    )


def escalation_email_fallback(discrepancy: Discrepancy) -> EmailDraft:
    issue = discrepancy.type.value.replace("_", " ")
    return EmailDraft(
        subject=f"URGENT: {issue} on {discrepancy.subject_id}",
        body=(
            "Dear Operations Team,\n\n"
            f"We have detected a {discrepancy.severity.value} severity discrepancy on "
            f"{discrepancy.subject_id}.\n\n"
            f"{discrepancy.details}\n\n"
            f"Expected: {discrepancy.expected}\n"
            f"Actual: {discrepancy.actual}\n\n"
            f"Recommended Action: {discrepancy.recommended_action}\n\n"
            "Please address this issue immediately.\n\n"
            "Best regards,\nData Reconciliation System"
        ),
        sender="Data Reconciliation System",
    )


def split_by_severity(
    incidents: list[Incident],
) -> tuple[list[Incident], list[Incident], list[Incident]]:
    """Partition into critical (4-5), moderate (3) and minor (1-2)."""
    critical = [i for i in incidents if i.severity >= CRITICAL_INCIDENT_SEVERITY]
    moderate = [i for i in incidents if i.severity == MODERATE_INCIDENT_SEVERITY]
    minor = [i for i in incidents if i.severity < MODERATE_INCIDENT_SEVERITY]
    return critical, moderate, minor


def incident_summary_fallback(incidents: list[Incident]) -> EmailDraft:
    critical, moderate, minor = split_by_severity(incidents)

    if critical:
        subject = f"URGENT: {_plural(len(critical), 'Critical Incident')} Reported"
    else:
        subject = f"Incident Summary: {_plural(len(incidents), 'Report')} Submitted"

    sections = [
        "Dear Operations Team,",
        "This automated report summarizes recent incident reports submitted via the "
        "mobile reporting system.",
        "SUMMARY:\n"
        f"• Total incidents: {len(incidents)}\n"
        f"• Critical (Severity 4-5): {len(critical)}\n"
        f"• Moderate (Severity 3): {len(moderate)}\n"
        f"• Minor (Severity 1-2): {len(minor)}",
    ]
    if critical:
        listed = "\n\n".join(
            f"{i}. {inc.incident_type} - {inc.location}\n   {inc.description}\n"
            f"   Reported by: {inc.reported_by} at {inc.reported_at}"
            for i, inc in enumerate(critical, 1)
        )
        sections.append(f"CRITICAL INCIDENTS REQUIRING IMMEDIATE ATTENTION:\n{listed}")
    if moderate:
        listed = "\n\n".join(
            f"{i}. {inc.incident_type} - {inc.location}\n   {inc.description}\n"
            f"   Reported by: {inc.reported_by}"
            for i, inc in enumerate(moderate, 1)
        )
        sections.append(f"MODERATE INCIDENTS:\n{listed}")

    actions = ["RECOMMENDED ACTIONS:"]
    if critical:
        actions.append("• Address critical incidents immediately (within 1 hour)")
    actions += [
        "• Review moderate incidents today",
        "• Schedule minor incident resolution this week",
        "• Update status in incident tracking system",
    ]
    sections.append("\n".join(actions))
    sections.append("Full details available in attached incident log.")
    sections.append("Best regards,\nSafety Monitoring System")

    return EmailDraft(
        subject=subject,
        body="\n\n".join(sections),
        sender="Safety Monitoring System",
        has_attachment=True,
    )
