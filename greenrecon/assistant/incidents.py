"""Incident photo triage, routing rules and escalation email drafts."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from greenrecon.backends.base import GenerativeBackend, ImageInput, extract_json
from greenrecon.config import settings
from greenrecon.models.incident import (
    Incident,
    IncidentAnalysis,
    IncidentEmailDraft,
    RoutingDecision,
    RoutingDestination,
)

logger = logging.getLogger(__name__)

ESCALATION_CONFIDENCE = 75

SAFETY_TEAM = "Safety Team"
MAINTENANCE_TEAM = "Maintenance Team"
OPERATIONS_MANAGER = "Operations Manager"
QUALITY_TEAM = "Quality Team"

RECIPIENTS = {
    SAFETY_TEAM: ("Safety Team", "safety@bigmarblefarms.com", "Safety & Compliance"),
    MAINTENANCE_TEAM: ("Maintenance Team", "maintenance@bigmarblefarms.com", "Facilities & Equipment"),
    OPERATIONS_MANAGER: ("Operations Manager", "ops.manager@bigmarblefarms.com", "Operations"),
    QUALITY_TEAM: ("Quality Assurance", "qa@bigmarblefarms.com", "Quality & Compliance"),
}

SAFETY_KEYWORDS = ("pest", "aphid", "infestation", "contamination", "food safety")
EQUIPMENT_KEYWORDS = ("equipment", "led", "irrigation", "fertigation", "hvac", "failure")
DISEASE_KEYWORDS = ("disease", "mildew", "rot")

SEVERITY_LABELS = {5: "Critical", 4: "High", 3: "Moderate", 2: "Low", 1: "Minor"}

TRIAGE_PROMPT = """\
You are analyzing a photo submitted as a greenhouse incident report for {company}.

Determine whether this is a real incident (equipment failure, safety hazard, pest \
issue, damage), a false positive (harmless objects, normal conditions) or ambiguous \
(unclear, needs closer inspection).

- Real incidents: isIncident true, confidence 85-100.
- False positives: isIncident false, confidence 85-100, with a dismissalReason.
- Ambiguous cases: isIncident true, confidence 50-75, needsEscalation true, with an \
ambiguityNote explaining what should be checked.

Be conservative with severity: 1-2 minor, 3 moderate, 4 significant, 5 critical \
safety risk.

Respond with:
{{
  "isIncident": true,
  "confidence": 0,
  "incident_type": "Equipment|Safety|Pest|Plant Health|Environmental|Quality|Structural",
  "severity": 1,
  "location": "best guess, e.g. 'Zone 2, Row 8'",
  "description": "2-3 sentences",
  "needsEscalation": false,
  "dismissalReason": "if false positive",
  "ambiguityNote": "if ambiguous"
}}

Return ONLY valid JSON, no markdown formatting.\
"""

MOCK_SCENARIOS = [
    IncidentAnalysis(
        is_incident=True,
        confidence=92,
        incident_type="Equipment",
        severity=4,
        location="Zone 3, Row 12",
        description=(
            "Conveyor belt appears jammed with visible mechanical damage. Motor housing "
            "shows signs of overheating. This poses a safety risk and is preventing "
            "normal operations."
        ),
        needs_escalation=True,
    ),
    IncidentAnalysis(
        is_incident=True,
        confidence=88,
        incident_type="Safety",
        severity=3,
        location="Packing area near entrance",
        description=(
            "Water accumulation on floor creating slip hazard. Source appears to be "
            "condensation drip from overhead pipe. Area needs immediate attention and "
            "signage."
        ),
        needs_escalation=False,
    ),
    IncidentAnalysis(
        is_incident=True,
        confidence=95,
        incident_type="Pest",
        severity=5,
        location="Zone 2, Growing benches",
        description=(
            "Significant aphid infestation visible on multiple tomato plants. Population "
            "appears out of control despite IPM program. Immediate intervention required "
            "to prevent crop loss."
        ),
        needs_escalation=True,
    ),
    IncidentAnalysis(
        is_incident=False,
        confidence=98,
        incident_type="N/A",
        severity=1,
        location="Packing station",
        description=(
            "Image shows a dropped pen on clean floor surface. This is not a safety "
            "hazard or operational issue. No action needed."
        ),
        needs_escalation=False,
        dismissal_reason=(
            "False positive - harmless office supply on floor. Not an incident "
            "requiring reporting."
        ),
    ),
    IncidentAnalysis(
        is_incident=True,
        confidence=65,
        incident_type="Quality",
        severity=3,
        location="Zone 1, Bench 5",
        description=(
            "Dark staining visible on plant leaves and growing medium. Could be fungal "
            "issue (Botrytis) or residue from fertilizer application. Unclear without "
            "closer inspection and testing."
        ),
        needs_escalation=True,
        ambiguity_note=(
            "Needs closer inspection by growing team. If fungal, requires immediate "
            "isolation and treatment per SOP."
        ),
    ),
    IncidentAnalysis(
        is_incident=True,
        confidence=90,
        incident_type="Environmental",
        severity=4,
        location="Zone 4, HVAC Unit B",
        description=(
            "HVAC unit showing visible ice buildup and condensation. Temperature "
            "monitoring in this zone likely compromised. Requires immediate maintenance "
            "to prevent crop stress."
        ),
        needs_escalation=True,
    ),
    IncidentAnalysis(
        is_incident=True,
        confidence=87,
        incident_type="Structural",
        severity=3,
        location="Greenhouse panel near Zone 2",
        description=(
            "Cracked greenhouse glazing panel with visible gap. This could lead to heat "
            "loss, pest entry, and water infiltration. Should be replaced within 48 hours."
        ),
        needs_escalation=False,
    ),
]


def mock_incident_analysis(image: str) -> IncidentAnalysis:
    """Deterministic stand-in keyed on the image payload length."""
    return replace(MOCK_SCENARIOS[len(image) % len(MOCK_SCENARIOS)])


def classify(analysis: IncidentAnalysis) -> str:
    if not analysis.is_incident:
        return "false_positive"
    if analysis.ambiguity_note:
        return "ambiguous"
    return "real_incident"


def determine_routing(
    severity: int,
    classification: str,
    confidence: int,
    incident_type: str | None = None,
) -> RoutingDecision:
    """Route an incident by severity first, then by how sure the triage is."""
    if severity >= 5:
        return RoutingDecision(
            destination=RoutingDestination.ESCALATION,
            reason=f"Critical severity ({severity}/5) requires immediate Safety Team attention",
            priority=1,
            assigned_to=SAFETY_TEAM,
        )

    if severity == 4:
        kind = (incident_type or "").lower()
        team = SAFETY_TEAM if "pest" in kind or "food" in kind else MAINTENANCE_TEAM
        return RoutingDecision(
            destination=RoutingDestination.ESCALATION,
            reason=f"High severity ({severity}/5) requires urgent {team} intervention",
            priority=2,
            assigned_to=team,
        )

    if classification == "ambiguous":
        return RoutingDecision(
            destination=RoutingDestination.REVIEW,
            reason="Ambiguous classification requires human judgment and verification",
            priority=2,
        )

    if confidence < ESCALATION_CONFIDENCE:
        return RoutingDecision(
            destination=RoutingDestination.REVIEW,
            reason=f"Low AI confidence ({confidence}%) - human verification recommended",
            priority=3,
        )

    if severity == 3:
        return RoutingDecision(
            destination=RoutingDestination.REVIEW,
            reason=f"Moderate severity ({severity}/5) requires Maintenance review and prioritization",
            priority=3,
            assigned_to=MAINTENANCE_TEAM,
        )

    if 0 < severity <= 2:
        return RoutingDecision(
            destination=RoutingDestination.LOG_ONLY,
            reason=f"Minor severity ({severity}/5) logged for tracking and pattern analysis",
            priority=4,
        )

    return RoutingDecision(
        destination=RoutingDestination.LOG_ONLY,
        reason="Incident logged for record keeping",
        priority=5,
    )


class IncidentTriage:
    """Classifies incident photos and attaches a routing decision."""

    def __init__(self, backend: GenerativeBackend | None = None) -> None:
        self.backend = backend

    async def analyze(self, image: str) -> IncidentAnalysis:
        analysis = await self._analyze_photo(image)
        analysis.routing = determine_routing(
            analysis.severity, classify(analysis), analysis.confidence, analysis.incident_type
        )
        return analysis

    async def _analyze_photo(self, image: str) -> IncidentAnalysis:
        if self.backend is None:
            return mock_incident_analysis(image)
        prompt = TRIAGE_PROMPT.format(company=settings.company_name)
        try:
            raw_text = await self.backend.generate(prompt, ImageInput.from_data_url(image))
            return self._parse_analysis(extract_json(raw_text))
        except Exception as exc:
            logger.error("Incident photo analysis failed, using mock analysis: %s", exc)
            return mock_incident_analysis(image)

    def _parse_analysis(self, parsed: dict[str, Any]) -> IncidentAnalysis:
        return IncidentAnalysis(
            is_incident=bool(parsed["isIncident"]),
            confidence=max(0, min(100, int(parsed.get("confidence", 0)))),
            incident_type=str(parsed.get("incident_type", "Unknown")),
            severity=max(1, min(5, int(parsed.get("severity", 1)))),
            location=str(parsed.get("location", "")),
            description=str(parsed.get("description", "")),
            needs_escalation=bool(parsed.get("needsEscalation", False)),
            dismissal_reason=parsed.get("dismissalReason") or None,
            ambiguity_note=parsed.get("ambiguityNote") or None,
        )


# Email drafts


def recipient_for(incident: Incident) -> tuple[str, str, str]:
    """(name, email, role) of the team that should hear about ``incident``."""
    if incident.routed_to in RECIPIENTS:
        return RECIPIENTS[incident.routed_to]

    kind = incident.incident_type.lower()
    if any(word in kind for word in SAFETY_KEYWORDS):
        return RECIPIENTS[SAFETY_TEAM]
    if any(word in kind for word in EQUIPMENT_KEYWORDS):
        return RECIPIENTS[MAINTENANCE_TEAM]
    if any(word in kind for word in DISEASE_KEYWORDS):
        return RECIPIENTS[SAFETY_TEAM if incident.severity >= 4 else QUALITY_TEAM]
    return RECIPIENTS[OPERATIONS_MANAGER]


def priority_for(severity: int) -> str:
    if severity >= 5:
        return "critical"
    if severity == 4:
        return "high"
    if severity == 3:
        return "medium"
    return "low"


def _subject(incident: Incident, priority: str) -> str:
    prefix = {"critical": "[CRITICAL] ", "high": "[URGENT] "}.get(priority, "")
    return f"{prefix}Incident Report: {incident.incident_type} at {incident.location}"


def _body(incident: Incident, recipient_name: str) -> str:
    label = SEVERITY_LABELS.get(incident.severity, "Unknown")
    rule = "─" * 17
    action = ""
    if incident.severity >= 4:
        critical = incident.severity >= 5
        action = (
            f"\nACTION REQUIRED\n{rule}\n"
            f"This incident has been flagged as {label.upper()} priority and requires "
            "immediate attention. Please respond within:\n"
            f"• {'1 hour' if critical else '4 hours'} for initial assessment\n"
            f"• {'4 hours' if critical else '24 hours'} for resolution plan\n"
        )
    return (
        f"Dear {recipient_name},\n\n"
        "An incident has been reported that requires your attention.\n\n"
        f"INCIDENT DETAILS\n{rule}\n"
        f"Type: {incident.incident_type}\n"
        f"Severity: {incident.severity}/5 ({label})\n"
        f"Location: {incident.location}\n"
        f"Reported By: {incident.reported_by}\n"
        f"Reported At: {incident.reported_at}\n\n"
        f"DESCRIPTION\n{rule}\n"
        f"{incident.description}\n"
        f"{action}\n"
        "Please update the incident status in the system once you have reviewed and "
        "taken action.\n\n"
        f"This is an automated notification generated by {settings.company_name}.\n\n"
        "Best regards,\nIncident Management"
    )


def draft_incident_email(incident: Incident, now: datetime | None = None) -> IncidentEmailDraft:
    now = now or datetime.now(timezone.utc)
    name, email, role = recipient_for(incident)
    priority = priority_for(incident.severity)
    return IncidentEmailDraft(
        id=f"email-{incident.id}-{int(now.timestamp() * 1000)}",
        incident_id=incident.id,
        recipient=email,
        recipient_role=role,
        subject=_subject(incident, priority),
        body=_body(incident, name),
        priority=priority,
        drafted_at=now.isoformat(),
    )


def draft_incident_emails(incident: Incident, now: datetime | None = None) -> list[IncidentEmailDraft]:
    """Primary draft, plus a CC to the operations manager for critical incidents."""
    now = now or datetime.now(timezone.utc)
    drafts = [draft_incident_email(incident, now)]

    if incident.severity >= 5 and incident.routed_to != OPERATIONS_MANAGER:
        cc = draft_incident_email(replace(incident, routed_to=OPERATIONS_MANAGER), now)
        cc.id = f"email-{incident.id}-cc-{int(now.timestamp() * 1000)}"
        cc.subject = f"[CC] {cc.subject}"
        drafts.append(cc)

    return drafts
