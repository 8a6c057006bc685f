"""Incident intake, triage and routing models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RoutingDestination(Enum):
    ESCALATION = "escalation"
    REVIEW = "review"
    LOG_ONLY = "log_only"


@dataclass
class Incident:
    """An incident reported from the floor."""

    id: str
    incident_type: str
    severity: int
    location: str
    description: str
    reported_by: str
    reported_at: str
    photo_url: str | None = None
    routed_to: str | None = None


@dataclass
class RoutingDecision:
    destination: RoutingDestination
    reason: str
    priority: int
    assigned_to: str | None = None


@dataclass
class IncidentAnalysis:
    """Result of triaging an incident photo."""

    is_incident: bool
    confidence: int
    incident_type: str
    severity: int
    location: str
    description: str
    needs_escalation: bool
    dismissal_reason: str | None = None
    ambiguity_note: str | None = None
    routing: RoutingDecision | None = None


@dataclass
class IncidentEmailDraft:
    id: str
    incident_id: str
    recipient: str
    recipient_role: str
    subject: str
    body: str
    priority: str
    drafted_at: str
    status: str = "draft"
