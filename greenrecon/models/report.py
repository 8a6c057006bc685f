"""Reconciliation report and review decision data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from greenrecon.models.base import from_mapping


@dataclass
class ReportStatistics:
    total_processed: int = 0
    clean_matches: int = 0
    discrepancies_found: int = 0
    avg_confidence: int = 100


@dataclass
class DiscrepancyDetail:
    """A discrepancy as it appears in a written report."""

    subject_id: str
    issue: str
    severity: str
    recommendation: str


@dataclass
class ReconciliationReport:
    """A management-facing summary of one reconciliation run."""

    title: str
    executive_summary: str
    statistics: ReportStatistics = field(default_factory=ReportStatistics)
    clean_ids: list[str] = field(default_factory=list)
    discrepancy_details: list[DiscrepancyDetail] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    generated_by: str = "fallback"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReconciliationReport:
        """Rebuild a stored report; unknown keys are ignored."""
        stats = data.get("statistics") or {}
        return cls(
            title=str(data.get("title", "")),
            executive_summary=str(data.get("executive_summary", "")),
            statistics=from_mapping(ReportStatistics, stats),
            clean_ids=[str(i) for i in data.get("clean_ids") or []],
            discrepancy_details=[
                from_mapping(DiscrepancyDetail, d) for d in data.get("discrepancy_details") or []
            ],
            recommendations=[str(r) for r in data.get("recommendations") or []],
            generated_by=str(data.get("generated_by", "fallback")),
        )


@dataclass
class Decision:
    """A participant's review decision on a flagged item."""

    item_id: str
    decision: str
    comment: str | None = None
    participant: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Decision:
        return cls(
            item_id=str(data.get("item_id", "")),
            decision=str(data.get("decision", "")),
            comment=data.get("comment"),
            participant=data.get("participant"),
        )


@dataclass
class SessionParticipation:
    """Credits shown on the last page of the handout PDF."""

    session_code: str
    challenge_winners: list[dict[str, Any]] = field(default_factory=list)
    scan_contributors: list[dict[str, Any]] = field(default_factory=list)
    total_participants: int = 0
    errors_prevented_value: float = 0.0
    time_saved_minutes: int = 0
