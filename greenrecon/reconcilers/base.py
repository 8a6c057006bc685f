"""Shared helpers for the rule-based reconcilers."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Iterable

from greenrecon.models.discrepancy import (
    Discrepancy,
    DiscrepancyType,
    ExternalIssue,
    ReconciliationResult,
    Severity,
)

logger = logging.getLogger(__name__)

EXTERNAL_ISSUE_CONFIDENCE = 95


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def average_confidence(discrepancies: list[Discrepancy]) -> int:
    """Mean confidence rounded to an integer; 100 when nothing was flagged."""
    if not discrepancies:
        return 100
    total = sum(d.confidence for d in discrepancies)
    return round_half_up(total / len(discrepancies))


def build_result(
    subject_ids: list[str], discrepancies: list[Discrepancy]
) -> ReconciliationResult:
    """Assemble a result; a subject is clean iff no discrepancy references it."""
    flagged = {d.subject_id for d in discrepancies}
    return ReconciliationResult(
        clean=[s for s in subject_ids if s not in flagged],
        discrepancies=discrepancies,
        total_processed=len(subject_ids),
        total_flagged=len(discrepancies),
        avg_confidence=average_confidence(discrepancies),
    )


def merge_external_issues(
    discrepancies: list[Discrepancy],
    issues: Iterable[ExternalIssue],
    subject_ids: Iterable[str],
    type_for_issue: dict[str, DiscrepancyType],
    default_type: DiscrepancyType,
    expected_text: str = "Compliant",
    actual_text: str = "Non-compliant",
) -> list[Discrepancy]:
    """Append externally supplied issues not already found by a rule.

    Issues are keyed by ``(subject_id, rule)``. Issues for subjects outside
    the reconciled set are dropped.
    """
    known = set(subject_ids)
    seen = {(d.subject_id, d.rule) for d in discrepancies}
    merged = list(discrepancies)

    for issue in issues:
        if issue.subject_id not in known:
            logger.warning(
                "Dropping external issue %s for unknown subject %s",
                issue.issue_type, issue.subject_id,
            )
            continue
        key = (issue.subject_id, issue.issue_type)
        if key in seen:
            continue
        seen.add(key)
        merged.append(
            Discrepancy(
                id=f"db-issue-{issue.subject_id}-{issue.issue_type}",
                type=type_for_issue.get(issue.issue_type, default_type),
                severity=Severity.parse(issue.severity),
                subject_id=issue.subject_id,
                field=issue.issue_type,
                expected=expected_text,
                actual=actual_text,
                confidence=EXTERNAL_ISSUE_CONFIDENCE,
                recommended_action=issue.recommended_action or "Review and resolve issue.",
                details=issue.details,
                rule=issue.issue_type,
            )
        )
    return merged


def load_issues(rows: Iterable[ExternalIssue | dict] | None, id_key: str) -> list[ExternalIssue]:
    issues: list[ExternalIssue] = []
    for row in rows or []:
        if isinstance(row, ExternalIssue):
            issues.append(row)
        else:
            issues.append(ExternalIssue.from_dict(row, id_key=id_key))
    return issues


def parse_date(value: str | date | None) -> date | None:
    """Parse an ISO date or timestamp; anything else is treated as absent."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def money(value: float) -> str:
    return f"${value:.2f}"
