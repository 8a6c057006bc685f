"""Discrepancy and reconciliation result data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from greenrecon.models.base import from_mapping


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position in the total order, for display sorting only."""
        return _SEVERITY_ORDER.index(self)

    @classmethod
    def parse(cls, value: str | Severity | None, default: Severity | None = None) -> Severity:
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default or cls.MEDIUM


_SEVERITY_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


class DiscrepancyType(Enum):
    QUANTITY_MISMATCH = "quantity_mismatch"
    SKU_MISMATCH = "sku_mismatch"
    MISSING_SCAN = "missing_scan"
    EXTRA_SCAN = "extra_scan"
    MISSING_DOCUMENT = "missing_document"
    CONDITION_ISSUE = "condition_issue"


@dataclass
class Discrepancy:
    """A computed mismatch between two data sources."""

    id: str
    type: DiscrepancyType
    severity: Severity
    subject_id: str
    field: str
    expected: str | int | float
    actual: str | int | float
    confidence: int
    recommended_action: str
    details: str
    rule: str = ""
    difference: int | float | None = None

    def __post_init__(self) -> None:
        self.confidence = max(0, min(100, int(self.confidence)))


@dataclass
class ReconciliationResult:
    """Aggregate output shared by every reconciler."""

    clean: list[str] = field(default_factory=list)
    discrepancies: list[Discrepancy] = field(default_factory=list)
    total_processed: int = 0
    total_flagged: int = 0
    avg_confidence: int = 100

    def for_subject(self, subject_id: str) -> list[Discrepancy]:
        return [d for d in self.discrepancies if d.subject_id == subject_id]

    def by_severity(self) -> list[Discrepancy]:
        """Discrepancies ordered most severe first."""
        return sorted(self.discrepancies, key=lambda d: d.severity.rank, reverse=True)


@dataclass
class ExternalIssue:
    """A pre-existing issue supplied by the document store.

    ``issue_type`` names the reconciler rule it corresponds to
    (``missing_coa``, ``pricing_mismatch``, ``duplicate``...).
    """

    subject_id: str
    issue_type: str = ""
    severity: str = "medium"
    details: str = ""
    recommended_action: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], id_key: str | None = None) -> ExternalIssue:
        if id_key and "subject_id" not in data:
            data = {**data, "subject_id": data.get(id_key)}
        return from_mapping(cls, data)
