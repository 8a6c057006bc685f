"""Document extraction and email draft models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DocumentType(Enum):
    BOL = "bol"
    TRAINING_FORM = "training_form"
    INCIDENT_REPORT = "incident_report"
    COA = "coa"
    RECEIPT = "receipt"
    CUSTOMER_PO = "customer_po"


@dataclass
class ExtractedField:
    label: str
    value: str
    confidence: int = 0


@dataclass
class DocumentAnalysis:
    """Fields read off a scanned document, each with a confidence."""

    document_type: str
    fields: list[ExtractedField] = field(default_factory=list)
    raw_text: str | None = None
    warnings: list[str] = field(default_factory=list)

    def get(self, label: str) -> ExtractedField | None:
        wanted = label.lower()
        for f in self.fields:
            if f.label.lower() == wanted:
                return f
        return None


@dataclass
class ExtractionCheck:
    valid: bool
    missing_fields: list[str] = field(default_factory=list)
    low_confidence_fields: list[str] = field(default_factory=list)


@dataclass
class EmailDraft:
    subject: str
    body: str
    sender: str = ""
    sender_email: str = ""
    has_attachment: bool = False
