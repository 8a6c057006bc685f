from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import pytest

from greenrecon.assistant.documents import DocumentAnalyzer, mock_analysis, validate_extraction
from greenrecon.assistant.emails import (
    EmailWriter,
    demo_email_fallback,
    escalation_email_fallback,
    incident_summary_fallback,
)
from greenrecon.assistant.incidents import (
    MOCK_SCENARIOS,
    IncidentTriage,
    determine_routing,
    draft_incident_emails,
    mock_incident_analysis,
)
from greenrecon.assistant.report_writer import ReportWriter
from greenrecon.backends.base import ImageInput, extract_json
from greenrecon.models.document import DocumentType, ExtractedField
from greenrecon.models.incident import Incident, RoutingDestination
from greenrecon.reconcilers.shipping import reconcile_shipments


class FakeBackend:
    name = "Fake"

    def __init__(self, reply: str | None = None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []
        self.images: list[ImageInput | None] = []

    async def generate(self, prompt, image=None):
        self.prompts.append(prompt)
        self.images.append(image)
        if self.error is not None:
            raise self.error
        return self.reply


def _result():
    return reconcile_shipments(
        [
            {"shipment_id": "OUT-2025-0001", "expected_qty": 100, "expected_sku": "TOM-BEEF-25"},
            {"shipment_id": "OUT-2025-0002", "expected_qty": 50, "expected_sku": "CUC-ENG-12"},
        ],
        [
            {"shipment_id": "OUT-2025-0001", "qty_scanned": 100, "sku": "TOM-BEEF-25"},
            {"shipment_id": "OUT-2025-0002", "qty_scanned": 40, "sku": "CUC-ENG-12"},
        ],
        [
            {"shipment_id": "OUT-2025-0001", "received_qty": 100, "condition": "Good condition"},
            {"shipment_id": "OUT-2025-0002", "received_qty": 40, "condition": "Good condition"},
        ],
    )


def _incident(severity=5, incident_type="Pest Infestation", routed_to=None):
    return Incident(
        id="INC-001",
        incident_type=incident_type,
        severity=severity,
        location="Zone 2, Row 8",
        description="Aphid colony on lower leaves",
        reported_by="R. Patel",
        reported_at="2025-01-24T09:12:00",
        routed_to=routed_to,
    )


def test_extract_json_handles_fences_and_prose():
    assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert extract_json('Here you go: {"a": 2} thanks') == {"a": 2}
    with pytest.raises(json.JSONDecodeError):
        extract_json("no json here")


def test_image_input_from_data_url():
    image = ImageInput.from_data_url("data:image/png;base64,AAAA")
    assert image.mime_type == "image/png"
    assert image.data == "AAAA"
    assert ImageInput.from_data_url("BBBB").mime_type == "image/jpeg"


def test_report_without_backend_is_fallback():
    report = asyncio.run(ReportWriter().write(_result(), use_case="shipping"))
    assert report.generated_by == "fallback"
    assert report.statistics.total_processed == 2
    assert report.statistics.clean_matches == 1
    assert report.clean_ids == ["OUT-2025-0001"]
    assert [d.subject_id for d in report.discrepancy_details] == ["OUT-2025-0002"]
    assert len(report.recommendations) == 3


def test_report_uses_model_prose_but_computed_numbers():
    reply = json.dumps({
        "title": "Weekly Dock Report",
        "executiveSummary": "One short shipment.",
        "discrepancyDetails": [
            {"subject_id": "OUT-2025-0002", "issue": "Short 10", "severity": "medium",
             "recommendation": "Credit"},
        ],
        "recommendations": ["Count twice"],
    })
    backend = FakeBackend(reply=f"```json\n{reply}\n```")
    report = asyncio.run(ReportWriter(backend).write(_result(), use_case="shipping"))
    assert report.title == "Weekly Dock Report"
    assert report.generated_by == "Fake"
    assert report.statistics.discrepancies_found == 1
    assert report.recommendations == ["Count twice"]
    assert "OUT-2025-0002" in backend.prompts[0]


def test_report_falls_back_on_backend_error():
    backend = FakeBackend(error=RuntimeError("quota exceeded"))
    report = asyncio.run(ReportWriter(backend).write(_result(), use_case="quality"))
    assert report.generated_by == "fallback"
    assert report.title == "Quality & Compliance Reconciliation Report"


def test_report_falls_back_on_garbage():
    report = asyncio.run(ReportWriter(FakeBackend(reply="sorry")).write(_result()))
    assert report.generated_by == "fallback"


def test_escalation_email_fallback():
    [disc] = _result().discrepancies
    draft = escalation_email_fallback(disc)
    assert draft.subject == "URGENT: quantity mismatch on OUT-2025-0002"
    assert "Expected: 50" in draft.body


def test_escalation_email_from_model():
    [disc] = _result().discrepancies
    backend = FakeBackend(reply='{"subject": "Short shipment", "body": "Please credit."}')
    draft = asyncio.run(EmailWriter(backend).escalation_email(disc))
    assert draft.subject == "Short shipment"
    assert draft.sender == "Data Reconciliation System"


def test_demo_email_fallback():
    draft = demo_email_fallback("Fresh Grocers Ltd", "IN-2025-0004")
    assert draft.sender_email == "shipping@freshgrocersltd.com"
    assert draft.subject == "Shipment Update - IN-2025-0004"
    assert draft.has_attachment


def test_incident_summary_fallback_subjects():
    critical = incident_summary_fallback([_incident(5), _incident(2)])
    assert critical.subject == "URGENT: 1 Critical Incident Reported"
    assert "CRITICAL INCIDENTS REQUIRING IMMEDIATE ATTENTION" in critical.body

    calm = incident_summary_fallback([_incident(3), _incident(1)])
    assert calm.subject == "Incident Summary: 2 Reports Submitted"


def test_mock_document_analysis():
    analysis = mock_analysis(DocumentType.COA)
    assert analysis.document_type == "Certificate of Analysis"
    assert analysis.get("Lot Number").value == "BIO-2025-0142"
    unknown = mock_analysis("napkin")
    assert unknown.document_type == "Unknown"
    assert unknown.warnings == ["Document type not recognized"]


def test_validate_extraction():
    analysis = mock_analysis(DocumentType.BOL)
    analysis.fields.append(ExtractedField("Notes", "smudged", 30))
    analysis.fields.append(ExtractedField("Seal Number", "N/A", 0))
    check = validate_extraction(analysis, ["carrier", "Weight", "PO Number"])
    assert check.valid is False
    assert check.missing_fields == ["PO Number"]
    assert check.low_confidence_fields == ["Notes"]


def test_document_analyzer_parses_model_output():
    reply = json.dumps({
        "documentType": "Receipt",
        "fields": [{"label": "Total", "value": "$52.98", "confidence": 140}],
        "warnings": [],
    })
    backend = FakeBackend(reply=reply)
    analysis = asyncio.run(
        DocumentAnalyzer(backend).analyze("data:image/png;base64,AAAA", "receipt")
    )
    assert analysis.get("Total").confidence == 100
    assert backend.images[0].mime_type == "image/png"


def test_document_analyzer_falls_back_to_mock():
    backend = FakeBackend(error=RuntimeError("timeout"))
    analysis = asyncio.run(DocumentAnalyzer(backend).analyze("AAAA", "bol"))
    assert analysis.document_type == "Bill of Lading"


def test_routing_rules():
    critical = determine_routing(5, "real_incident", 95)
    assert critical.destination is RoutingDestination.ESCALATION
    assert critical.assigned_to == "Safety Team"

    pest = determine_routing(4, "real_incident", 95, "Pest")
    assert pest.assigned_to == "Safety Team"
    assert determine_routing(4, "real_incident", 95, "Equipment").assigned_to == "Maintenance Team"

    assert determine_routing(3, "ambiguous", 65).destination is RoutingDestination.REVIEW
    assert determine_routing(2, "real_incident", 60).priority == 3
    assert determine_routing(3, "real_incident", 90).assigned_to == "Maintenance Team"
    assert determine_routing(1, "false_positive", 98).destination is RoutingDestination.LOG_ONLY


def test_mock_triage_is_deterministic_and_routed():
    triage = IncidentTriage()
    image = "x" * len(MOCK_SCENARIOS) * 3
    first = asyncio.run(triage.analyze(image))
    second = asyncio.run(triage.analyze(image))
    assert first == second
    assert first.routing is not None
    assert mock_incident_analysis(image).routing is None


def test_critical_incident_gets_cc_to_operations_manager():
    now = datetime(2025, 1, 24, 9, 15, tzinfo=timezone.utc)
    drafts = draft_incident_emails(_incident(5), now)
    assert [d.recipient for d in drafts] == [
        "safety@bigmarblefarms.com",
        "ops.manager@bigmarblefarms.com",
    ]
    assert drafts[0].subject.startswith("[CRITICAL] ")
    assert drafts[1].subject.startswith("[CC] [CRITICAL] ")
    assert drafts[1].id.startswith("email-INC-001-cc-")


def test_moderate_incident_single_draft():
    drafts = draft_incident_emails(_incident(3, "Irrigation leak"))
    assert len(drafts) == 1
    assert drafts[0].recipient == "maintenance@bigmarblefarms.com"
    assert drafts[0].priority == "medium"
