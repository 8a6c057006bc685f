"""Document analysis — reads fields off scanned BOLs, COAs, receipts and forms."""

from __future__ import annotations

import logging
from typing import Any

from greenrecon.backends.base import GenerativeBackend, ImageInput, extract_json
from greenrecon.config import settings
from greenrecon.models.document import (
    DocumentAnalysis,
    DocumentType,
    ExtractedField,
    ExtractionCheck,
)

logger = logging.getLogger(__name__)

LOW_CONFIDENCE = 50
NOT_PRESENT = "N/A"

TYPE_PROMPTS = {
    DocumentType.BOL: """\
Analyze this Bill of Lading (BOL) document image and extract:
- Carrier name
- Shipment ID / BOL number
- Weight
- Origin address
- Destination address
- Date
- Signature present (yes/no)
- Any special instructions or notes""",
    DocumentType.TRAINING_FORM: """\
Analyze this training acknowledgement form and extract with HIGH ACCURACY:
- Employee name (read handwritten names carefully)
- Employee ID (format: EMP-#### or BM-####)
- Training module/topic (e.g. "Safety & SOP", "Forklift Certification")
- Date signed (convert to YYYY-MM-DD if possible)
- Signature present (yes/no), its legibility, and whether it matches the printed name
- Any notes, comments or annotations
If a signature is illegible, still note that it EXISTS with value "Illegible" and \
confidence below 50.""",
    DocumentType.INCIDENT_REPORT: """\
Analyze this incident report document and extract:
- Location/zone
- Date and time
- Reporter name
- Incident type (equipment, safety, pest, etc.)
- Description of incident
- Severity level (if indicated)
- Photos referenced (yes/no)
- Follow-up required (yes/no)""",
    DocumentType.COA: """\
Analyze this Certificate of Analysis (COA) or lab report and extract:
- Supplier/Lab name, product name
- Lot number / batch number (CRITICAL)
- Manufacturing date and expiration date (CRITICAL for compliance)
- Every test row: test name, result, specification and Pass/Fail status
- Certificate number, authorized signature present, storage conditions
- Handwritten annotations
CONTEXT: {company} receives biological controls, fertilizers and growing inputs; \
CanadaGAP requires traceability of all inputs.""",
    DocumentType.RECEIPT: """\
Analyze this expense receipt and extract:
- Vendor/merchant, date, time, receipt number
- Subtotal, tax (GST/HST/PST), tip, total (CRITICAL)
- Payment method and card last 4 digits
- Itemized lines if present
- Category suggestion (Meals, Lodging, Fuel, Supplies, Travel, Other)
- Handwritten notes
Thermal receipts may be faded; note any unclear fields.""",
    DocumentType.CUSTOMER_PO: """\
Analyze this customer purchase order and extract:
- Customer name, customer PO number (CRITICAL), contact name and email
- Order date and requested delivery date (CRITICAL)
- Every line item: SKU/product, description, quantity, unit, unit price, line total
- Subtotal, freight, tax, total
- Payment terms, special instructions and handwritten annotations (RUSH, HOLD)
CONTEXT: {company} sells greenhouse tomatoes, cucumbers and peppers to retailers.""",
}

RESPONSE_FORMAT = """

For each field, provide the extracted value and a confidence score from 0-100.
If a field is unclear or possibly incorrect, give it a lower confidence score.
If a field is not visible, use "N/A" as value with 0 confidence.

Respond in JSON format:
{
  "documentType": "type",
  "fields": [
    {"label": "Field Name", "value": "extracted value", "confidence": 85}
  ],
  "warnings": ["any quality issues with the document"]
}

Only return valid JSON, no markdown formatting."""


def _fields(*rows: tuple[str, str, int]) -> list[ExtractedField]:
    return [ExtractedField(label, value, confidence) for label, value, confidence in rows]


MOCK_ANALYSES: dict[DocumentType, tuple[str, list[tuple[str, str, int]], list[str]]] = {
    DocumentType.BOL: (
        "Bill of Lading",
        [
            ("Carrier", "GreenLine Logistics", 92),
            ("Shipment ID", "SHP-2025-0001", 88),
            ("Weight", "980 lbs", 75),
            ("Destination", "BMG Packhouse A", 85),
            ("Date", "2025-01-06", 95),
            ("Signature Present", "Yes", 90),
        ],
        ["Some handwritten text may be partially obscured"],
    ),
    DocumentType.TRAINING_FORM: (
        "Training Acknowledgement",
        [
            ("Employee Name", "A. Chen", 88),
            ("Employee ID", "BM-1001", 92),
            ("Training Module", "Safety & SOP", 95),
            ("Date Signed", "2025-01-23", 85),
            ("Signature Present", "Yes", 78),
        ],
        [],
    ),
    DocumentType.INCIDENT_REPORT: (
        "Incident Report",
        [
            ("Location", "Z3-R12", 82),
            ("Date/Time", "2025-01-24 09:12", 90),
            ("Reporter", "Maintenance Team", 70),
            ("Incident Type", "Equipment", 95),
            ("Severity", "4 - Moderate", 85),
            ("Follow-up Required", "Yes", 88),
        ],
        ["Photo attachment referenced but not included"],
    ),
    DocumentType.COA: (
        "Certificate of Analysis",
        [
            ("Supplier", "BioBest Canada", 96),
            ("Product", "Aphidius colemani (Aphid Parasitoid)", 94),
            ("Lot Number", "BIO-2025-0142", 98),
            ("Manufacturing Date", "2025-01-10", 92),
            ("Expiration Date", "2025-03-10", 95),
            ("Test: Viability", "98%", 97),
            ("Test: Viability Spec", ">95%", 97),
            ("Test: Viability Status", "Pass", 99),
            ("Test: Contamination", "None detected", 94),
            ("Test: Contamination Status", "Pass", 99),
            ("Certificate Number", "COA-2025-00847", 91),
            ("Signature Present", "Yes", 88),
            ("Storage Conditions", "8-12°C, dark", 85),
            ("Handwritten Note", "Checked 1/15 - RC", 72),
        ],
        ["Shelf life is 8 weeks - verify meets minimum 12-week requirement"],
    ),
    DocumentType.RECEIPT: (
        "Expense Receipt",
        [
            ("Vendor", "Olive Garden", 96),
            ("Date", "2025-01-15", 94),
            ("Time", "7:32 PM", 89),
            ("Receipt Number", "4521-8847", 87),
            ("Subtotal", "$41.94", 95),
            ("Tax (GST)", "$2.10", 93),
            ("Tax (PST)", "$2.94", 93),
            ("Tip", "$6.00", 78),
            ("Total", "$52.98", 92),
            ("Payment Method", "Visa", 96),
            ("Card Last 4", "4421", 94),
            ("Category", "Meals", 90),
            ("Handwritten Note", "Client dinner - Sobeys buyer", 68),
        ],
        ["Tip appears handwritten - verify amount", "Meal exceeds $40 per diem policy"],
    ),
    DocumentType.CUSTOMER_PO: (
        "Customer Purchase Order",
        [
            ("Customer", "Fresh Grocers Ltd", 97),
            ("PO Number", "PO-78432", 99),
            ("Contact", "Maria Santos", 91),
            ("Contact Email", "msantos@freshgrocers.ca", 88),
            ("Order Date", "2025-01-18", 95),
            ("Requested Ship Date", "2025-01-22", 93),
            ("Item 1: Product", "Beefsteak Tomatoes", 96),
            ("Item 1: Qty", "50 cases", 97),
            ("Item 1: Unit Price", "$24.50", 94),
            ("Item 2: Product", "Mini Cucumbers 12-pack", 95),
            ("Item 2: Qty", "30 cases", 96),
            ("Item 2: Unit Price", "$18.00", 89),
            ("Item 3: Product", "Sweet Bell Peppers Mixed", 94),
            ("Item 3: Qty", "20 cases", 95),
            ("Item 3: Unit Price", "$22.00", 91),
            ("Subtotal", "$2,205.00", 88),
            ("Total", "$2,205.00", 90),
            ("Payment Terms", "Net 30", 92),
            ("Handwritten Note", "RUSH - need by Friday AM", 75),
        ],
        [
            "Cucumber unit price ($18.00) differs from price list ($19.50)",
            'Handwritten "RUSH" annotation detected',
        ],
    ),
}


def mock_analysis(document_type: DocumentType | str) -> DocumentAnalysis:
    """Canned extraction used when no model is available."""
    try:
        doc_type = DocumentType(document_type)
    except ValueError:
        return DocumentAnalysis(
            document_type="Unknown", warnings=["Document type not recognized"]
        )
    name, rows, warnings = MOCK_ANALYSES[doc_type]
    return DocumentAnalysis(document_type=name, fields=_fields(*rows), warnings=list(warnings))


def validate_extraction(result: DocumentAnalysis, required_fields: list[str]) -> ExtractionCheck:
    """Check required labels are present (case-insensitive) and flag weak reads."""
    labels = {f.label.lower() for f in result.fields}
    missing = [name for name in required_fields if name.lower() not in labels]
    low_confidence = [
        f.label
        for f in result.fields
        if f.confidence < LOW_CONFIDENCE and f.value != NOT_PRESENT
    ]
    return ExtractionCheck(
        valid=not missing,
        missing_fields=missing,
        low_confidence_fields=low_confidence,
    )


class DocumentAnalyzer:
    """Extracts labelled fields from a document image."""

    def __init__(self, backend: GenerativeBackend | None = None) -> None:
        self.backend = backend

    async def analyze(self, image: str, document_type: DocumentType | str) -> DocumentAnalysis:
        """Analyze a base64 (or data-URL) image of the given document type."""
        try:
            doc_type = DocumentType(document_type)
        except ValueError:
            logger.warning("Unsupported document type: %s", document_type)
            return mock_analysis(document_type)

        if self.backend is None:
            return mock_analysis(doc_type)

        prompt = TYPE_PROMPTS[doc_type].format(company=settings.company_name) + RESPONSE_FORMAT
        try:
            raw_text = await self.backend.generate(prompt, ImageInput.from_data_url(image))
            return self._parse_analysis(extract_json(raw_text), raw_text)
        except Exception as exc:
            logger.error("Document analysis failed, using mock extraction: %s", exc)
            return mock_analysis(doc_type)

    def _parse_analysis(self, parsed: dict[str, Any], raw_text: str) -> DocumentAnalysis:
        fields = []
        for item in parsed.get("fields", []):
            try:
                confidence = int(float(item.get("confidence", 0)))
            except (TypeError, ValueError, OverflowError):
                confidence = 0
            fields.append(
                ExtractedField(
                    label=str(item["label"]),
                    value=str(item.get("value", NOT_PRESENT)),
                    confidence=max(0, min(100, confidence)),
                )
            )
        return DocumentAnalysis(
            document_type=str(parsed.get("documentType", "Unknown")),
            fields=fields,
            raw_text=raw_text,
            warnings=[str(w) for w in parsed.get("warnings", [])],
        )
