"""Material receiving and certificate-of-analysis models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from greenrecon.models.base import from_mapping


@dataclass
class ReceivingEntry:
    """A line in the materials receiving log."""

    receiving_id: str
    received_date: str = ""
    supplier_id: str = ""
    supplier_name: str = ""
    sku: str = ""
    material_name: str = ""
    lot_number: str = ""
    quantity: int = 0
    unit: str = ""
    po_number: str = ""
    receiver_name: str = ""
    notes: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReceivingEntry:
        return from_mapping(cls, data)


@dataclass
class TestResult:
    """One test parameter on a certificate, with its spec window."""

    __test__ = False

    test: str
    result: float | str = ""
    unit: str = ""
    min_spec: float | str = ""
    max_spec: float | str = ""
    status: str = "pass"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestResult:
        return from_mapping(cls, data)

    def failed(self) -> bool:
        """True when the lab marked it failed or the result is outside spec."""
        if str(self.status).lower() == "fail":
            return True
        try:
            value = float(self.result)
            low = float(self.min_spec)
            high = float(self.max_spec)
        except (TypeError, ValueError, OverflowError):
            return False
        return value < low or value > high


@dataclass
class CertificateOfAnalysis:
    """A supplier COA matched to a receiving entry."""

    coa_id: str
    receiving_id: str
    lot_number: str = ""
    supplier_name: str = ""
    material_name: str = ""
    manufacture_date: str = ""
    expiry_date: str = ""
    test_results: list[TestResult] = field(default_factory=list)
    overall_status: str = "pending_review"
    coa_received: bool = False
    shelf_life_weeks: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CertificateOfAnalysis:
        coa = from_mapping(cls, {k: v for k, v in data.items() if k != "test_results"})
        coa.test_results = [
            t if isinstance(t, TestResult) else TestResult.from_dict(t)
            for t in data.get("test_results") or []
        ]
        return coa
