"""Shipment reconciler — expected shipments vs barcode scans vs receipts."""

from __future__ import annotations

from typing import Any

from greenrecon.models.base import load_records
from greenrecon.models.discrepancy import (
    Discrepancy,
    DiscrepancyType,
    ReconciliationResult,
    Severity,
)
from greenrecon.models.shipment import BarcodeScan, ExpectedShipment, ReceivedShipment
from greenrecon.reconcilers.base import build_result, round_half_up

GOOD_CONDITION = "Good condition"

# Percent of expected quantity; strictly greater-than.
HIGH_SHORTFALL_PCT = 10.0
MEDIUM_SHORTFALL_PCT = 5.0

QTY_CONFIDENCE = 95
RECEIVED_CONFIDENCE = 85


def quantity_severity(percentage: float) -> Severity:
    if percentage > HIGH_SHORTFALL_PCT:
        return Severity.HIGH
    if percentage > MEDIUM_SHORTFALL_PCT:
        return Severity.MEDIUM
    return Severity.LOW


def reconcile_shipments(
    expected: list[ExpectedShipment | dict[str, Any]],
    scanned: list[BarcodeScan | dict[str, Any]],
    received: list[ReceivedShipment | dict[str, Any]],
) -> ReconciliationResult:
    """Compare each expected shipment against its scan and its receipt."""
    orders = load_records(ExpectedShipment, expected)
    scans = {s.shipment_id: s for s in load_records(BarcodeScan, scanned)}
    receipts = {r.shipment_id: r for r in load_records(ReceivedShipment, received)}

    discrepancies: list[Discrepancy] = []
    for order in orders:
        discrepancies.extend(
            _check_shipment(order, scans.get(order.shipment_id), receipts.get(order.shipment_id))
        )

    return build_result([o.shipment_id for o in orders], discrepancies)


def _check_shipment(
    order: ExpectedShipment,
    scan: BarcodeScan | None,
    rcvd: ReceivedShipment | None,
) -> list[Discrepancy]:
    sid = order.shipment_id
    expected_qty = order.expected_qty

    if scan is None:
        return [
            Discrepancy(
                id=f"disc-{sid}-missing-scan",
                type=DiscrepancyType.MISSING_SCAN,
                severity=Severity.HIGH,
                subject_id=sid,
                field="barcode_scan",
                expected=f"{expected_qty} units",
                actual="No scan data",
                confidence=0,
                recommended_action="Locate shipment and scan barcodes",
                details=f"Shipment {sid} has no barcode scans on record",
                rule="missing_scan",
            )
        ]

    found: list[Discrepancy] = []
    scanned_qty = scan.qty_scanned
    received_qty = rcvd.received_qty if rcvd else 0

    if order.expected_sku != scan.sku:
        found.append(
            Discrepancy(
                id=f"disc-{sid}-sku",
                type=DiscrepancyType.SKU_MISMATCH,
                severity=Severity.CRITICAL,
                subject_id=sid,
                field="sku",
                expected=order.expected_sku,
                actual=scan.sku,
                confidence=100,
                recommended_action="Reject shipment - wrong product received",
                details=(
                    f"Expected {order.expected_sku}, but scanned {scan.sku}. "
                    "Wrong product delivered."
                ),
                rule="sku_mismatch",
            )
        )

    if expected_qty != scanned_qty:
        diff = expected_qty - scanned_qty
        if expected_qty:
            percentage = abs(diff / expected_qty * 100)
        else:
            percentage = 100.0
        label = "Shortage" if diff > 0 else "Overage"
        found.append(
            Discrepancy(
                id=f"disc-{sid}-qty",
                type=DiscrepancyType.QUANTITY_MISMATCH,
                severity=quantity_severity(percentage),
                subject_id=sid,
                field="quantity",
                expected=expected_qty,
                actual=scanned_qty,
                difference=diff,
                confidence=QTY_CONFIDENCE,
                recommended_action=(
                    "Approve adjusted invoice (short shipment)" if diff > 0
                    else "Investigate overage"
                ),
                details=(
                    f"Expected {expected_qty} units, scanned {scanned_qty}. "
                    f"{label} of {abs(diff)} units ({percentage:.1f}%)."
                ),
                rule="qty_mismatch",
            )
        )

    if scanned_qty != received_qty:
        found.append(
            Discrepancy(
                id=f"disc-{sid}-scan-vs-received",
                type=DiscrepancyType.QUANTITY_MISMATCH,
                severity=Severity.MEDIUM,
                subject_id=sid,
                field="received_qty",
                expected=scanned_qty,
                actual=received_qty,
                difference=scanned_qty - received_qty,
                confidence=RECEIVED_CONFIDENCE,
                recommended_action="Verify receiving count",
                details=(
                    f"Scanned {scanned_qty} units but received record shows "
                    f"{received_qty}. Potential receiving error."
                ),
                rule="scan_vs_received",
            )
        )

    if rcvd and rcvd.condition and rcvd.condition != GOOD_CONDITION:
        found.append(
            Discrepancy(
                id=f"disc-{sid}-condition",
                type=DiscrepancyType.CONDITION_ISSUE,
                severity=Severity.HIGH if "rejected" in rcvd.condition else Severity.MEDIUM,
                subject_id=sid,
                field="condition",
                expected=GOOD_CONDITION,
                actual=rcvd.condition,
                confidence=100,
                recommended_action="Review damage report and adjust invoice",
                details=rcvd.condition,
                rule="condition",
            )
        )

    return found


def shipment_agreement_confidence(expected: int, scanned: int, received: int) -> int:
    """Mean pairwise agreement of the three counts, 0-100."""

    def agreement(a: int, b: int) -> float:
        high = max(a, b)
        if high <= 0:
            return 100.0
        return min(a, b) / high * 100

    pairs = ((expected, scanned), (expected, received), (scanned, received))
    return round_half_up(sum(agreement(a, b) for a, b in pairs) / len(pairs))
