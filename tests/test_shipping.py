from __future__ import annotations

import pytest

from greenrecon.models.discrepancy import DiscrepancyType, Severity
from greenrecon.reconcilers.shipping import (
    quantity_severity,
    reconcile_shipments,
    shipment_agreement_confidence,
)


def _order(sid="OUT-2025-0001", qty=100, sku="TOM-BEEF-25"):
    return {"shipment_id": sid, "expected_qty": qty, "expected_sku": sku, "vendor": "Loblaws"}


def _scan(sid="OUT-2025-0001", qty=100, sku="TOM-BEEF-25"):
    return {"shipment_id": sid, "qty_scanned": qty, "sku": sku, "scanned_by": "Maria G."}


def _received(sid="OUT-2025-0001", qty=100, condition="Good condition"):
    return {"shipment_id": sid, "received_qty": qty, "condition": condition}


def test_all_sources_agree_is_clean():
    result = reconcile_shipments([_order()], [_scan()], [_received()])
    assert result.clean == ["OUT-2025-0001"]
    assert result.discrepancies == []
    assert result.total_processed == 1
    assert result.avg_confidence == 100


def test_missing_scan_only_reports_missing_scan():
    result = reconcile_shipments([_order()], [], [_received(qty=80)])
    assert len(result.discrepancies) == 1
    disc = result.discrepancies[0]
    assert disc.type is DiscrepancyType.MISSING_SCAN
    assert disc.severity is Severity.HIGH
    assert disc.confidence == 0
    assert result.clean == []


def test_ten_percent_shortfall_is_medium():
    result = reconcile_shipments([_order(qty=100)], [_scan(qty=90)], [_received(qty=90)])
    qty = [d for d in result.discrepancies if d.rule == "qty_mismatch"]
    assert len(qty) == 1
    assert qty[0].severity is Severity.MEDIUM
    assert qty[0].difference == 10


def test_just_over_ten_percent_shortfall_is_high():
    assert quantity_severity(10.0) is Severity.MEDIUM
    assert quantity_severity(10.01) is Severity.HIGH
    result = reconcile_shipments(
        [_order(qty=10000)], [_scan(qty=8999)], [_received(qty=8999)]
    )
    qty = [d for d in result.discrepancies if d.rule == "qty_mismatch"]
    assert qty[0].severity is Severity.HIGH


def test_small_shortfall_is_low():
    assert quantity_severity(5.0) is Severity.LOW
    assert quantity_severity(7.5) is Severity.MEDIUM


def test_sku_mismatch_is_critical():
    result = reconcile_shipments(
        [_order()], [_scan(sku="TOM-ROMA-25")], [_received()]
    )
    assert [d.type for d in result.discrepancies] == [DiscrepancyType.SKU_MISMATCH]
    assert result.discrepancies[0].severity is Severity.CRITICAL
    assert result.discrepancies[0].confidence == 100


def test_scan_vs_received_and_condition():
    result = reconcile_shipments(
        [_order()], [_scan()], [_received(qty=95, condition="5 units missing from delivery")]
    )
    rules = {d.rule: d for d in result.discrepancies}
    assert set(rules) == {"scan_vs_received", "condition"}
    assert rules["scan_vs_received"].severity is Severity.MEDIUM
    assert rules["condition"].severity is Severity.MEDIUM
    assert result.avg_confidence == 93  # (85 + 100) / 2 rounded half up


def test_rejected_condition_is_high():
    result = reconcile_shipments(
        [_order()], [_scan()], [_received(condition="Pallet rejected - crushed")]
    )
    assert result.discrepancies[0].severity is Severity.HIGH


def test_missing_receipt_counts_as_zero_received():
    result = reconcile_shipments([_order()], [_scan()], [])
    [disc] = result.discrepancies
    assert disc.rule == "scan_vs_received"
    assert disc.actual == 0


def test_overage_is_reported():
    result = reconcile_shipments([_order(qty=100)], [_scan(qty=103)], [_received(qty=103)])
    [disc] = result.discrepancies
    assert disc.difference == -3
    assert disc.recommended_action == "Investigate overage"
    assert disc.severity is Severity.LOW


def test_agreement_confidence():
    assert shipment_agreement_confidence(100, 100, 100) == 100
    assert shipment_agreement_confidence(0, 0, 0) == 100
    # (90 + 90 + 100) / 3
    assert shipment_agreement_confidence(100, 90, 90) == 93


@pytest.mark.parametrize("bad", [float("inf"), float("-inf"), "1e400", 10**400, "lots", float("nan")])
def test_unusable_quantities_load_as_zero(bad):
    result = reconcile_shipments(
        [_order(qty=bad)], [_scan(qty=bad)], [_received(qty=bad)]
    )
    assert result.discrepancies == []
    assert result.clean == ["OUT-2025-0001"]

    short = reconcile_shipments([_order(qty=bad)], [_scan(qty=40)], [_received(qty=40)])
    [disc] = short.discrepancies
    assert disc.expected == 0
    assert disc.difference == -40
