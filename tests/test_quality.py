from __future__ import annotations

from datetime import date

from greenrecon.models.discrepancy import DiscrepancyType, Severity
from greenrecon.reconcilers.quality import reconcile_quality

TODAY = date(2025, 1, 20)


def _entry(rid="RCV-2025-0001", received="2025-01-15"):
    return {
        "receiving_id": rid,
        "received_date": received,
        "supplier_name": "Koppert Canada",
        "material_name": "Phytoseiulus persimilis",
        "lot_number": "KOP-2025-0101",
    }


def _coa(rid="RCV-2025-0001", expiry="2025-06-30", tests=None, received=True):
    return {
        "coa_id": f"COA-{rid}",
        "receiving_id": rid,
        "expiry_date": expiry,
        "coa_received": received,
        "test_results": tests
        if tests is not None
        else [{"test": "Viability", "result": 97, "unit": "%", "min_spec": 95, "max_spec": 100}],
    }


def test_in_spec_material_is_clean():
    result = reconcile_quality([_entry()], [_coa()], today=TODAY)
    assert result.clean == ["RCV-2025-0001"]
    assert result.discrepancies == []


def test_missing_coa_is_single_critical():
    # Short shelf life and a failed test would be reported if a COA existed.
    coa = _coa(
        expiry="2025-02-01",
        tests=[{"test": "pH", "result": 9.9, "min_spec": 5.5, "max_spec": 6.5}],
        received=False,
    )
    result = reconcile_quality([_entry()], [coa], today=TODAY)
    [disc] = result.discrepancies
    assert disc.type is DiscrepancyType.MISSING_DOCUMENT
    assert disc.severity is Severity.CRITICAL
    assert result.clean == []


def test_no_coa_row_is_missing_certificate():
    result = reconcile_quality([_entry()], [], today=TODAY)
    assert [d.rule for d in result.discrepancies] == ["missing_coa"]


def test_failed_test_is_critical():
    coa = _coa(tests=[{"test": "Total Nitrogen", "result": 4.1, "unit": "%", "min_spec": 18, "max_spec": 22}])
    result = reconcile_quality([_entry()], [coa], today=TODAY)
    [disc] = result.discrepancies
    assert disc.rule == "failed_test"
    assert disc.id == "disc-RCV-2025-0001-failed-Total-Nitrogen"
    assert disc.severity is Severity.CRITICAL


def test_lab_marked_fail_counts_even_without_numbers():
    coa = _coa(tests=[{"test": "Contamination", "result": "Detected", "status": "FAIL"}])
    result = reconcile_quality([_entry()], [coa], today=TODAY)
    assert [d.rule for d in result.discrepancies] == ["failed_test"]


def test_short_shelf_life_is_high():
    result = reconcile_quality([_entry()], [_coa(expiry="2025-03-12")], today=TODAY)
    [disc] = result.discrepancies
    assert disc.rule == "short_shelf_life"
    assert disc.severity is Severity.HIGH
    assert disc.actual == "8 weeks"
    assert disc.difference == 4


def test_twelve_weeks_is_enough():
    result = reconcile_quality([_entry()], [_coa(expiry="2025-04-09")], today=TODAY)
    assert result.discrepancies == []


def test_expired_material_is_critical():
    result = reconcile_quality(
        [_entry(received="2024-06-01")], [_coa(expiry="2025-01-01")], today=TODAY
    )
    rules = {d.rule for d in result.discrepancies}
    assert "expired_material" in rules


def test_unparseable_expiry_skips_date_checks():
    result = reconcile_quality([_entry()], [_coa(expiry="N/A")], today=TODAY)
    assert result.discrepancies == []


def test_external_issue_merged_once_and_unknown_dropped():
    issues = [
        {"receiving_id": "RCV-2025-0001", "issue_type": "missing_coa", "severity": "critical"},
        {"receiving_id": "RCV-2025-0002", "issue_type": "supplier_audit", "severity": "high",
         "details": "Supplier audit overdue"},
        {"receiving_id": "RCV-2025-0099", "issue_type": "failed_test", "severity": "high"},
    ]
    result = reconcile_quality(
        [_entry(), _entry(rid="RCV-2025-0002")],
        [_coa(received=False), _coa(rid="RCV-2025-0002")],
        external_issues=issues,
        today=TODAY,
    )
    assert [d.rule for d in result.discrepancies] == ["missing_coa", "supplier_audit"]
    merged = result.discrepancies[1]
    assert merged.confidence == 95
    assert merged.severity is Severity.HIGH
    assert merged.id == "db-issue-RCV-2025-0002-supplier_audit"
    assert result.clean == []
    assert result.avg_confidence == 98  # (100 + 95) / 2 rounded half up
