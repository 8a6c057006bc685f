"""Quality/compliance reconciler — receiving log vs certificates of analysis."""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from greenrecon.models.base import load_records
from greenrecon.models.discrepancy import (
    Discrepancy,
    DiscrepancyType,
    ExternalIssue,
    ReconciliationResult,
    Severity,
)
from greenrecon.models.quality import CertificateOfAnalysis, ReceivingEntry
from greenrecon.reconcilers.base import (
    build_result,
    load_issues,
    merge_external_issues,
    parse_date,
)

MIN_SHELF_LIFE_WEEKS = 12

ISSUE_TYPES = {
    "missing_coa": DiscrepancyType.MISSING_DOCUMENT,
    "failed_test": DiscrepancyType.CONDITION_ISSUE,
    "short_shelf_life": DiscrepancyType.CONDITION_ISSUE,
    "expired_material": DiscrepancyType.CONDITION_ISSUE,
}


def reconcile_quality(
    receiving_log: list[ReceivingEntry | dict[str, Any]],
    coa_records: list[CertificateOfAnalysis | dict[str, Any]],
    external_issues: list[ExternalIssue | dict[str, Any]] | None = None,
    today: date | None = None,
) -> ReconciliationResult:
    """Check every received material for a passing, in-date certificate."""
    today = today or date.today()
    entries = load_records(ReceivingEntry, receiving_log)
    coa_by_receiving = {
        c.receiving_id: c for c in load_records(CertificateOfAnalysis, coa_records)
    }

    discrepancies: list[Discrepancy] = []
    for entry in entries:
        discrepancies.extend(
            _check_entry(entry, coa_by_receiving.get(entry.receiving_id), today)
        )

    subject_ids = [e.receiving_id for e in entries]
    discrepancies = merge_external_issues(
        discrepancies,
        load_issues(external_issues, id_key="receiving_id"),
        subject_ids,
        ISSUE_TYPES,
        DiscrepancyType.CONDITION_ISSUE,
    )
    return build_result(subject_ids, discrepancies)


def _check_entry(
    entry: ReceivingEntry, coa: CertificateOfAnalysis | None, today: date
) -> list[Discrepancy]:
    rid = entry.receiving_id
    material = f"{entry.material_name} (Lot: {entry.lot_number})"

    if coa is None or not coa.coa_received:
        return [
            Discrepancy(
                id=f"disc-{rid}-missing-coa",
                type=DiscrepancyType.MISSING_DOCUMENT,
                severity=Severity.CRITICAL,
                subject_id=rid,
                field="coa",
                expected="COA document",
                actual="Not received",
                confidence=100,
                recommended_action=(
                    "Contact supplier immediately to request COA. "
                    "Quarantine material until documentation received."
                ),
                details=(
                    f"No Certificate of Analysis received for {material} from "
                    f"{entry.supplier_name}. CanadaGAP Section 4.3.2 requires "
                    "documentation for all incoming materials."
                ),
                rule="missing_coa",
            )
        ]

    found: list[Discrepancy] = []

    for test in coa.test_results:
        if not test.failed():
            continue
        slug = re.sub(r"\s+", "-", test.test)
        found.append(
            Discrepancy(
                id=f"disc-{rid}-failed-{slug}",
                type=DiscrepancyType.CONDITION_ISSUE,
                severity=Severity.CRITICAL,
                subject_id=rid,
                field=test.test,
                expected=f"{test.min_spec} - {test.max_spec} {test.unit}".rstrip(),
                actual=f"{test.result} {test.unit}".rstrip(),
                confidence=95,
                recommended_action=(
                    "Reject material and return to supplier. Do not use in "
                    "production. Document rejection per CanadaGAP Section 4.3.1."
                ),
                details=(
                    f"{material} failed {test.test} test. Result: {test.result} "
                    f"{test.unit} (Spec: {test.min_spec}-{test.max_spec} {test.unit})."
                ),
                rule="failed_test",
            )
        )

    expiry = parse_date(coa.expiry_date)
    received = parse_date(entry.received_date)

    if expiry and received:
        weeks_remaining = (expiry - received).days // 7
        if weeks_remaining < MIN_SHELF_LIFE_WEEKS:
            found.append(
                Discrepancy(
                    id=f"disc-{rid}-shelf-life",
                    type=DiscrepancyType.CONDITION_ISSUE,
                    severity=Severity.HIGH,
                    subject_id=rid,
                    field="shelf_life",
                    expected=f">={MIN_SHELF_LIFE_WEEKS} weeks",
                    actual=f"{weeks_remaining} weeks",
                    difference=MIN_SHELF_LIFE_WEEKS - weeks_remaining,
                    confidence=100,
                    recommended_action=(
                        "Request replacement or credit from supplier. Use material "
                        "first if production schedule allows. CanadaGAP Section 4.5.1."
                    ),
                    details=(
                        f"{material} has only {weeks_remaining} weeks remaining shelf "
                        f"life. Policy requires minimum {MIN_SHELF_LIFE_WEEKS} weeks "
                        "at time of receipt."
                    ),
                    rule="short_shelf_life",
                )
            )

    if expiry and expiry < today:
        found.append(
            Discrepancy(
                id=f"disc-{rid}-expired",
                type=DiscrepancyType.CONDITION_ISSUE,
                severity=Severity.CRITICAL,
                subject_id=rid,
                field="expiry_date",
                expected="Not expired",
                actual=f"Expired {coa.expiry_date}",
                confidence=100,
                recommended_action=(
                    "Reject immediately. Material cannot be used. "
                    "Return to supplier for replacement."
                ),
                details=(
                    f"{material} is expired as of {coa.expiry_date}. "
                    "Expired materials cannot be used."
                ),
                rule="expired_material",
            )
        )

    return found
