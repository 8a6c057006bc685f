"""Expense reconciler — submissions vs policy limits, receipts and duplicates."""

from __future__ import annotations

from typing import Any

from greenrecon.models.base import load_records
from greenrecon.models.discrepancy import (
    Discrepancy,
    DiscrepancyType,
    ExternalIssue,
    ReconciliationResult,
    Severity,
)
from greenrecon.models.expense import ExpenseEntry, PolicyLimit
from greenrecon.reconcilers.base import (
    build_result,
    load_issues,
    merge_external_issues,
    money,
    parse_date,
)

RECEIPT_THRESHOLD = 25.0
DUPLICATE_WINDOW_DAYS = 7
HIGH_OVERAGE_RATIO = 0.5

ISSUE_TYPES = {
    "over_limit": DiscrepancyType.QUANTITY_MISMATCH,
    "missing_receipt": DiscrepancyType.MISSING_DOCUMENT,
    "duplicate": DiscrepancyType.EXTRA_SCAN,
}

Fingerprint = tuple[str, str, float, str]


def fingerprint(expense: ExpenseEntry) -> Fingerprint:
    return (
        expense.employee_id,
        expense.merchant,
        round(expense.amount, 2),
        expense.category,
    )


def reconcile_expenses(
    expenses: list[ExpenseEntry | dict[str, Any]],
    policy_limits: list[PolicyLimit | dict[str, Any]],
    external_issues: list[ExternalIssue | dict[str, Any]] | None = None,
) -> ReconciliationResult:
    """Flag over-limit, unreceipted and duplicate expense submissions."""
    entries = load_records(ExpenseEntry, expenses)
    limit_by_category = {
        p.category: p.limit_amount for p in load_records(PolicyLimit, policy_limits)
    }

    discrepancies: list[Discrepancy] = []
    latest: dict[Fingerprint, ExpenseEntry] = {}

    for expense in entries:
        discrepancies.extend(_check_policy(expense, limit_by_category.get(expense.category)))

        key = fingerprint(expense)
        previous = latest.get(key)
        if previous is not None and _within_window(previous, expense):
            discrepancies.append(_duplicate(expense, previous))
        else:
            latest[key] = expense

    subject_ids = [e.expense_id for e in entries]
    discrepancies = merge_external_issues(
        discrepancies,
        load_issues(external_issues, id_key="expense_id"),
        subject_ids,
        ISSUE_TYPES,
        DiscrepancyType.QUANTITY_MISMATCH,
        actual_text="Policy violation",
    )
    return build_result(subject_ids, discrepancies)


def _check_policy(expense: ExpenseEntry, limit: float | None) -> list[Discrepancy]:
    eid = expense.expense_id
    merchant = expense.merchant or "vendor"
    found: list[Discrepancy] = []

    if limit and expense.amount > limit:
        overage = expense.amount - limit
        found.append(
            Discrepancy(
                id=f"disc-{eid}-over-limit",
                type=DiscrepancyType.QUANTITY_MISMATCH,
                severity=Severity.HIGH if overage > limit * HIGH_OVERAGE_RATIO else Severity.MEDIUM,
                subject_id=eid,
                field="amount",
                expected=f"<={money(limit)}",
                actual=money(expense.amount),
                difference=round(overage, 2),
                confidence=100,
                recommended_action=(
                    "Request justification from employee. May require manager "
                    "override approval."
                ),
                details=(
                    f"{expense.employee_name}'s {expense.category} expense of "
                    f"{money(expense.amount)} at {merchant} exceeds policy limit of "
                    f"{money(limit)}. Overage: {money(overage)}."
                ),
                rule="over_limit",
            )
        )

    if not expense.receipt_attached and expense.amount > RECEIPT_THRESHOLD:
        found.append(
            Discrepancy(
                id=f"disc-{eid}-missing-receipt",
                type=DiscrepancyType.MISSING_DOCUMENT,
                severity=Severity.MEDIUM,
                subject_id=eid,
                field="receipt",
                expected="Receipt attached",
                actual="No receipt",
                confidence=100,
                recommended_action=(
                    "Request receipt from employee. If unavailable, require "
                    "signed expense declaration form."
                ),
                details=(
                    f"{expense.employee_name}'s {expense.category} expense of "
                    f"{money(expense.amount)} at {merchant} is missing receipt "
                    "documentation. Policy requires receipts for expenses over "
                    f"${RECEIPT_THRESHOLD:.0f}."
                ),
                rule="missing_receipt",
            )
        )

    return found


def _within_window(previous: ExpenseEntry, current: ExpenseEntry) -> bool:
    before = parse_date(previous.submission_date)
    after = parse_date(current.submission_date)
    if before is None or after is None:
        return False
    return abs((after - before).days) <= DUPLICATE_WINDOW_DAYS


def _duplicate(expense: ExpenseEntry, original: ExpenseEntry) -> Discrepancy:
    return Discrepancy(
        id=f"disc-{expense.expense_id}-duplicate",
        type=DiscrepancyType.EXTRA_SCAN,
        severity=Severity.HIGH,
        subject_id=expense.expense_id,
        field="duplicate",
        expected="Unique expense",
        actual=f"Matches {original.expense_id}",
        confidence=85,
        recommended_action=(
            "Verify with employee if this is a separate transaction. "
            "Reject if confirmed duplicate."
        ),
        details=(
            f"Potential duplicate: {expense.employee_name}'s expense at "
            f"{expense.merchant or 'vendor'} for {money(expense.amount)} appears "
            f"to match {original.expense_id} submitted on {original.submission_date}."
        ),
        rule="duplicate",
    )
