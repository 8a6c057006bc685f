"""Synthetic expense scenario with the policy limits it is judged against."""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from datetime import date

from greenrecon.generators.base import (
    ErrorPlan,
    PlantedError,
    Scenario,
    add_days,
    make_rng,
    sequence_id,
    slot_of,
)
from greenrecon.models.expense import ExpenseEntry, PolicyLimit
from greenrecon.reconcilers.expenses import HIGH_OVERAGE_RATIO, RECEIPT_THRESHOLD

EXPENSE_CATEGORIES = {
    "meals": (75.0, "Business meals and entertainment"),
    "travel": (500.0, "Transportation and lodging"),
    "supplies": (200.0, "Office and operational supplies"),
    "equipment": (1000.0, "Tools and equipment (requires pre-approval)"),
    "fuel": (150.0, "Vehicle fuel and maintenance"),
    "training": (300.0, "Professional development"),
    "other": (100.0, "Miscellaneous expenses"),
}

SUBMITTERS = [
    ("BM-1003", "M. Santos", "Packhouse", "L. Morgan"),
    ("BM-1007", "L. Martinez", "Logistics", "R. Gomez"),
    ("BM-1009", "N. Brooks", "Operations", "R. Gomez"),
    ("BM-1012", "P. Singh", "Maintenance", "J. Rivera"),
    ("BM-1013", "G. Hall", "Finance", "A. Mercer"),
]

MERCHANTS = {
    "meals": ["Tim Hortons", "Subway", "Boston Pizza", "McDonald's", "Earls Kitchen"],
    "travel": ["WestJet", "Air Canada", "Holiday Inn", "Enterprise Rent-A-Car", "Uber"],
    "supplies": ["Staples", "Amazon", "Home Depot", "Canadian Tire", "Uline"],
    "equipment": ["Home Depot", "Princess Auto", "Fastenal", "Grainger", "Amazon"],
    "fuel": ["Shell", "Petro-Canada", "Esso", "Co-op Gas", "Husky"],
    "training": ["Udemy", "CanadaGAP Training", "Safety First Inc", "LinkedIn Learning"],
    "other": ["Various", "Miscellaneous"],
}

DESCRIPTIONS = {
    "meals": ["Team lunch meeting", "Client dinner", "Working lunch", "Vendor meeting"],
    "travel": ["Conference travel", "Customer site visit", "Training travel", "Supplier meeting"],
    "supplies": ["Office supplies", "Packaging materials", "Cleaning supplies", "Safety equipment"],
    "equipment": ["Tool replacement", "Equipment repair parts", "New equipment purchase"],
    "fuel": ["Delivery vehicle fuel", "Fleet vehicle gas", "Mileage reimbursement"],
    "training": ["Safety certification", "Online course", "Industry conference"],
    "other": ["Miscellaneous expense", "Emergency purchase"],
}

DEFAULT_PLAN: ErrorPlan = {1: "over_limit", 3: "missing_receipt", 5: "duplicate"}

# The duplicate is a resubmission of this slot's expense.
DUPLICATE_SOURCE_SLOT = 1
DUPLICATE_DELAY_DAYS = 2


@dataclass
class ExpenseScenario(Scenario):
    TABLES = (
        ("expenses", "expenses"),
        ("policy_limits", "policy_limits"),
    )

    expenses: list[ExpenseEntry] = field(default_factory=list)
    policy_limits: list[PolicyLimit] = field(default_factory=list)
    planted_errors: list[PlantedError] = field(default_factory=list)


def policy_limits() -> list[PolicyLimit]:
    return [
        PolicyLimit(category, limit, description)
        for category, (limit, description) in EXPENSE_CATEGORIES.items()
    ]


def generate_expense_scenario(
    rng: random.Random | None = None,
    today: date | None = None,
    plan: ErrorPlan = DEFAULT_PLAN,
) -> ExpenseScenario:
    """Generate 6-8 in-policy expenses, then plant the errors in ``plan``.

    A planned ``duplicate`` appends a copy of the slot-1 expense resubmitted
    two days later, provided the generated list reaches the duplicate's slot.
    """
    rng = make_rng(rng)
    today = today or date.today()
    base_date = add_days(today, -7)
    scenario = ExpenseScenario(policy_limits=policy_limits())
    count = rng.randint(6, 8)

    for index in range(count):
        employee_id, employee_name, department, approver = rng.choice(SUBMITTERS)
        category = rng.choice(list(EXPENSE_CATEGORIES))
        limit = EXPENSE_CATEGORIES[category][0]
        merchant = rng.choice(MERCHANTS[category])
        expense_id = sequence_id("EXP", today.year, index + 1)
        error_type = plan.get(index)

        amount = round(limit * rng.uniform(0.3, 0.8), 2)
        receipt_attached = True
        status = "pending"

        if error_type == "over_limit":
            amount = round(limit * rng.uniform(1.3, 1.8), 2)
            status = "flagged"
            overage = amount - limit
            scenario.planted_errors.append(
                PlantedError(
                    subject_id=expense_id,
                    type="over_limit",
                    severity="high" if overage > limit * HIGH_OVERAGE_RATIO else "medium",
                    description=(
                        f"{employee_name}'s {category} expense of ${amount:.2f} exceeds "
                        f"policy limit of ${limit:.0f}. Overage: ${overage:.2f}."
                    ),
                    recommended_action=(
                        "Request justification from employee. May require manager "
                        "override approval."
                    ),
                )
            )
        elif error_type == "missing_receipt":
            amount = max(amount, RECEIPT_THRESHOLD + 5)
            receipt_attached = False
            status = "flagged"
            scenario.planted_errors.append(
                PlantedError(
                    subject_id=expense_id,
                    type="missing_receipt",
                    severity="medium",
                    description=(
                        f"{employee_name}'s {category} expense of ${amount:.2f} at "
                        f"{merchant} is missing receipt documentation. Policy requires "
                        f"receipts for expenses over ${RECEIPT_THRESHOLD:.0f}."
                    ),
                    recommended_action=(
                        "Request receipt from employee. If unavailable, require signed "
                        "expense declaration form."
                    ),
                )
            )

        scenario.expenses.append(
            ExpenseEntry(
                expense_id=expense_id,
                employee_id=employee_id,
                employee_name=employee_name,
                department=department,
                approver=approver,
                submission_date=add_days(base_date, index).isoformat(),
                category=category,
                merchant=merchant,
                description=rng.choice(DESCRIPTIONS[category]),
                amount=amount,
                receipt_attached=receipt_attached,
                status=status,
            )
        )

    duplicate_slot = slot_of(plan, "duplicate")
    if duplicate_slot is not None and duplicate_slot < count and DUPLICATE_SOURCE_SLOT < count:
        scenario.planted_errors.append(_append_duplicate(scenario, today.year))

    return scenario


def _append_duplicate(scenario: ExpenseScenario, year: int) -> PlantedError:
    original = scenario.expenses[DUPLICATE_SOURCE_SLOT]
    duplicate = replace(
        original,
        expense_id=sequence_id("EXP", year, len(scenario.expenses) + 1),
        submission_date=add_days(
            date.fromisoformat(original.submission_date), DUPLICATE_DELAY_DAYS
        ).isoformat(),
        status="flagged",
    )
    scenario.expenses.append(duplicate)
    return PlantedError(
        subject_id=duplicate.expense_id,
        type="duplicate",
        severity="high",
        description=(
            f"Potential duplicate: {original.employee_name}'s expense at "
            f"{original.merchant} for ${original.amount:.2f} appears to match "
            f"{original.expense_id} submitted on {original.submission_date}."
        ),
        recommended_action=(
            "Verify with employee if this is a separate transaction. Reject if "
            "confirmed duplicate."
        ),
    )
