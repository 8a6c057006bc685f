"""Registry of demo use cases and how each one is generated and reconciled."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from greenrecon.generators.base import Scenario
from greenrecon.generators.expenses import generate_expense_scenario
from greenrecon.generators.orders import generate_customer_order_scenario
from greenrecon.generators.quality import generate_quality_scenario
from greenrecon.generators.shipping import generate_shipping_scenario
from greenrecon.models.discrepancy import ReconciliationResult
from greenrecon.reconcilers.expenses import reconcile_expenses
from greenrecon.reconcilers.orders import reconcile_customer_orders
from greenrecon.reconcilers.quality import reconcile_quality
from greenrecon.reconcilers.shipping import reconcile_shipments

Tables = dict[str, list[dict[str, Any]]]


@dataclass
class OutputTemplate:
    id: str
    name: str
    file_type: str
    description: str


@dataclass
class UseCase:
    id: str
    name: str
    description: str
    source_tables: list[str]
    output_templates: list[OutputTemplate] = field(default_factory=list)
    generate: Callable[..., Scenario] | None = None
    reconcile: Callable[[Tables], ReconciliationResult] | None = None

    @property
    def reconcilable(self) -> bool:
        return self.generate is not None and self.reconcile is not None


_REGISTRY: dict[str, UseCase] = {}


def register_use_case(use_case: UseCase) -> None:
    _REGISTRY[use_case.id] = use_case


def get_use_case(use_case_id: str) -> UseCase | None:
    return _REGISTRY.get(use_case_id)


def all_use_cases() -> list[UseCase]:
    return list(_REGISTRY.values())


def _reconcile_shipping(tables: Tables) -> ReconciliationResult:
    return reconcile_shipments(
        tables.get("erp_orders", []),
        tables.get("barcode_scans", []),
        tables.get("received_shipments", []),
    )


def _reconcile_quality(tables: Tables) -> ReconciliationResult:
    return reconcile_quality(
        tables.get("receiving_log", []),
        tables.get("coa_records", []),
        tables.get("compliance_issues", []),
    )


def _reconcile_orders(tables: Tables) -> ReconciliationResult:
    return reconcile_customer_orders(
        tables.get("customer_orders", []),
        tables.get("order_line_items", []),
        tables.get("price_list", []),
        tables.get("inventory", []),
        tables.get("order_issues", []),
    )


def _reconcile_expenses(tables: Tables) -> ReconciliationResult:
    return reconcile_expenses(
        tables.get("expenses", []),
        tables.get("policy_limits", []),
        tables.get("expense_issues", []),
    )


def _report_templates(noun: str) -> list[OutputTemplate]:
    return [
        OutputTemplate(
            "reconciliation-report",
            "Reconciliation Report",
            "pdf",
            f"Summary of matched and flagged {noun}",
        ),
        OutputTemplate(
            "discrepancy-export",
            "Discrepancy Export",
            "csv",
            f"Flagged {noun} for follow-up",
        ),
        OutputTemplate(
            "reconciliation-export",
            "Reconciliation Export",
            "csv",
            "Raw data for further analysis",
        ),
    ]


register_use_case(
    UseCase(
        id="shipping",
        name="Shipping & Receiving",
        description="Reconcile shipments against barcode scans and delivery receipts",
        source_tables=["erp_orders", "barcode_scans", "received_shipments"],
        output_templates=_report_templates("shipments"),
        generate=generate_shipping_scenario,
        reconcile=_reconcile_shipping,
    )
)

register_use_case(
    UseCase(
        id="quality",
        name="Quality & Compliance",
        description="Match received materials to certificates of analysis (CanadaGAP)",
        source_tables=["receiving_log", "coa_records", "compliance_issues"],
        output_templates=_report_templates("materials"),
        generate=generate_quality_scenario,
        reconcile=_reconcile_quality,
    )
)

register_use_case(
    UseCase(
        id="customer_orders",
        name="Customer Orders",
        description="Validate customer POs against the price list and inventory",
        source_tables=[
            "customer_orders",
            "order_line_items",
            "price_list",
            "inventory",
            "order_issues",
        ],
        output_templates=_report_templates("orders"),
        generate=generate_customer_order_scenario,
        reconcile=_reconcile_orders,
    )
)

register_use_case(
    UseCase(
        id="expenses",
        name="Expense Reports",
        description="Check expense submissions against policy limits and receipts",
        source_tables=["expenses", "policy_limits", "expense_issues"],
        output_templates=_report_templates("expenses"),
        generate=generate_expense_scenario,
        reconcile=_reconcile_expenses,
    )
)

register_use_case(
    UseCase(
        id="incidents",
        name="Incident / Maintenance Intake",
        description="Process incident reports and route to appropriate teams",
        source_tables=["incidents", "incident_email_drafts"],
        output_templates=[
            OutputTemplate(
                "incident-summary", "Incident Summary", "pdf", "Overview of reported incidents"
            ),
            OutputTemplate(
                "safety-log", "Safety Log", "csv", "All incidents for safety tracking"
            ),
        ],
    )
)
