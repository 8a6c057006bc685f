from __future__ import annotations

from greenrecon.models.discrepancy import DiscrepancyType, Severity
from greenrecon.reconcilers.orders import reconcile_customer_orders

PRICE_LIST = [
    {"sku": "TOM-BEEF-25", "product_name": "Beefsteak Tomatoes 25lb", "unit_price": 24.50},
    {"sku": "CUC-MINI-12", "name": "Mini Cucumbers 12-pack", "price": 19.50},
]
INVENTORY = [
    {"sku": "TOM-BEEF-25", "available_qty": 200},
    {"sku": "CUC-MINI-12", "available": 40},
]


def _order(oid="ORD-2025-0001"):
    return {"order_id": oid, "customer_name": "Fresh Grocers Ltd"}


def _line(oid="ORD-2025-0001", sku="TOM-BEEF-25", qty=20, price=24.50):
    return {
        "order_id": oid,
        "sku": sku,
        "product_name": sku,
        "quantity": qty,
        "customer_price": price,
    }


def test_valid_order_is_clean():
    result = reconcile_customer_orders([_order()], [_line()], PRICE_LIST, INVENTORY)
    assert result.clean == ["ORD-2025-0001"]
    assert result.total_flagged == 0


def test_unknown_sku_skips_price_and_stock_checks():
    line = _line(sku="TOM-HEIR-2LB", qty=5000, price=1.0)
    result = reconcile_customer_orders([_order()], [line], PRICE_LIST, INVENTORY)
    [disc] = result.discrepancies
    assert disc.type is DiscrepancyType.SKU_MISMATCH
    assert disc.severity is Severity.HIGH
    assert disc.rule == "invalid_sku"
    assert result.clean == []


def test_price_mismatch_severity_by_impact():
    small = reconcile_customer_orders(
        [_order()], [_line(qty=10, price=22.00)], PRICE_LIST, INVENTORY
    )
    [disc] = small.discrepancies
    assert disc.rule == "pricing_mismatch"
    assert disc.difference == 25.0
    assert disc.severity is Severity.MEDIUM

    large = reconcile_customer_orders(
        [_order()], [_line(qty=30, price=22.00)], PRICE_LIST, INVENTORY
    )
    assert large.discrepancies[0].severity is Severity.HIGH


def test_overpaying_customer_is_medium_regardless_of_impact():
    result = reconcile_customer_orders(
        [_order()], [_line(qty=100, price=25.50)], PRICE_LIST, INVENTORY
    )
    [disc] = result.discrepancies
    assert disc.rule == "pricing_mismatch"
    assert disc.difference == -100.0
    assert disc.severity is Severity.MEDIUM


def test_price_within_tolerance_is_ignored():
    result = reconcile_customer_orders(
        [_order()], [_line(price=24.505)], PRICE_LIST, INVENTORY
    )
    assert result.discrepancies == []


def test_insufficient_stock():
    result = reconcile_customer_orders(
        [_order()], [_line(sku="CUC-MINI-12", qty=55, price=19.50)], PRICE_LIST, INVENTORY
    )
    [disc] = result.discrepancies
    assert disc.rule == "stock_unavailable"
    assert disc.difference == 15
    assert disc.actual == "40 available"


def test_external_order_issue_deduplicated_by_rule():
    issues = [
        {"order_id": "ORD-2025-0001", "issue_type": "stock_unavailable", "severity": "high"},
        {"order_id": "ORD-2025-0002", "issue_type": "duplicate_order", "severity": "medium"},
    ]
    result = reconcile_customer_orders(
        [_order(), _order("ORD-2025-0002")],
        [_line(sku="CUC-MINI-12", qty=55, price=19.50), _line("ORD-2025-0002")],
        PRICE_LIST,
        INVENTORY,
        external_issues=issues,
    )
    assert [(d.subject_id, d.rule) for d in result.discrepancies] == [
        ("ORD-2025-0001", "stock_unavailable"),
        ("ORD-2025-0002", "duplicate_order"),
    ]
    assert result.discrepancies[1].type is DiscrepancyType.EXTRA_SCAN
    assert result.clean == []
