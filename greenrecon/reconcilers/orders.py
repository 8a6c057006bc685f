"""Customer order reconciler — order lines vs price list and inventory."""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from greenrecon.models.base import load_records
from greenrecon.models.discrepancy import (
    Discrepancy,
    DiscrepancyType,
    ExternalIssue,
    ReconciliationResult,
    Severity,
)
from greenrecon.models.order import CustomerOrder, InventoryItem, OrderLine, PriceListItem
from greenrecon.reconcilers.base import (
    build_result,
    load_issues,
    merge_external_issues,
    money,
)

PRICE_TOLERANCE = 0.01
HIGH_PRICE_IMPACT = 50.0

ISSUE_TYPES = {
    "pricing_mismatch": DiscrepancyType.QUANTITY_MISMATCH,
    "stock_unavailable": DiscrepancyType.QUANTITY_MISMATCH,
    "invalid_sku": DiscrepancyType.SKU_MISMATCH,
    "duplicate_order": DiscrepancyType.EXTRA_SCAN,
}


def reconcile_customer_orders(
    orders: list[CustomerOrder | dict[str, Any]],
    line_items: list[OrderLine | dict[str, Any]],
    price_list: list[PriceListItem | dict[str, Any]],
    inventory: list[InventoryItem | dict[str, Any]],
    external_issues: list[ExternalIssue | dict[str, Any]] | None = None,
) -> ReconciliationResult:
    """Validate each order line's SKU, price and stock availability."""
    order_records = load_records(CustomerOrder, orders)
    price_by_sku = {p.sku: p.unit_price for p in load_records(PriceListItem, price_list)}
    stock_by_sku = {i.sku: i.available_qty for i in load_records(InventoryItem, inventory)}

    lines_by_order: dict[str, list[OrderLine]] = defaultdict(list)
    for line in load_records(OrderLine, line_items):
        lines_by_order[line.order_id].append(line)

    discrepancies: list[Discrepancy] = []
    for order in order_records:
        for line in lines_by_order.get(order.order_id, []):
            discrepancies.extend(_check_line(order, line, price_by_sku, stock_by_sku))

    subject_ids = [o.order_id for o in order_records]
    discrepancies = merge_external_issues(
        discrepancies,
        load_issues(external_issues, id_key="order_id"),
        subject_ids,
        ISSUE_TYPES,
        DiscrepancyType.QUANTITY_MISMATCH,
        expected_text="No issues",
        actual_text="Issue detected",
    )
    return build_result(subject_ids, discrepancies)


def _check_line(
    order: CustomerOrder,
    line: OrderLine,
    price_by_sku: dict[str, float],
    stock_by_sku: dict[str, int],
) -> list[Discrepancy]:
    oid = order.order_id
    current_price = price_by_sku.get(line.sku)

    if current_price is None:
        return [
            Discrepancy(
                id=f"disc-{oid}-invalid-sku-{line.sku}",
                type=DiscrepancyType.SKU_MISMATCH,
                severity=Severity.HIGH,
                subject_id=oid,
                field="sku",
                expected="Valid SKU",
                actual=line.sku,
                confidence=100,
                recommended_action=(
                    "Verify SKU with customer. May be discontinued or entered incorrectly."
                ),
                details=(
                    f"SKU {line.sku} not found in current price list for order "
                    f"{oid} from {order.customer_name}."
                ),
                rule="invalid_sku",
            )
        ]

    found: list[Discrepancy] = []

    if line.customer_price and abs(line.customer_price - current_price) > PRICE_TOLERANCE:
        price_diff = (current_price - line.customer_price) * line.quantity
        found.append(
            Discrepancy(
                id=f"disc-{oid}-price-{line.sku}",
                type=DiscrepancyType.QUANTITY_MISMATCH,
                severity=Severity.HIGH if price_diff > HIGH_PRICE_IMPACT else Severity.MEDIUM,
                subject_id=oid,
                field="unit_price",
                expected=money(current_price),
                actual=money(line.customer_price),
                difference=round(price_diff, 2),
                confidence=100,
                recommended_action=(
                    "Contact customer to confirm pricing. Check for contract "
                    "pricing or promotional terms."
                ),
                details=(
                    f"Price mismatch for {line.product_name}: Customer expects "
                    f"{money(line.customer_price)}, current price is "
                    f"{money(current_price)}. Difference: {money(price_diff)} on "
                    f"{line.quantity} units."
                ),
                rule="pricing_mismatch",
            )
        )

    available = stock_by_sku.get(line.sku, 0)
    if line.quantity > available:
        shortfall = line.quantity - available
        found.append(
            Discrepancy(
                id=f"disc-{oid}-stock-{line.sku}",
                type=DiscrepancyType.QUANTITY_MISMATCH,
                severity=Severity.HIGH,
                subject_id=oid,
                field="quantity",
                expected=f"{line.quantity} requested",
                actual=f"{available} available",
                difference=shortfall,
                confidence=95,
                recommended_action=(
                    "Offer partial fulfillment or backorder. Contact customer "
                    "to discuss alternatives."
                ),
                details=(
                    f"Insufficient inventory for {line.product_name}. Requested: "
                    f"{line.quantity}, Available: {available}. Shortage of "
                    f"{shortfall} units."
                ),
                rule="stock_unavailable",
            )
        )

    return found
