"""Synthetic customer-order scenario with price list and inventory snapshot."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date

from greenrecon.generators.base import (
    ErrorPlan,
    PlantedError,
    Scenario,
    add_days,
    make_rng,
    sequence_id,
)
from greenrecon.models.order import CustomerOrder, InventoryItem, OrderLine, PriceListItem
from greenrecon.reconcilers.orders import HIGH_PRICE_IMPACT

PRODUCTS = [
    ("TOM-BEEF-4LB", "Beefsteak Tomatoes (4lb clamshell)", 8.99),
    ("TOM-ROMA-2LB", "Roma Tomatoes (2lb bag)", 5.49),
    ("TOM-GRAPE-PNT", "Grape Tomatoes (pint)", 4.99),
    ("TOM-CHERRY-PNT", "Cherry Tomatoes (pint)", 4.99),
    ("CUC-ENG-EA", "English Cucumber (each)", 2.49),
    ("CUC-MINI-6PK", "Mini Cucumbers (6-pack)", 4.99),
    ("PEP-BELL-3PK", "Bell Peppers (3-pack)", 5.99),
    ("PEP-BELL-RED", "Red Bell Pepper (each)", 2.49),
    ("PEP-BELL-YEL", "Yellow Bell Pepper (each)", 2.49),
    ("PEP-BELL-ORG", "Orange Bell Pepper (each)", 2.49),
]

CUSTOMERS = [
    ("CUST-001", "Sobeys Western", "orders@sobeys.ca"),
    ("CUST-002", "Save-On-Foods", "produce@saveonfoods.com"),
    ("CUST-003", "Calgary Co-op", "purchasing@calgarycoop.com"),
    ("CUST-004", "Superstore Alberta", "vendor.orders@superstore.ca"),
    ("CUST-005", "Federated Co-op", "orders@fcl.ca"),
    ("CUST-006", "Sysco Calgary", "procurement@sysco.com"),
]

INVENTORY = {
    "TOM-BEEF-4LB": 450,
    "TOM-ROMA-2LB": 320,
    "TOM-GRAPE-PNT": 280,
    "TOM-CHERRY-PNT": 260,
    "CUC-ENG-EA": 520,
    "CUC-MINI-6PK": 180,
    "PEP-BELL-3PK": 150,
    "PEP-BELL-RED": 400,
    "PEP-BELL-YEL": 350,
    "PEP-BELL-ORG": 300,
}

# Off-catalogue SKUs customers still order from old price sheets.
DISCONTINUED = [
    ("TOM-HEIR-2LB", "Heirloom Tomatoes (2lb)", 7.49),
    ("LET-BUTTER-EA", "Butter Lettuce (each)", 2.99),
]

DEFAULT_PLAN: ErrorPlan = {1: "pricing_mismatch", 3: "stock_unavailable"}

OLD_PRICE_RATIO = 0.9


@dataclass
class CustomerOrderScenario(Scenario):
    TABLES = (
        ("customer_orders", "orders"),
        ("order_line_items", "line_items"),
        ("price_list", "price_list"),
        ("inventory", "inventory"),
    )

    orders: list[CustomerOrder] = field(default_factory=list)
    line_items: list[OrderLine] = field(default_factory=list)
    price_list: list[PriceListItem] = field(default_factory=list)
    inventory: list[InventoryItem] = field(default_factory=list)
    planted_errors: list[PlantedError] = field(default_factory=list)


def customer_po_number(customer_name: str, rng: random.Random) -> str:
    return f"{customer_name[:3].upper()}-PO-{rng.randint(10000, 99999)}"


def generate_customer_order_scenario(
    rng: random.Random | None = None,
    today: date | None = None,
    plan: ErrorPlan = DEFAULT_PLAN,
) -> CustomerOrderScenario:
    """Generate 5-7 orders of 2-5 distinct lines each.

    Errors are planted on the first line of the planned orders.
    """
    rng = make_rng(rng)
    today = today or date.today()
    base_date = add_days(today, -2)
    scenario = CustomerOrderScenario(
        price_list=[PriceListItem(sku, name, price) for sku, name, price in PRODUCTS],
        inventory=[InventoryItem(sku, name, INVENTORY.get(sku, 0)) for sku, name, _ in PRODUCTS],
    )

    for index in range(rng.randint(5, 7)):
        customer_id, customer_name, contact = rng.choice(CUSTOMERS)
        order_date = add_days(base_date, index)
        order_id = sequence_id("ORD", today.year, index + 1)
        error_type = plan.get(index)
        total = 0.0

        for line_index, (sku, name, price) in enumerate(rng.sample(PRODUCTS, rng.randint(2, 5))):
            quantity = rng.randint(10, 99)
            customer_price = price

            if line_index == 0 and error_type == "pricing_mismatch":
                customer_price = round(price * OLD_PRICE_RATIO, 2)
                impact = (price - customer_price) * quantity
                scenario.planted_errors.append(
                    PlantedError(
                        subject_id=order_id,
                        type="pricing_mismatch",
                        severity="high" if impact > HIGH_PRICE_IMPACT else "medium",
                        description=(
                            f"Customer {customer_name} expects ${customer_price:.2f} for "
                            f"{name}, but current price is ${price:.2f}. Price difference: "
                            f"${impact:.2f} on {quantity} units."
                        ),
                        recommended_action=(
                            "Contact customer to confirm pricing. Check if promotional "
                            "pricing or contract terms apply."
                        ),
                        sku=sku,
                    )
                )
            elif line_index == 0 and error_type == "stock_unavailable":
                available = INVENTORY.get(sku, 0)
                quantity = available + 50 + rng.randint(0, 99)
                scenario.planted_errors.append(
                    PlantedError(
                        subject_id=order_id,
                        type="stock_unavailable",
                        severity="high",
                        description=(
                            f"Insufficient inventory for {name}. Requested: {quantity}, "
                            f"Available: {available}. Shortage of {quantity - available} units."
                        ),
                        recommended_action=(
                            "Offer partial fulfillment or backorder. Contact customer to "
                            "discuss alternatives."
                        ),
                        sku=sku,
                    )
                )
            elif line_index == 0 and error_type == "invalid_sku":
                sku, name, price = rng.choice(DISCONTINUED)
                customer_price = price
                scenario.planted_errors.append(
                    PlantedError(
                        subject_id=order_id,
                        type="invalid_sku",
                        severity="high",
                        description=f"SKU {sku} ({name}) is not on the current price list.",
                        recommended_action=(
                            "Verify SKU with customer. May be discontinued or entered "
                            "incorrectly."
                        ),
                        sku=sku,
                    )
                )

            line_total = round(quantity * price, 2)
            total += line_total
            scenario.line_items.append(
                OrderLine(
                    order_id=order_id,
                    line_number=line_index + 1,
                    sku=sku,
                    product_name=name,
                    quantity=quantity,
                    unit_price=price,
                    customer_price=customer_price,
                    line_total=line_total,
                )
            )

        scenario.orders.append(
            CustomerOrder(
                order_id=order_id,
                customer_id=customer_id,
                customer_name=customer_name,
                customer_contact=contact,
                order_date=order_date.isoformat(),
                requested_delivery=add_days(order_date, rng.randint(3, 6)).isoformat(),
                status="issue" if error_type else "pending",
                po_number=customer_po_number(customer_name, rng),
                total_value=round(total, 2),
            )
        )

    return scenario
