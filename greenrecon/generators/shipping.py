"""Synthetic shipping scenario: ERP orders, dock scans and delivery receipts."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from greenrecon.generators.base import (
    ErrorPlan,
    PlantedError,
    Scenario,
    add_days,
    make_rng,
    sequence_id,
)
from greenrecon.models.shipment import BarcodeScan, ExpectedShipment, ReceivedShipment
from greenrecon.reconcilers.shipping import GOOD_CONDITION

OUTBOUND_CATALOG = [
    ("PET-WAVE-606-PUR", "Wave Petunia Purple (606 pack)", 48),
    ("PET-WAVE-606-PINK", "Wave Petunia Pink (606 pack)", 48),
    ("PET-STVB-606-PINK", "Supertunia Vista Bubblegum Pink (606 pack)", 72),
    ("PET-STVB-606-PUR", "Supertunia Vista Bubblegum Purple (606 pack)", 72),
    ("GER-ZON-45-RED", 'Zonal Geranium Red (4.5" pot)', 24),
    ("GER-IVY-HB10-MIX", 'Ivy Geranium Mix (10" hanging basket)', 12),
    ("CAL-SBMG-1801-GRAPE", "Superbells Magic Grapefruit (1801 pack)", 36),
    ("TOM-CEL-1204", "Celebrity Tomato (1204 pack)", 18),
    ("BAS-SWT-804", "Sweet Basil (804 pack)", 60),
    ("PET-WAVE-HB10-PUR", 'Wave Petunia Purple (10" hanging basket)', 12),
]

INBOUND_CATALOG = [
    ("PLUG-288-PETWAVE", "Petunia Wave Plugs (288-cell tray)", 20),
    ("PLUG-288-TOMBF", "Tomato Big Beef Plugs (288-cell tray)", 15),
    ("SUNGRO-PROF-3CF", "Sun Gro Professional Mix (3 cu ft bag)", 150),
    ("JACK-201020-25LB", "Jack's 20-10-20 Fertilizer (25 lb bag)", 80),
    ("INS-606-225", '606 Insert Trays (2.25" deep)', 500),
]

CUSTOMERS = [
    "Home Depot Store #4521",
    "Lowe's Store #8847",
    "Menards Store #2214",
    "Ace Hardware #5523",
    "Green Thumb Garden Center",
    "Whole Foods Market",
    "Premium Landscapes Inc",
]

VENDORS = [
    "Ball Horticultural",
    "Sun Gro Horticulture",
    "JR Peters (Jacks)",
    "HC Companies",
    "Harris Seeds",
]

SCANNERS = ["Mike Chen", "Sarah Johnson", "Maria Rodriguez"]

DEFAULT_PLAN: ErrorPlan = {1: "qty_shortage", 3: "sku_mismatch"}

OUTBOUND_SHARE = 0.6
QTY_VARIATION = 10


@dataclass
class ShippingScenario(Scenario):
    TABLES = (
        ("erp_orders", "orders"),
        ("barcode_scans", "scans"),
        ("received_shipments", "received"),
    )

    orders: list[ExpectedShipment] = field(default_factory=list)
    scans: list[BarcodeScan] = field(default_factory=list)
    received: list[ReceivedShipment] = field(default_factory=list)
    planted_errors: list[PlantedError] = field(default_factory=list)


def _destination(customer: str) -> str:
    if "Depot" in customer:
        return "HD Distribution Center"
    if "Lowe" in customer:
        return "Lowes Regional DC"
    if "Menards" in customer:
        return "Menards DC"
    return customer


def _customer_receiver(customer: str) -> str:
    if "Depot" in customer or "Lowe" in customer:
        return customer.split(" ")[0] + " Receiving"
    return "Customer Receiving"


def _family(sku: str) -> str:
    return sku.rsplit("-", 1)[0]


def wrong_variant(sku: str, rng: random.Random) -> str:
    """A plausible wrong pick: a sibling variant of the same product family.

    Falls back to another product from the same catalog when the family has
    only one member.
    """
    catalog = INBOUND_CATALOG if any(s == sku for s, _, _ in INBOUND_CATALOG) else OUTBOUND_CATALOG
    siblings = [s for s, _, _ in catalog if s != sku and _family(s) == _family(sku)]
    if not siblings:
        siblings = [s for s, _, _ in catalog if s != sku]
    return rng.choice(siblings)


def generate_shipping_scenario(
    rng: random.Random | None = None,
    today: date | None = None,
    plan: ErrorPlan = DEFAULT_PLAN,
) -> ShippingScenario:
    """Generate 5-8 shipments that agree everywhere except the planned slots."""
    rng = make_rng(rng)
    today = today or date.today()
    scenario = ShippingScenario()

    count = rng.randint(5, 8)
    outbound = math.ceil(count * OUTBOUND_SHARE)

    for index in range(count):
        is_outbound = index < outbound
        sku, name, typical = rng.choice(OUTBOUND_CATALOG if is_outbound else INBOUND_CATALOG)
        qty = max(12 if is_outbound else 10, typical + rng.randint(-QTY_VARIATION, QTY_VARIATION))
        ship_date = add_days(today, index + 1)
        shipped = datetime.combine(ship_date, time())
        prefix = "OUT" if is_outbound else "IN"
        shipment_id = sequence_id(prefix, today.year, index + 1)

        if is_outbound:
            partner = rng.choice(CUSTOMERS)
            destination = _destination(partner)
            receiver = _customer_receiver(partner)
        else:
            partner = rng.choice(VENDORS)
            destination = "BMG " + ("Greenhouse" if "PLUG" in sku else "Supply Shed")
            receiver = "BMG Receiving"

        scenario.orders.append(
            ExpectedShipment(
                shipment_id=shipment_id,
                expected_qty=qty,
                expected_sku=sku,
                vendor=partner,
                ship_date=ship_date.isoformat(),
                destination=destination,
                notes=name,
                direction="outbound" if is_outbound else "inbound",
            )
        )
        scenario.scans.append(
            BarcodeScan(
                shipment_id=shipment_id,
                qty_scanned=qty,
                sku=sku,
                scanned_by=rng.choice(SCANNERS),
                scanned_at=(shipped + timedelta(hours=10)).isoformat(),
            )
        )
        scenario.received.append(
            ReceivedShipment(
                shipment_id=shipment_id,
                received_qty=qty,
                condition=GOOD_CONDITION,
                receiver_name=receiver,
                received_at=(shipped + timedelta(hours=14)).isoformat(),
                reconciled=True,
            )
        )

    for slot, error_type in sorted(plan.items()):
        if slot >= count:
            continue
        if error_type == "qty_shortage":
            scenario.planted_errors.append(_plant_shortage(scenario, slot, rng))
        elif error_type == "sku_mismatch":
            scenario.planted_errors.append(_plant_sku_mismatch(scenario, slot, rng))

    return scenario


def _plant_shortage(scenario: ShippingScenario, slot: int, rng: random.Random) -> PlantedError:
    order = scenario.orders[slot]
    shortage = math.ceil(order.expected_qty * rng.uniform(0.10, 0.25))
    actual = order.expected_qty - shortage

    scenario.scans[slot].qty_scanned = actual
    receipt = scenario.received[slot]
    receipt.received_qty = actual
    receipt.condition = f"{shortage} units missing from delivery"
    receipt.reconciled = False

    return PlantedError(
        subject_id=order.shipment_id,
        type="qty_shortage",
        severity="high" if shortage / order.expected_qty * 100 > 10 else "medium",
        description=f"Shortage: Expected {order.expected_qty}, received {actual}",
        recommended_action="Approve adjusted invoice (short shipment)",
        sku=order.expected_sku,
    )


def _plant_sku_mismatch(scenario: ShippingScenario, slot: int, rng: random.Random) -> PlantedError:
    order = scenario.orders[slot]
    wrong = wrong_variant(order.expected_sku, rng)

    scenario.scans[slot].sku = wrong
    receipt = scenario.received[slot]
    receipt.condition = f"Received {wrong} instead of {order.expected_sku} - variant mix-up"
    receipt.reconciled = False

    return PlantedError(
        subject_id=order.shipment_id,
        type="sku_mismatch",
        severity="critical",
        description=f"Wrong variant: Expected {order.expected_sku}, received {wrong}",
        recommended_action="Reject shipment - wrong product received",
        sku=order.expected_sku,
    )
