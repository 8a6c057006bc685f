from __future__ import annotations

import random
from datetime import date

import pytest

from greenrecon.generators.base import sequence_id, slot_of
from greenrecon.generators.expenses import generate_expense_scenario
from greenrecon.generators.orders import DISCONTINUED, generate_customer_order_scenario
from greenrecon.generators.quality import generate_quality_scenario
from greenrecon.generators.shipping import (
    INBOUND_CATALOG,
    OUTBOUND_CATALOG,
    generate_shipping_scenario,
    wrong_variant,
)
from greenrecon.reconcilers.expenses import reconcile_expenses
from greenrecon.reconcilers.orders import reconcile_customer_orders
from greenrecon.reconcilers.quality import reconcile_quality
from greenrecon.reconcilers.shipping import reconcile_shipments

TODAY = date(2025, 1, 20)
SEEDS = range(12)


def _flagged(result) -> set[str]:
    return {d.subject_id for d in result.discrepancies}


def _planted(scenario) -> set[str]:
    return {e.subject_id for e in scenario.planted_errors}


def test_sequence_ids():
    assert sequence_id("OUT", 2025, 7) == "OUT-2025-0007"
    assert slot_of({1: "qty_shortage", 3: "sku_mismatch"}, "sku_mismatch") == 3
    assert slot_of({}, "sku_mismatch") is None


@pytest.mark.parametrize("seed", SEEDS)
def test_shipping_reconciler_finds_exactly_the_planted_errors(seed):
    scenario = generate_shipping_scenario(random.Random(seed), TODAY)
    tables = scenario.tables()
    result = reconcile_shipments(
        tables["erp_orders"], tables["barcode_scans"], tables["received_shipments"]
    )
    assert 5 <= result.total_processed <= 8
    assert _flagged(result) == _planted(scenario)
    assert [e.type for e in scenario.planted_errors] == ["qty_shortage", "sku_mismatch"]


@pytest.mark.parametrize("seed", SEEDS)
def test_planted_shortage_severity_matches_reconciler(seed):
    scenario = generate_shipping_scenario(random.Random(seed), TODAY)
    result = reconcile_shipments(scenario.orders, scenario.scans, scenario.received)
    planted = scenario.planted_errors[0]
    [qty] = [
        d for d in result.for_subject(planted.subject_id) if d.rule == "qty_mismatch"
    ]
    assert qty.severity.value == planted.severity


def test_shipping_ids_and_directions():
    scenario = generate_shipping_scenario(random.Random(3), TODAY)
    outbound = [o for o in scenario.orders if o.direction == "outbound"]
    assert outbound[0].shipment_id == "OUT-2025-0001"
    assert scenario.orders[-1].shipment_id.startswith("IN-2025-")
    assert scenario.orders[0].ship_date == "2025-01-21"


def test_empty_plan_generates_clean_shipments():
    scenario = generate_shipping_scenario(random.Random(1), TODAY, plan={})
    result = reconcile_shipments(scenario.orders, scenario.scans, scenario.received)
    assert result.discrepancies == []
    assert scenario.planted_errors == []


def test_wrong_variant_stays_in_catalog():
    rng = random.Random(0)
    for sku, _, _ in OUTBOUND_CATALOG:
        wrong = wrong_variant(sku, rng)
        assert wrong != sku
        assert wrong in {s for s, _, _ in OUTBOUND_CATALOG}
    for sku, _, _ in INBOUND_CATALOG:
        assert wrong_variant(sku, rng) in {s for s, _, _ in INBOUND_CATALOG}


@pytest.mark.parametrize("seed", SEEDS)
def test_quality_reconciler_finds_exactly_the_planted_errors(seed):
    scenario = generate_quality_scenario(random.Random(seed), TODAY)
    tables = scenario.tables()
    result = reconcile_quality(tables["receiving_log"], tables["coa_records"], today=TODAY)
    assert _flagged(result) == _planted(scenario)
    for planted in scenario.planted_errors:
        rules = {d.rule for d in result.for_subject(planted.subject_id)}
        assert planted.type in rules


@pytest.mark.parametrize("seed", SEEDS)
def test_order_reconciler_finds_exactly_the_planted_errors(seed):
    scenario = generate_customer_order_scenario(random.Random(seed), TODAY)
    tables = scenario.tables()
    result = reconcile_customer_orders(
        tables["customer_orders"],
        tables["order_line_items"],
        tables["price_list"],
        tables["inventory"],
    )
    assert _flagged(result) == _planted(scenario)


def test_invalid_sku_plan_uses_discontinued_product():
    scenario = generate_customer_order_scenario(
        random.Random(5), TODAY, plan={2: "invalid_sku"}
    )
    [planted] = scenario.planted_errors
    assert planted.type == "invalid_sku"
    assert planted.sku in {sku for sku, _, _ in DISCONTINUED}
    result = reconcile_customer_orders(
        scenario.orders, scenario.line_items, scenario.price_list, scenario.inventory
    )
    assert [d.rule for d in result.discrepancies] == ["invalid_sku"]


@pytest.mark.parametrize("seed", SEEDS)
def test_expense_reconciler_finds_exactly_the_planted_errors(seed):
    scenario = generate_expense_scenario(random.Random(seed), TODAY)
    tables = scenario.tables()
    result = reconcile_expenses(tables["expenses"], tables["policy_limits"])
    assert _flagged(result) == _planted(scenario)
    duplicate = scenario.planted_errors[-1]
    assert duplicate.type == "duplicate"
    assert duplicate.subject_id == scenario.expenses[-1].expense_id


def test_tables_are_plain_rows():
    scenario = generate_expense_scenario(random.Random(2), TODAY)
    tables = scenario.tables()
    assert set(tables) == {"expenses", "policy_limits"}
    assert all(isinstance(row, dict) for row in tables["expenses"])
