from __future__ import annotations

import asyncio

import pytest

from greenrecon.db.database import Database


def _run(tmp_path, scenario):
    async def main():
        db = Database(str(tmp_path / "test.db"))
        await db.connect()
        try:
            return await scenario(db)
        finally:
            await db.close()

    return asyncio.run(main())


def test_sessions_and_participants(tmp_path):
    async def scenario(db):
        await db.create_session("ABC234", "shipping")
        await db.add_participant("ABC234", "Maria")
        await db.add_participant("ABC234", "Sam")
        return await db.get_session("ABC234"), await db.get_session("ZZZ999"), \
            await db.list_participants("ABC234")

    session, missing, participants = _run(tmp_path, scenario)
    assert session["use_case"] == "shipping"
    assert missing is None
    assert [p["name"] for p in participants] == ["Maria", "Sam"]


def test_records_round_trip_per_table(tmp_path):
    async def scenario(db):
        await db.create_session("ABC234", "shipping")
        await db.insert_records("ABC234", "erp_orders", [
            {"shipment_id": "OUT-2025-0001", "expected_qty": 100},
            {"shipment_id": "OUT-2025-0002", "expected_qty": 50},
        ])
        await db.insert_records("ABC234", "barcode_scans", [{"shipment_id": "OUT-2025-0001"}])
        before = await db.get_tables("ABC234", ["erp_orders", "barcode_scans", "received_shipments"])
        await db.clear_table("ABC234", "barcode_scans")
        after = await db.list_records("ABC234", "barcode_scans")
        return before, after

    before, after = _run(tmp_path, scenario)
    assert [r["shipment_id"] for r in before["erp_orders"]] == ["OUT-2025-0001", "OUT-2025-0002"]
    assert before["erp_orders"][0]["expected_qty"] == 100
    assert before["received_shipments"] == []
    assert after == []


def test_decisions(tmp_path):
    async def scenario(db):
        await db.create_session("ABC234", "expenses")
        await db.add_decision("ABC234", "EXP-2025-0002", "reject", "duplicate", "Sam")
        await db.add_decision("ABC234", "EXP-2025-0001", "approve")
        return await db.list_decisions("ABC234")

    decisions = _run(tmp_path, scenario)
    assert [(d["item_id"], d["decision"]) for d in decisions] == [
        ("EXP-2025-0002", "reject"),
        ("EXP-2025-0001", "approve"),
    ]
    assert decisions[1]["comment"] is None


def test_reports_are_replaced_and_deleted(tmp_path):
    async def scenario(db):
        await db.create_session("ABC234", "shipping")
        await db.save_report("ABC234", {"title": "First"})
        await db.save_report("ABC234", {"title": "Second", "clean_ids": ["OUT-2025-0001"]})
        latest = await db.get_report("ABC234")
        await db.delete_report("ABC234")
        return latest, await db.get_report("ABC234")

    latest, gone = _run(tmp_path, scenario)
    assert latest == {"title": "Second", "clean_ids": ["OUT-2025-0001"]}
    assert gone is None


def test_unconnected_database_raises():
    with pytest.raises(RuntimeError):
        Database(":memory:").db
