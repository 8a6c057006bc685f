from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import greenrecon.main as main_mod
from greenrecon.db.database import Database


class FakeBackend:
    name = "Fake"

    def __init__(self, reply: str):
        self.reply = reply

    async def generate(self, prompt, image=None):
        return self.reply


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(main_mod, "db", Database(str(tmp_path / "api.db")))
    monkeypatch.setattr(main_mod, "ai_backend", None)
    with TestClient(main_mod.app) as test_client:
        yield test_client


def _session(client, use_case="shipping") -> str:
    r = client.post("/api/sessions", json={"use_case": use_case})
    assert r.status_code == 200
    return r.json()["code"]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "ai": None}


def test_list_use_cases(client):
    r = client.get("/api/use-cases")
    by_id = {uc["id"]: uc for uc in r.json()}
    assert by_id["shipping"]["reconcilable"] is True
    assert by_id["incidents"]["reconcilable"] is False
    assert by_id["quality"]["output_templates"][0]["file_type"] == "pdf"


def test_unknown_use_case_and_sessions(client):
    assert client.post("/api/sessions", json={"use_case": "payroll"}).status_code == 404
    assert client.post("/api/sessions/NOPE/reconcile").status_code == 400
    assert client.post("/api/sessions/ABC234/reconcile").status_code == 404


def test_generate_then_reconcile_finds_planted_errors(client):
    code = _session(client)
    r = client.post(f"/api/sessions/{code}/generate", json={"seed": 4})
    assert r.status_code == 200
    body = r.json()
    assert set(body["tables"]) == {"erp_orders", "barcode_scans", "received_shipments"}
    planted = {e["subject_id"] for e in body["planted_errors"]}

    result = client.post(f"/api/sessions/{code.lower()}/reconcile").json()
    assert {d["subject_id"] for d in result["discrepancies"]} == planted
    assert result["total_processed"] == body["tables"]["erp_orders"]


def test_live_records_with_transform(client):
    code = _session(client)
    r = client.post(
        f"/api/sessions/{code}/records/erp_orders",
        json={"rows": [{"shipment_id": "IN-2025-0001", "expected_qty": 40,
                        "expected_sku": "NSP-445", "ship_date": "1/6/25"}],
              "transform": True},
    )
    assert r.status_code == 200
    assert r.json()["inserted"] == 1
    assert {t["type"] for t in r.json()["transformations"]} == {"sku_mapping", "date_format"}

    rows = client.get(f"/api/sessions/{code}/records/erp_orders").json()
    assert rows[0]["expected_sku"] == "CTN-1LB"
    assert rows[0]["ship_date"] == "2025-01-06"

    result = client.post(f"/api/sessions/{code}/reconcile").json()
    assert [d["type"] for d in result["discrepancies"]] == ["missing_scan"]


def test_records_for_foreign_table_rejected(client):
    code = _session(client)
    r = client.post(f"/api/sessions/{code}/records/expenses", json={"rows": []})
    assert r.status_code == 400


def test_join_decide_report_and_export(client):
    code = _session(client, "expenses")
    assert client.post(f"/api/sessions/{code}/join", json={"name": "Maria"}).status_code == 200
    client.post(f"/api/sessions/{code}/generate", json={"seed": 2})

    r = client.post(
        f"/api/sessions/{code}/decisions",
        json={"item_id": "EXP-2025-0002", "decision": "reject", "comment": "over limit"},
    )
    assert r.status_code == 200
    assert client.get(f"/api/sessions/{code}/decisions").json()[0]["decision"] == "reject"

    report = client.post(f"/api/sessions/{code}/report").json()
    assert report["title"] == "Expense Policy Review Report"
    assert report["generated_by"] == "fallback"

    csv_response = client.get(f"/api/sessions/{code}/export/csv")
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert csv_response.text.startswith("# Reconciliation Report: Expense Policy Review Report")
    assert client.get(f"/api/sessions/{code}/export/csv?kind=raw").status_code == 400

    pdf = client.post(
        f"/api/sessions/{code}/export/pdf",
        json={"challenge_winners": [{"name": "Maria", "score": 50}], "time_saved_minutes": 30},
    )
    assert pdf.status_code == 200
    assert pdf.content.startswith(b"%PDF")


def test_escalation_email(client):
    code = _session(client)
    client.post(f"/api/sessions/{code}/generate", json={"seed": 1})
    result = client.post(f"/api/sessions/{code}/reconcile").json()
    target = result["discrepancies"][0]["subject_id"]

    draft = client.post(
        f"/api/sessions/{code}/escalation-email", json={"discrepancy_id": target}
    ).json()
    assert draft["subject"].startswith("URGENT: ")
    assert target in draft["subject"]
    missing = client.post(
        f"/api/sessions/{code}/escalation-email", json={"discrepancy_id": "OUT-1999-0001"}
    )
    assert missing.status_code == 404


def test_incident_session_cannot_reconcile(client):
    code = _session(client, "incidents")
    assert client.post(f"/api/sessions/{code}/reconcile").status_code == 400
    assert client.post(f"/api/sessions/{code}/generate", json={}).status_code == 400


def test_document_and_incident_endpoints(client):
    r = client.post(
        "/api/documents/analyze",
        json={"image": "AAAA", "document_type": "receipt", "required_fields": ["Total"]},
    )
    assert r.json()["analysis"]["document_type"] == "Expense Receipt"
    assert r.json()["validation"]["valid"] is True

    triage = client.post("/api/incidents/triage", json={"image": "AAAA"}).json()
    assert triage["routing"]["destination"] in {"escalation", "review", "log_only"}

    incident = {
        "id": "INC-001",
        "incident_type": "Pest Infestation",
        "severity": 5,
        "location": "Zone 2, Row 8",
        "description": "Aphids",
        "reported_by": "R. Patel",
        "reported_at": "2025-01-24T09:12:00",
    }
    drafts = client.post("/api/incidents/emails", json=incident).json()
    assert len(drafts) == 2

    summary = client.post("/api/incidents/summary-email", json={"incidents": [incident]}).json()
    assert summary["subject"] == "URGENT: 1 Critical Incident Reported"


def test_websocket_receives_session_events(client):
    code = _session(client)
    with client.websocket_connect(f"/ws/sessions/{code}") as ws:
        client.post(f"/api/sessions/{code}/join", json={"name": "Sam"})
        assert ws.receive_json() == {"type": "participant_joined", "name": "Sam"}
        client.post(f"/api/sessions/{code}/records/barcode_scans", json={"rows": []})
        assert ws.receive_json() == {"type": "records_changed", "table": "barcode_scans"}


def test_written_report_is_stored_until_data_changes(client, monkeypatch):
    reply = '{"title": "Dock Review", "recommendations": ["Recount"]}'
    monkeypatch.setattr(main_mod, "ai_backend", FakeBackend(reply))
    code = _session(client)
    client.post(f"/api/sessions/{code}/generate", json={"seed": 3})
    assert client.post(f"/api/sessions/{code}/report").json()["title"] == "Dock Review"

    full = client.get(f"/api/sessions/{code}/export/csv?kind=full").text
    assert "# Report: Dock Review" in full
    assert "1,Recount" in full

    client.post(f"/api/sessions/{code}/generate", json={"seed": 3})
    csv_text = client.get(f"/api/sessions/{code}/export/csv").text
    assert csv_text.startswith("# Reconciliation Report: Shipping Reconciliation Report")


def test_pdf_credits_tolerate_unparseable_scan_quantities(client):
    code = _session(client)
    client.post(
        f"/api/sessions/{code}/records/barcode_scans",
        json={"rows": [
            {"shipment_id": "OUT-2025-0001", "qty_scanned": "a dozen", "scanned_by": "Sam"},
            {"shipment_id": "OUT-2025-0002", "qty_scanned": 12, "scanned_by": "Sam"},
        ]},
    )
    pdf = client.post(f"/api/sessions/{code}/export/pdf", json={"time_saved_minutes": 5})
    assert pdf.status_code == 200
    assert pdf.content.startswith(b"%PDF")
