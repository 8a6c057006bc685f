"""greenrecon — FastAPI application entry point."""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from greenrecon.assistant.documents import DocumentAnalyzer, validate_extraction
from greenrecon.assistant.emails import EmailWriter
from greenrecon.assistant.incidents import IncidentTriage, draft_incident_emails
from greenrecon.assistant.report_writer import ReportWriter
from greenrecon.backends.gemini import default_backend
from greenrecon.config import settings
from greenrecon.db.database import Database
from greenrecon.exports.csv_export import render_discrepancy_csv, render_full_csv
from greenrecon.exports.pdf import render_pdf
from greenrecon.models.base import load_records
from greenrecon.models.discrepancy import ReconciliationResult
from greenrecon.models.incident import Incident
from greenrecon.models.report import Decision, ReconciliationReport, SessionParticipation
from greenrecon.models.shipment import BarcodeScan
from greenrecon.session_codes import (
    generate_session_code,
    is_valid_session_code,
    normalize_session_code,
)
from greenrecon.transforms import transform_record
from greenrecon.use_cases import UseCase, all_use_cases, get_use_case

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

db = Database(settings.database_path)
ai_backend = default_backend()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.connect()
    yield
    await db.close()


app = FastAPI(
    title="greenrecon",
    description="Greenhouse operations data reconciliation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request models ---


class CreateSessionRequest(BaseModel):
    use_case: str


class JoinRequest(BaseModel):
    name: str


class GenerateRequest(BaseModel):
    seed: int | None = None
    today: date | None = None


class RecordsRequest(BaseModel):
    rows: list[dict[str, Any]]
    transform: bool = False
    replace: bool = False


class DecisionRequest(BaseModel):
    item_id: str
    decision: str
    comment: str | None = None
    participant: str | None = None


class CreditsRequest(BaseModel):
    challenge_winners: list[dict[str, Any]] = []
    errors_prevented_value: float = 0.0
    time_saved_minutes: int = 0


class EscalationRequest(BaseModel):
    discrepancy_id: str


class DemoEmailRequest(BaseModel):
    use_case: str
    vendor: str
    shipment_id: str | None = None


class DocumentRequest(BaseModel):
    image: str
    document_type: str
    required_fields: list[str] = []


class TriageRequest(BaseModel):
    image: str


class IncidentRequest(BaseModel):
    id: str
    incident_type: str
    severity: int
    location: str
    description: str
    reported_by: str
    reported_at: str
    photo_url: str | None = None
    routed_to: str | None = None

    def to_incident(self) -> Incident:
        return Incident(**self.model_dump())


class IncidentSummaryRequest(BaseModel):
    incidents: list[IncidentRequest]


# --- Realtime ---


class ConnectionManager:
    """WebSocket subscribers grouped by session code."""

    def __init__(self) -> None:
        self._connections: dict[str, list[WebSocket]] = defaultdict(list)

    async def connect(self, code: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[code].append(websocket)

    def disconnect(self, code: str, websocket: WebSocket) -> None:
        if websocket in self._connections.get(code, []):
            self._connections[code].remove(websocket)

    async def broadcast(self, code: str, message: dict) -> None:
        for websocket in list(self._connections.get(code, [])):
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.warning("Dropping websocket for session %s: %s", code, exc)
                self.disconnect(code, websocket)


manager = ConnectionManager()


# --- Helpers ---


async def _require_session(code: str) -> tuple[str, UseCase]:
    if not is_valid_session_code(code):
        raise HTTPException(status_code=400, detail="Invalid session code")
    code = normalize_session_code(code)
    session = await db.get_session(code)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    use_case = get_use_case(session["use_case"])
    if use_case is None:
        raise HTTPException(status_code=404, detail="Use case not found")
    return code, use_case


def _require_table(use_case: UseCase, table: str) -> None:
    if table not in use_case.source_tables:
        raise HTTPException(
            status_code=400, detail=f"Table {table!r} is not part of {use_case.id}"
        )


async def _reconcile(code: str, use_case: UseCase) -> ReconciliationResult:
    if use_case.reconcile is None:
        raise HTTPException(status_code=400, detail=f"{use_case.id} has no reconciler")
    tables = await db.get_tables(code, use_case.source_tables)
    return use_case.reconcile(tables)


async def _report(code: str, use_case: UseCase) -> ReconciliationReport:
    stored = await db.get_report(code)
    if stored is not None:
        return ReconciliationReport.from_dict(stored)
    result = await _reconcile(code, use_case)
    return ReportWriter.fallback_report(result, use_case.id)


async def _participation(code: str, credits: CreditsRequest) -> SessionParticipation:
    scanned: dict[str, int] = defaultdict(int)
    rows = await db.list_records(code, "barcode_scans")
    for scan in load_records(BarcodeScan, rows):
        if scan.scanned_by:
            scanned[scan.scanned_by] += scan.qty_scanned
    return SessionParticipation(
        session_code=code,
        challenge_winners=credits.challenge_winners,
        scan_contributors=[
            {"name": name, "units": units}
            for name, units in sorted(scanned.items(), key=lambda item: -item[1])
        ],
        total_participants=len(await db.list_participants(code)),
        errors_prevented_value=credits.errors_prevented_value,
        time_saved_minutes=credits.time_saved_minutes,
    )


# --- Routes ---


@app.get("/health")
async def health():
    return {"status": "ok", "ai": ai_backend.name if ai_backend else None}


@app.get("/api/use-cases")
async def list_use_cases():
    return [
        {
            "id": uc.id,
            "name": uc.name,
            "description": uc.description,
            "source_tables": uc.source_tables,
            "output_templates": uc.output_templates,
            "reconcilable": uc.reconcilable,
        }
        for uc in all_use_cases()
    ]


@app.post("/api/sessions")
async def create_session(req: CreateSessionRequest):
    if get_use_case(req.use_case) is None:
        raise HTTPException(status_code=404, detail="Use case not found")
    code = generate_session_code()
    while await db.get_session(code) is not None:
        code = generate_session_code()
    await db.create_session(code, req.use_case)
    logger.info("Created %s session %s", req.use_case, code)
    return {"code": code, "use_case": req.use_case}


@app.post("/api/sessions/{code}/join")
async def join_session(code: str, req: JoinRequest):
    code, use_case = await _require_session(code)
    participant_id = await db.add_participant(code, req.name)
    await manager.broadcast(code, {"type": "participant_joined", "name": req.name})
    return {"participant_id": participant_id, "code": code, "use_case": use_case.id}


@app.post("/api/sessions/{code}/generate")
async def generate_scenario(code: str, req: GenerateRequest):
    """Replace the session's source tables with a freshly generated scenario."""
    code, use_case = await _require_session(code)
    if use_case.generate is None:
        raise HTTPException(status_code=400, detail=f"{use_case.id} has no generator")

    rng = random.Random(req.seed) if req.seed is not None else None
    scenario = use_case.generate(rng=rng, today=req.today)
    counts = {}
    for table, rows in scenario.tables().items():
        await db.clear_table(code, table)
        counts[table] = await db.insert_records(code, table, rows)
        await manager.broadcast(code, {"type": "records_changed", "table": table})
    await db.delete_report(code)
    return {"tables": counts, "planted_errors": scenario.planted_errors}


@app.get("/api/sessions/{code}/records/{table}")
async def list_records(code: str, table: str):
    code, use_case = await _require_session(code)
    _require_table(use_case, table)
    return await db.list_records(code, table)


@app.post("/api/sessions/{code}/records/{table}")
async def insert_records(code: str, table: str, req: RecordsRequest):
    """Add live rows (for example dock scans) to one of the session's tables."""
    code, use_case = await _require_session(code)
    _require_table(use_case, table)

    rows = req.rows
    transformations = []
    if req.transform:
        rows = []
        for row in req.rows:
            transformed, log = transform_record(row)
            rows.append(transformed)
            transformations.extend(log)

    if req.replace:
        await db.clear_table(code, table)
    inserted = await db.insert_records(code, table, rows)
    await db.delete_report(code)
    await manager.broadcast(code, {"type": "records_changed", "table": table})
    return {"inserted": inserted, "transformations": transformations}


@app.post("/api/sessions/{code}/reconcile")
async def reconcile(code: str):
    code, use_case = await _require_session(code)
    result = await _reconcile(code, use_case)
    logger.info(
        "Reconciled session %s: %d processed, %d flagged",
        code,
        result.total_processed,
        result.total_flagged,
    )
    return result


@app.get("/api/sessions/{code}/decisions")
async def list_decisions(code: str):
    code, _ = await _require_session(code)
    return await db.list_decisions(code)


@app.post("/api/sessions/{code}/decisions")
async def record_decision(code: str, req: DecisionRequest):
    code, _ = await _require_session(code)
    decision_id = await db.add_decision(
        code, req.item_id, req.decision, req.comment, req.participant
    )
    await manager.broadcast(
        code, {"type": "decision", "item_id": req.item_id, "decision": req.decision}
    )
    return {"id": decision_id}


@app.post("/api/sessions/{code}/report")
async def build_report(code: str):
    code, use_case = await _require_session(code)
    result = await _reconcile(code, use_case)
    decisions = [Decision.from_dict(d) for d in await db.list_decisions(code)]
    report = await ReportWriter(ai_backend).write(result, decisions, use_case.id)
    await db.save_report(code, report.to_dict())
    return report


@app.post("/api/sessions/{code}/export/pdf")
async def export_pdf(code: str, credits: CreditsRequest | None = None):
    code, use_case = await _require_session(code)
    report = await _report(code, use_case)
    participation = await _participation(code, credits) if credits is not None else None
    return Response(
        content=render_pdf(report, participation),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{use_case.id}-{code}.pdf"'},
    )


@app.get("/api/sessions/{code}/export/csv")
async def export_csv(code: str, kind: str = "discrepancies"):
    code, use_case = await _require_session(code)
    if kind not in ("discrepancies", "full"):
        raise HTTPException(status_code=400, detail="kind must be 'discrepancies' or 'full'")
    report = await _report(code, use_case)
    content = render_full_csv(report) if kind == "full" else render_discrepancy_csv(report)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{use_case.id}-{code}-{kind}.csv"'
        },
    )


@app.post("/api/sessions/{code}/escalation-email")
async def escalation_email(code: str, req: EscalationRequest):
    code, use_case = await _require_session(code)
    result = await _reconcile(code, use_case)
    for discrepancy in result.discrepancies:
        if req.discrepancy_id in (discrepancy.id, discrepancy.subject_id):
            return await EmailWriter(ai_backend).escalation_email(discrepancy)
    raise HTTPException(status_code=404, detail="Discrepancy not found")


@app.post("/api/emails/demo")
async def demo_email(req: DemoEmailRequest):
    return await EmailWriter(ai_backend).demo_email(req.use_case, req.vendor, req.shipment_id)


@app.post("/api/documents/analyze")
async def analyze_document(req: DocumentRequest):
    analysis = await DocumentAnalyzer(ai_backend).analyze(req.image, req.document_type)
    response: dict[str, Any] = {"analysis": analysis}
    if req.required_fields:
        response["validation"] = validate_extraction(analysis, req.required_fields)
    return response


@app.post("/api/incidents/triage")
async def triage_incident(req: TriageRequest):
    return await IncidentTriage(ai_backend).analyze(req.image)


@app.post("/api/incidents/emails")
async def incident_emails(req: IncidentRequest):
    return draft_incident_emails(req.to_incident())


@app.post("/api/incidents/summary-email")
async def incident_summary_email(req: IncidentSummaryRequest):
    incidents = [i.to_incident() for i in req.incidents]
    return await EmailWriter(ai_backend).incident_summary_email(incidents)


# --- WebSocket ---


@app.websocket("/ws/sessions/{code}")
async def session_ws(websocket: WebSocket, code: str):
    """Push record, decision and participant events for one session."""
    code = normalize_session_code(code)
    await manager.connect(code, websocket)
    try:
        while True:
            data = await websocket.receive_text()
            await websocket.send_json({"type": "ack", "data": data})
    except WebSocketDisconnect:
        manager.disconnect(code, websocket)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("greenrecon.main:app", host=settings.host, port=settings.port)
