"""SQLite document store via aiosqlite."""

from __future__ import annotations

import json
import uuid
from typing import Any

import aiosqlite

SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    code TEXT PRIMARY KEY,
    use_case TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS participants (
    id TEXT PRIMARY KEY,
    session_code TEXT NOT NULL REFERENCES sessions(code),
    name TEXT NOT NULL,
    joined_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_code TEXT NOT NULL REFERENCES sessions(code),
    table_name TEXT NOT NULL,
    payload TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_records_session_table
    ON records (session_code, table_name);

CREATE TABLE IF NOT EXISTS decisions (
    id TEXT PRIMARY KEY,
    session_code TEXT NOT NULL REFERENCES sessions(code),
    item_id TEXT NOT NULL,
    decision TEXT NOT NULL,
    comment TEXT,
    participant TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS reports (
    session_code TEXT PRIMARY KEY REFERENCES sessions(code),
    payload TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class Database:
    """Async SQLite store for sessions, their source records and written reports."""

    def __init__(self, path: str = "greenrecon.db") -> None:
        self.path = path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self._db = await aiosqlite.connect(self.path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Database not connected - call connect() first")
        return self._db

    # -- Sessions --

    async def create_session(self, code: str, use_case: str) -> None:
        await self.db.execute(
            "INSERT INTO sessions (code, use_case) VALUES (?, ?)", (code, use_case)
        )
        await self.db.commit()

    async def get_session(self, code: str) -> dict | None:
        cursor = await self.db.execute("SELECT * FROM sessions WHERE code = ?", (code,))
        row = await cursor.fetchone()
        return dict(row) if row else None

    # -- Participants --

    async def add_participant(self, session_code: str, name: str) -> str:
        participant_id = str(uuid.uuid4())
        await self.db.execute(
            "INSERT INTO participants (id, session_code, name) VALUES (?, ?, ?)",
            (participant_id, session_code, name),
        )
        await self.db.commit()
        return participant_id

    async def list_participants(self, session_code: str) -> list[dict]:
        cursor = await self.db.execute(
            "SELECT * FROM participants WHERE session_code = ? ORDER BY joined_at",
            (session_code,),
        )
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    # -- Records --

    async def insert_records(
        self, session_code: str, table_name: str, rows: list[dict[str, Any]]
    ) -> int:
        await self.db.executemany(
            "INSERT INTO records (session_code, table_name, payload) VALUES (?, ?, ?)",
            [(session_code, table_name, json.dumps(row, default=str)) for row in rows],
        )
        await self.db.commit()
        return len(rows)

    async def clear_table(self, session_code: str, table_name: str) -> None:
        await self.db.execute(
            "DELETE FROM records WHERE session_code = ? AND table_name = ?",
            (session_code, table_name),
        )
        await self.db.commit()

    async def list_records(self, session_code: str, table_name: str) -> list[dict[str, Any]]:
        cursor = await self.db.execute(
            "SELECT payload FROM records WHERE session_code = ? AND table_name = ? ORDER BY id",
            (session_code, table_name),
        )
        rows = await cursor.fetchall()
        return [json.loads(r["payload"]) for r in rows]

    async def get_tables(
        self, session_code: str, table_names: list[str]
    ) -> dict[str, list[dict[str, Any]]]:
        """Every requested table as a list of flat rows (missing tables are empty)."""
        return {name: await self.list_records(session_code, name) for name in table_names}

    # -- Decisions --

    async def add_decision(
        self,
        session_code: str,
        item_id: str,
        decision: str,
        comment: str | None = None,
        participant: str | None = None,
    ) -> str:
        decision_id = str(uuid.uuid4())
        await self.db.execute(
            "INSERT INTO decisions (id, session_code, item_id, decision, comment, participant) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (decision_id, session_code, item_id, decision, comment, participant),
        )
        await self.db.commit()
        return decision_id

    async def list_decisions(self, session_code: str) -> list[dict]:
        cursor = await self.db.execute(
            "SELECT * FROM decisions WHERE session_code = ? ORDER BY created_at, rowid",
            (session_code,),
        )
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    # -- Reports --

    async def save_report(self, session_code: str, report: dict[str, Any]) -> None:
        """Store the session's latest written report, replacing any earlier one."""
        await self.db.execute(
            "INSERT OR REPLACE INTO reports (session_code, payload, updated_at) "
            "VALUES (?, ?, CURRENT_TIMESTAMP)",
            (session_code, json.dumps(report, default=str)),
        )
        await self.db.commit()

    async def get_report(self, session_code: str) -> dict[str, Any] | None:
        cursor = await self.db.execute(
            "SELECT payload FROM reports WHERE session_code = ?", (session_code,)
        )
        row = await cursor.fetchone()
        return json.loads(row["payload"]) if row else None

    async def delete_report(self, session_code: str) -> None:
        await self.db.execute("DELETE FROM reports WHERE session_code = ?", (session_code,))
        await self.db.commit()
