"""Persist a plan's shift rows into a SQLite schedules / shifts schema."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS schedules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        plan_id TEXT NOT NULL,
        name TEXT,
        range_from TEXT NOT NULL,
        range_to TEXT NOT NULL,
        unfilled_slots INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS shifts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        schedule_id INTEGER NOT NULL,
        station_id TEXT NOT NULL,
        doctor_id TEXT NOT NULL,
        date TEXT NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        type TEXT NOT NULL,
        FOREIGN KEY (schedule_id) REFERENCES schedules(id)
    )
    """,
)


def persist_to_db(plan: dict[str, Any], db_path: Path) -> int:
    """Insert the plan into schedules + shifts and return the schedule id.

    Tables are created when missing. Unfilled slots are not stored as rows;
    only their count is kept on the schedule.

    Args:
        plan: Output of generate_plan().
        db_path: Path to SQLite database file.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    try:
        cur = conn.cursor()
        for statement in _SCHEMA:
            cur.execute(statement)

        cur.execute(
            """
            INSERT INTO schedules (plan_id, name, range_from, range_to, unfilled_slots, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                plan.get("plan_id", ""),
                plan.get("name", ""),
                plan.get("range", {}).get("from", ""),
                plan.get("range", {}).get("to", ""),
                len(plan.get("unfilled", [])),
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        schedule_id = cur.lastrowid

        cur.executemany(
            """
            INSERT INTO shifts (schedule_id, station_id, doctor_id, date, start_time, end_time, type)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    schedule_id,
                    s["station_id"],
                    s["doctor_id"],
                    s["date"],
                    s["start"],
                    s["end"],
                    s["kind"],
                )
                for s in plan.get("shifts", [])
            ],
        )

        conn.commit()
        return schedule_id

    finally:
        conn.close()
