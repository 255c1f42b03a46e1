"""
Results Store — append-only record of a run.

One row per simulated step (the full IterationResult as JSON) and one row
per blocker event. Rows are never updated or deleted.
Default: in-memory SQLite.
"""

import json
import sqlite3
from typing import List, Optional

from orgsim.models.blocker import Blocker
from orgsim.models.results import IterationResult


class ResultsStore:
    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS iterations (
                step INTEGER PRIMARY KEY,
                blockers_added INTEGER NOT NULL,
                tasks_done INTEGER NOT NULL,
                capacity REAL NOT NULL,
                record_json TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS blocker_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                step INTEGER NOT NULL,
                event TEXT NOT NULL,
                agent_id TEXT NOT NULL,
                task_id TEXT NOT NULL,
                blocker_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                resolution TEXT NOT NULL,
                number_of_tries INTEGER NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_blocker_events_kind ON blocker_events(kind)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_blocker_events_step ON blocker_events(step)
        """)
        self._conn.commit()

    # --- Iterations ---

    def append(self, result: IterationResult) -> IterationResult:
        self._conn.execute(
            """
            INSERT INTO iterations (step, blockers_added, tasks_done, capacity, record_json)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                result.step,
                result.blockers.added,
                result.tasks.done,
                result.capacity,
                json.dumps(result.model_dump(mode="json")),
            ),
        )
        self._conn.commit()
        return result

    def _deserialize(self, row: sqlite3.Row) -> IterationResult:
        return IterationResult.model_validate_json(row["record_json"])

    def get(self, step: int) -> Optional[IterationResult]:
        row = self._conn.execute(
            "SELECT record_json FROM iterations WHERE step = ?", (step,)
        ).fetchone()
        return self._deserialize(row) if row else None

    def query_range(self, start: Optional[int] = None, end: Optional[int] = None) -> List[IterationResult]:
        """Iterations with start <= step <= end, in step order."""
        query = "SELECT record_json FROM iterations WHERE 1 = 1"
        params = []
        if start is not None:
            query += " AND step >= ?"
            params.append(start)
        if end is not None:
            query += " AND step <= ?"
            params.append(end)
        rows = self._conn.execute(query + " ORDER BY step", params).fetchall()
        return [self._deserialize(r) for r in rows]

    def latest(self) -> Optional[IterationResult]:
        row = self._conn.execute(
            "SELECT record_json FROM iterations ORDER BY step DESC LIMIT 1"
        ).fetchone()
        return self._deserialize(row) if row else None

    def count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM iterations").fetchone()
        return row["cnt"]

    # --- Blocker events ---

    def append_blocker_event(self, step: int, event: str, agent_id: str, task_id: str, blocker: Blocker) -> None:
        self._conn.execute(
            """
            INSERT INTO blocker_events (
                step, event, agent_id, task_id, blocker_id, kind, resolution, number_of_tries
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                step,
                event,
                agent_id,
                task_id,
                blocker.id,
                blocker.kind.value,
                blocker.resolution.value,
                blocker.number_of_tries,
            ),
        )
        self._conn.commit()

    def query_blocker_events(self, kind: Optional[str] = None, limit: int = 100) -> List[dict]:
        if kind:
            rows = self._conn.execute(
                "SELECT * FROM blocker_events WHERE kind = ? ORDER BY id DESC LIMIT ?",
                (kind, limit),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM blocker_events ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [dict(r) for r in reversed(rows)]

    def close(self) -> None:
        self._conn.close()
