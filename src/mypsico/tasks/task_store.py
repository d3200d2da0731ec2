# src/mypsico/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Any

from .task_models import ReminderType, Task

logger = logging.getLogger(__name__)

_UPDATABLE = ("completed", "text", "reminder_at", "reminder_type")


class TaskNotFoundError(LookupError):
    pass


class SQLiteTaskGateway:
    """
    Local SQLite stand-in for the remote `todos` table (offline mode, tests).

    Same contract as the Supabase gateway: mutations return the full row,
    ordering is by created_at.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "todos.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SQLiteTaskGateway ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS todos (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    text TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(todos)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE todos ADD COLUMN {name} {decl}")
                logger.info("SQLiteTaskGateway migration: added column %s", name)

            add_col("reminder_at", "REAL")
            # Left NULL on old rows; decoding treats NULL as push.
            add_col("reminder_type", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_todos_owner ON todos(user_id, created_at)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        reminder_at = float(row["reminder_at"]) if row["reminder_at"] is not None else None
        return Task(
            id=str(row["id"]),
            text=str(row["text"] or ""),
            completed=bool(row["completed"]),
            owner=str(row["user_id"]),
            created_at=float(row["created_at"] or 0.0),
            reminder_at=reminder_at,
            reminder_type=ReminderType.from_db(row["reminder_type"]) if reminder_at is not None else None,
        )

    def _fetch_one(self, conn: sqlite3.Connection, task_id: str) -> Task:
        row = conn.execute("SELECT * FROM todos WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return self._row_to_task(row)

    # ---- gateway API ----

    def list_tasks(self, owner_id: str) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "SELECT * FROM todos WHERE user_id = ? ORDER BY created_at ASC, rowid ASC",
                (owner_id,),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def insert_task(self, text: str, owner_id: str) -> Task:
        if not text or not text.strip():
            raise ValueError("text is required")

        now = time.time()
        task_id = uuid.uuid4().hex
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO todos(id, user_id, text, completed, created_at, updated_at)
                VALUES (?, ?, ?, 0, ?, ?)
                """,
                (task_id, owner_id, text, now, now),
            )
            conn.commit()
            logger.debug("Todo added id=%s owner=%s", task_id, owner_id)
            return self._fetch_one(conn, task_id)
        finally:
            conn.close()

    def update_task(self, task_id: str, fields: dict[str, Any]) -> Task:
        sets: list[str] = []
        params: list[Any] = []

        for name, value in fields.items():
            if name not in _UPDATABLE:
                raise ValueError(f"Unknown todo column: {name}")
            if name == "completed":
                value = 1 if value else 0
            elif name == "reminder_at" and value is not None:
                value = float(value)
            elif name == "reminder_type" and value is not None:
                value = str(value)
            sets.append(f"{name} = ?")
            params.append(value)

        conn = self._get_conn()
        try:
            if sets:
                sets.append("updated_at = ?")
                params.append(time.time())
                params.append(task_id)
                cur = conn.execute(f"UPDATE todos SET {', '.join(sets)} WHERE id = ?", params)
                conn.commit()
                if cur.rowcount == 0:
                    raise TaskNotFoundError(f"Task not found: {task_id}")
            return self._fetch_one(conn, task_id)
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM todos WHERE id = ?", (task_id,))
            conn.commit()
        finally:
            conn.close()
