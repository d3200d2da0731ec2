# src/mypsico/tasks/supabase_gateway.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from .task_models import ReminderType, Task

logger = logging.getLogger(__name__)


def iso_to_ts(raw: Any) -> float | None:
    """Parse a timestamptz string (or epoch number) into epoch seconds. Naive values are UTC."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    dt = datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def ts_to_iso(ts: float | None) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(float(ts), tz=timezone.utc).isoformat()


def row_to_task(row: dict[str, Any]) -> Task:
    reminder_at = iso_to_ts(row.get("reminder_at"))
    return Task(
        id=str(row["id"]),
        text=str(row.get("text") or ""),
        completed=bool(row.get("completed")),
        owner=str(row.get("user_id") or ""),
        created_at=iso_to_ts(row.get("created_at")) or 0.0,
        reminder_at=reminder_at,
        reminder_type=ReminderType.from_db(row.get("reminder_type")) if reminder_at is not None else None,
    )


class SupabaseTaskGateway:
    """
    `todos` table over the supabase Python client.

    Columns: id, user_id, text, completed, created_at, reminder_at (timestamptz),
    reminder_type ('push' | 'email' | null).

    Errors (postgrest APIError, httpx errors) propagate unchanged; the store turns
    them into user-facing messages.
    """

    def __init__(self, client: Any, *, table: str = "todos") -> None:
        self._client = client
        self._table = table

    def _t(self):
        return self._client.table(self._table)

    @staticmethod
    def _single(res: Any, what: str) -> dict[str, Any]:
        rows = getattr(res, "data", None) or []
        if not rows:
            raise LookupError(f"{what}: no row returned")
        return rows[0]

    def list_tasks(self, owner_id: str) -> list[Task]:
        res = self._t().select("*").eq("user_id", owner_id).order("created_at").execute()
        rows = res.data or []
        logger.debug("Loaded %d todos for owner=%s", len(rows), owner_id)
        return [row_to_task(r) for r in rows]

    def insert_task(self, text: str, owner_id: str) -> Task:
        res = self._t().insert({"text": text, "user_id": owner_id}).execute()
        return row_to_task(self._single(res, "insert todo"))

    def update_task(self, task_id: str, fields: dict[str, Any]) -> Task:
        payload: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "reminder_at":
                payload[name] = ts_to_iso(value)
            elif name == "reminder_type":
                payload[name] = str(value) if value is not None else None
            else:
                payload[name] = value
        res = self._t().update(payload).eq("id", task_id).execute()
        return row_to_task(self._single(res, f"update todo {task_id}"))

    def delete_task(self, task_id: str) -> None:
        self._t().delete().eq("id", task_id).execute()
