# src/mypsico/progress/report.py

"""
30-day progress report built from activity logs.

Aggregation happens client-side so it tolerates schema drift: `rating` stands
in for `mood` on older rows, and a day without a metric averages to the neutral 3.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from ..core.ports import ActivityLogSource
from ..tasks.supabase_gateway import iso_to_ts, ts_to_iso

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 3.0
REPORT_DAYS = 30


@dataclass(slots=True)
class ActivityLog:
    id: int | None
    created_at: float
    user_id: str
    content_id: int | None
    rating: int | None = None
    reflection: str | None = None
    mood: int | None = None
    anxiety: int | None = None
    stress: int | None = None


@dataclass(slots=True, frozen=True)
class ProgressPoint:
    date: str  # YYYY-MM-DD (UTC)
    mood: float
    anxiety: float
    stress: float
    completed_tasks: int


def _opt_int(v: Any) -> int | None:
    if v is None or v == "":
        return None
    return int(v)


def row_to_log(row: dict[str, Any]) -> ActivityLog:
    return ActivityLog(
        id=_opt_int(row.get("id")),
        created_at=iso_to_ts(row.get("created_at")) or 0.0,
        user_id=str(row.get("user_id") or ""),
        content_id=_opt_int(row.get("content_id")),
        rating=_opt_int(row.get("rating")),
        reflection=row.get("reflection"),
        mood=_opt_int(row.get("mood")),
        anxiety=_opt_int(row.get("anxiety")),
        stress=_opt_int(row.get("stress")),
    )


def _avg(values: list[int]) -> float:
    return sum(values) / len(values) if values else NEUTRAL_SCORE


def build_progress_report(logs: Iterable[ActivityLog]) -> list[ProgressPoint]:
    """Group logs by UTC day (ascending) and average mood/anxiety/stress per day."""
    buckets: dict[str, dict[str, list[int]]] = defaultdict(lambda: {"mood": [], "anxiety": [], "stress": []})
    counts: dict[str, int] = defaultdict(int)

    for log in logs:
        day = datetime.fromtimestamp(log.created_at, tz=timezone.utc).date().isoformat()
        b = buckets[day]
        mood = log.mood if log.mood is not None else log.rating
        if mood is not None:
            b["mood"].append(mood)
        if log.anxiety is not None:
            b["anxiety"].append(log.anxiety)
        if log.stress is not None:
            b["stress"].append(log.stress)
        counts[day] += 1

    return [
        ProgressPoint(
            date=day,
            mood=_avg(buckets[day]["mood"]),
            anxiety=_avg(buckets[day]["anxiety"]),
            stress=_avg(buckets[day]["stress"]),
            completed_tasks=counts[day],
        )
        for day in sorted(buckets)
    ]


def _check_score(name: str, value: int) -> int:
    v = int(value)
    if not 1 <= v <= 5:
        raise ValueError(f"{name} must be between 1 and 5")
    return v


class SupabaseActivityLogSource:
    """`activity_logs` table over the supabase client."""

    def __init__(self, client: Any, *, table: str = "activity_logs") -> None:
        self._client = client
        self._table = table

    def list_activity_logs(self, user_id: str, *, since_ts: float) -> list[ActivityLog]:
        res = (
            self._client.table(self._table)
            .select("*")
            .eq("user_id", user_id)
            .gte("created_at", ts_to_iso(since_ts))
            .execute()
        )
        return [row_to_log(r) for r in (res.data or [])]

    def insert_activity_log(self, row: dict[str, Any]) -> ActivityLog:
        res = self._client.table(self._table).insert(row).execute()
        rows = res.data or []
        if not rows:
            raise LookupError("insert activity log: no row returned")
        return row_to_log(rows[0])


def fetch_progress_report(
    source: ActivityLogSource,
    user_id: str,
    *,
    days: int = REPORT_DAYS,
    now: float | None = None,
) -> list[ProgressPoint]:
    base = time.time() if now is None else float(now)
    logs = source.list_activity_logs(user_id, since_ts=base - days * 86400)
    logger.debug("Progress: %d logs for user=%s", len(logs), user_id)
    return build_progress_report(logs)


def log_activity(
    source: ActivityLogSource,
    *,
    user_id: str,
    content_id: int,
    reflection: str,
    mood: int,
    anxiety: int,
    stress: int,
) -> ActivityLog:
    """Record a completed daily activity with the patient's self-assessment (1-5 scales)."""
    row = {
        "user_id": user_id,
        "content_id": int(content_id),
        "reflection": reflection,
        "mood": _check_score("mood", mood),
        "anxiety": _check_score("anxiety", anxiety),
        "stress": _check_score("stress", stress),
    }
    return source.insert_activity_log(row)
