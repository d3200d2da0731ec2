# tests/test_progress.py

from __future__ import annotations

from typing import Any

import pytest

from mypsico.progress.report import (
    NEUTRAL_SCORE,
    ActivityLog,
    SupabaseActivityLogSource,
    build_progress_report,
    fetch_progress_report,
    log_activity,
)
from mypsico.tasks.supabase_gateway import iso_to_ts

from .fakes import FakeSupabaseClient


def _log(when: str, **scores: Any) -> ActivityLog:
    return ActivityLog(id=None, created_at=iso_to_ts(when), user_id="u1", content_id=1, **scores)


class ListSource:
    def __init__(self, logs: list[ActivityLog]) -> None:
        self.logs = logs
        self.since: float | None = None
        self.inserted: list[dict[str, Any]] = []

    def list_activity_logs(self, user_id: str, *, since_ts: float) -> list[ActivityLog]:
        self.since = since_ts
        return [log for log in self.logs if log.created_at >= since_ts]

    def insert_activity_log(self, row: dict[str, Any]) -> ActivityLog:
        self.inserted.append(row)
        return ActivityLog(id=1, created_at=0.0, user_id=row["user_id"], content_id=row["content_id"])


def test_groups_by_day_ascending_and_averages() -> None:
    points = build_progress_report(
        [
            _log("2024-03-02T09:00:00Z", mood=4, anxiety=2, stress=3),
            _log("2024-03-01T08:00:00Z", mood=2, anxiety=4, stress=5),
            _log("2024-03-01T20:00:00Z", mood=4, anxiety=2, stress=1),
        ]
    )

    assert [p.date for p in points] == ["2024-03-01", "2024-03-02"]
    first = points[0]
    assert (first.mood, first.anxiety, first.stress) == (3.0, 3.0, 3.0)
    assert first.completed_tasks == 2
    assert points[1].mood == 4.0


def test_rating_stands_in_for_mood_and_missing_is_neutral() -> None:
    (point,) = build_progress_report([_log("2024-03-01T08:00:00Z", rating=5)])

    assert point.mood == 5.0
    assert point.anxiety == NEUTRAL_SCORE
    assert point.stress == NEUTRAL_SCORE


def test_fetch_uses_thirty_day_window() -> None:
    now = iso_to_ts("2024-03-31T00:00:00Z")
    source = ListSource([_log("2024-02-01T00:00:00Z", mood=1), _log("2024-03-30T00:00:00Z", mood=5)])

    points = fetch_progress_report(source, "u1", now=now)

    assert source.since == now - 30 * 86400
    assert [p.date for p in points] == ["2024-03-30"]


def test_log_activity_validates_scores() -> None:
    source = ListSource([])

    log_activity(source, user_id="u1", content_id=7, reflection="Me sentí mejor", mood=4, anxiety=2, stress=3)
    assert source.inserted[0]["mood"] == 4

    with pytest.raises(ValueError):
        log_activity(source, user_id="u1", content_id=7, reflection="", mood=6, anxiety=2, stress=3)


def test_supabase_source_queries_since() -> None:
    client = FakeSupabaseClient([{"id": 1, "created_at": "2024-03-01T08:00:00Z", "user_id": "u1", "rating": "4"}])
    source = SupabaseActivityLogSource(client)

    (log,) = source.list_activity_logs("u1", since_ts=0.0)

    assert log.rating == 4 and log.mood is None
    table, ops = client.executed[0]
    assert table == "activity_logs"
    assert ("gte", ("created_at", "1970-01-01T00:00:00+00:00")) in ops
