# tests/test_task_store.py

from __future__ import annotations

import sqlite3
import time
from pathlib import Path

import pytest

from mypsico.tasks.task_models import ReminderType
from mypsico.tasks.task_store import SQLiteTaskGateway, TaskNotFoundError


def test_crud_roundtrip(tmp_path: Path) -> None:
    gw = SQLiteTaskGateway(tmp_path / "todos.sqlite3")

    a = gw.insert_task("Respirar 5 minutos", "u1")
    b = gw.insert_task("Salir a caminar", "u1")
    gw.insert_task("otra persona", "u2")

    assert [t.id for t in gw.list_tasks("u1")] == [a.id, b.id]
    assert a.completed is False and a.reminder_at is None and a.reminder_type is None

    done = gw.update_task(a.id, {"completed": True})
    assert done.completed is True
    assert done.text == "Respirar 5 minutos"

    at = time.time() + 3600
    reminded = gw.update_task(b.id, {"reminder_at": at, "reminder_type": ReminderType.EMAIL})
    assert reminded.reminder_at == pytest.approx(at)
    assert reminded.reminder_type is ReminderType.EMAIL

    cleared = gw.update_task(b.id, {"reminder_at": None, "reminder_type": None})
    assert cleared.reminder_at is None and cleared.reminder_type is None

    gw.delete_task(a.id)
    assert [t.id for t in gw.list_tasks("u1")] == [b.id]


def test_insert_rejects_empty_text(tmp_path: Path) -> None:
    gw = SQLiteTaskGateway(tmp_path / "todos.sqlite3")
    with pytest.raises(ValueError):
        gw.insert_task("  ", "u1")


def test_update_unknown_task_or_column(tmp_path: Path) -> None:
    gw = SQLiteTaskGateway(tmp_path / "todos.sqlite3")
    t = gw.insert_task("x", "u1")

    with pytest.raises(TaskNotFoundError):
        gw.update_task("missing", {"completed": True})
    with pytest.raises(ValueError):
        gw.update_task(t.id, {"user_id": "u2"})


def test_migrates_table_without_reminder_columns(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        """
        CREATE TABLE todos (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            text TEXT NOT NULL,
            completed INTEGER NOT NULL DEFAULT 0,
            created_at REAL NOT NULL,
            updated_at REAL NOT NULL
        )
        """
    )
    conn.execute("INSERT INTO todos VALUES ('old1', 'u1', 'Diario', 0, 1.0, 1.0)")
    conn.commit()
    conn.close()

    gw = SQLiteTaskGateway(db)
    (legacy,) = gw.list_tasks("u1")
    assert legacy.reminder_at is None

    # A reminder written before reminder_type existed decodes as push.
    conn = sqlite3.connect(db)
    conn.execute("UPDATE todos SET reminder_at = ? WHERE id = 'old1'", (time.time() + 60,))
    conn.commit()
    conn.close()

    (legacy,) = gw.list_tasks("u1")
    assert legacy.reminder_type is ReminderType.PUSH
