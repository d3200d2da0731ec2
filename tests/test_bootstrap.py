# tests/test_bootstrap.py

from __future__ import annotations

import time

import pytest

from mypsico.cli.bootstrap import create_initial_state, start_reminders
from mypsico.llm.offline import OfflineLLMClient
from mypsico.tasks.task_store import SQLiteTaskGateway


def test_offline_state_uses_local_store_and_offline_chat(settings) -> None:
    state = create_initial_state(settings=settings)

    assert state.session.user_id == "local-user"
    assert state.activity is None
    assert isinstance(state.chat._llm, OfflineLLMClient)
    assert settings.tasks_db_path.exists()


@pytest.mark.asyncio
async def test_start_reminders_schedules_saved_tasks(settings) -> None:
    gw = SQLiteTaskGateway(settings.tasks_db_path)
    task = gw.insert_task("Respirar", "local-user")
    gw.update_task(task.id, {"reminder_at": time.time() + 600, "reminder_type": "push"})

    state = create_initial_state(settings=settings)
    lines: list[str] = []

    assert await start_reminders(state, lines.append) is None
    try:
        assert list(state.reminders.scheduler.pending) == [task.id]
        assert state.reminders.notifier.permission.value == "granted"
    finally:
        state.reminders.close()
