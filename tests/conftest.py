# tests/conftest.py

from __future__ import annotations

import time
from pathlib import Path
from types import SimpleNamespace

import pytest

from mypsico.core.chat import ChatSession
from mypsico.core.state import AppState, UserSession
from mypsico.tasks.reminder_store import ReminderStore
from mypsico.tasks.task_store import SQLiteTaskGateway

from .fakes import FakeLLMClient, InMemoryTaskGateway


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="MyPsico",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "todos.sqlite3",
        supabase_enabled=False,
        user_id="local-user",
        user_email="",
        llm_api_key=None,
        api_timeout_seconds=1.0,
        notification_title="Recordatorio de Tarea: DOM+M",
        notification_permission="default",
        grant_notifications=True,
        llm_models=["fake/model"],
    )


@pytest.fixture()
def session() -> UserSession:
    return UserSession(user_id="u1", email="paciente@example.com")


@pytest.fixture()
def gateway() -> InMemoryTaskGateway:
    return InMemoryTaskGateway()


@pytest.fixture()
def store(gateway: InMemoryTaskGateway, session: UserSession) -> ReminderStore:
    return ReminderStore(gateway, session, timeout_seconds=1.0)


@pytest.fixture()
def state(settings: SimpleNamespace, session: UserSession) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: the task gateway is the real SQLite one because its correctness is
    part of what we want to test.
    """
    return AppState(
        settings=settings,
        session=session,
        store=ReminderStore(SQLiteTaskGateway(settings.tasks_db_path), session, timeout_seconds=5.0),
        chat=ChatSession(FakeLLMClient(["hola"])),
    )


@pytest.fixture()
def now() -> float:
    return time.time()
