# src/mypsico/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- signs in (Supabase Auth) or falls back to a local offline user,
- wires concrete implementations into AppState (task gateway, chat LLM, activity logs),
- starts the reminder subsystem inside the running event loop.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..config import get_settings
from ..core.chat import ChatSession
from ..core.errors import TaskLoadError
from ..core.ports import ActivityLogSource, LLMClient, TaskGateway
from ..core.state import AppState, UserSession
from ..llm.client import OpenAICompatibleLLMClient
from ..llm.offline import OfflineLLMClient
from ..tasks.notifier import ConsoleNotificationCenter, PermissionState
from ..tasks.reminder_store import ReminderStore
from ..tasks.task_api import ReminderSubsystem
from ..tasks.task_store import SQLiteTaskGateway

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_llm(settings) -> LLMClient:
    try:
        return OpenAICompatibleLLMClient(settings)
    except RuntimeError as e:
        # Offline demo without an API key.
        logger.info("Assistant offline: %s", e)
        return OfflineLLMClient()


def _connect_backend(settings) -> tuple[UserSession, TaskGateway, ActivityLogSource | None]:
    if not settings.supabase_enabled:
        logger.info("Supabase not configured; using local SQLite store at %s", settings.tasks_db_path)
        session = UserSession(user_id=settings.user_id, email=settings.user_email)
        return session, SQLiteTaskGateway(settings.tasks_db_path), None

    from ..adapters.supabase_client import sign_in, supa
    from ..progress.report import SupabaseActivityLogSource
    from ..tasks.supabase_gateway import SupabaseTaskGateway

    client = supa(settings)
    if settings.user_email and settings.user_password:
        session = sign_in(client, settings.user_email, settings.user_password)
    else:
        logger.warning("No MYPSICO_USER_EMAIL/PASSWORD; acting as user_id=%s", settings.user_id)
        session = UserSession(user_id=settings.user_id, email=settings.user_email)

    gateway = SupabaseTaskGateway(client, table=settings.todos_table)
    activity = SupabaseActivityLogSource(client, table=settings.activity_table)
    return session, gateway, activity


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings (no event loop needed).

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    session, gateway, activity = _connect_backend(settings)
    store = ReminderStore(gateway, session, timeout_seconds=settings.api_timeout_seconds)

    return AppState(
        settings=settings,
        session=session,
        store=store,
        chat=ChatSession(_build_llm(settings)),
        activity=activity,
    )


async def start_reminders(state: AppState, emit: Callable[[str], None]) -> str | None:
    """
    Start the reminder subsystem (must run inside the event loop).

    Returns the page-level load error message, if any; the subsystem stays usable
    and `/todos reload` retries.
    """
    settings = state.settings
    center = ConsoleNotificationCenter(
        emit,
        permission=PermissionState.parse(settings.notification_permission),
        grant_on_request=settings.grant_notifications,
    )
    state.reminders = await ReminderSubsystem.start(
        state.store,
        center,
        title=settings.notification_title,
        load=False,
    )
    try:
        await state.store.load()
    except TaskLoadError as e:
        # Scheduler stays subscribed; a later successful load schedules everything.
        logger.warning("Initial task load failed: %s", e.user_message)
        return e.user_message
    return None
