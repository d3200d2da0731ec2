# src/mypsico/tasks/notifier.py

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from ..core.ports import NotificationCenter
from .task_models import Task

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Recordatorio de Tarea: DOM+M"


class PermissionState(StrEnum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def parse(cls, raw: str | None) -> PermissionState:
        if not raw:
            return cls.DEFAULT
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.DEFAULT


class Notifier:
    """
    Best-effort local notifications for due reminders.

    Permission is requested at most once per session, and only while undetermined.
    Without permission, notify() silently does nothing.
    """

    def __init__(self, center: NotificationCenter, *, title: str = DEFAULT_TITLE) -> None:
        self._center = center
        self._title = title
        self._requested = False

    @property
    def title(self) -> str:
        return self._title

    @property
    def permission(self) -> PermissionState:
        return PermissionState.parse(str(self._center.permission))

    async def start(self) -> PermissionState:
        state = PermissionState.parse(str(self._center.permission))
        if state is PermissionState.DEFAULT and not self._requested:
            self._requested = True
            try:
                state = PermissionState.parse(str(await self._center.request_permission()))
            except Exception:
                logger.warning("Notification permission request failed", exc_info=True)
                state = PermissionState.parse(str(self._center.permission))
            logger.info("Notification permission: %s", state.value)
        return state

    def notify(self, task: Task) -> bool:
        if PermissionState.parse(str(self._center.permission)) is not PermissionState.GRANTED:
            logger.debug("Notification skipped (no permission) task_id=%s", task.id)
            return False
        try:
            self._center.show(self._title, task.text)
        except Exception:
            logger.warning("Notification failed task_id=%s", task.id, exc_info=True)
            return False
        return True


class ConsoleNotificationCenter:
    """
    Notifications printed to the terminal.

    There is no OS prompt in a console, so the answer to a permission request
    comes from configuration (MYPSICO_GRANT_NOTIFICATIONS).
    """

    def __init__(
        self,
        emit: Callable[[str], None] = print,
        *,
        permission: PermissionState | str = PermissionState.DEFAULT,
        grant_on_request: bool = True,
    ) -> None:
        self._emit = emit
        self._permission = PermissionState.parse(str(permission))
        self._grant_on_request = grant_on_request

    @property
    def permission(self) -> PermissionState:
        return self._permission

    async def request_permission(self) -> PermissionState:
        if self._permission is PermissionState.DEFAULT:
            self._permission = PermissionState.GRANTED if self._grant_on_request else PermissionState.DENIED
        return self._permission

    def show(self, title: str, body: str) -> None:
        ts = datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")
        with contextlib.suppress(Exception):
            self._emit(f"\n[{ts}] 🔔 {title}: {body}")
