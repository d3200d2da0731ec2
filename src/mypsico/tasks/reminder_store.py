# src/mypsico/tasks/reminder_store.py

"""
Locally cached to-do list for one user, kept in sync with the remote store.

Write-then-reflect: the cache changes only after the remote call succeeded,
so a failed call needs no rollback. Every blocking gateway call runs in a worker
thread bounded by `timeout_seconds`; on timeout the thread is left to finish on
its own (no cancellation of in-flight requests).

Listeners registered with subscribe() receive the new snapshot after every
change; the reminder scheduler is one of them.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from ..core.errors import (
    TaskLoadError,
    TaskOperationError,
    TaskTimeoutError,
    failure_message,
)
from ..core.ports import TaskGateway
from ..core.state import UserSession
from .task_models import ReminderType, Task

logger = logging.getLogger(__name__)

T = TypeVar("T")

TaskListener = Callable[[tuple[Task, ...]], None]

MSG_EMPTY_TEXT = "La tarea no puede estar vacía."
MSG_PAST_REMINDER = "Por favor, selecciona una fecha y hora en el futuro."
MSG_COMPLETED_READONLY = "No se puede editar una tarea completada."
MSG_UNKNOWN_TASK = "La tarea no existe."


class ReminderStore:
    def __init__(
        self,
        gateway: TaskGateway,
        session: UserSession,
        *,
        timeout_seconds: float = 15.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._timeout_s = float(timeout_seconds)
        self._clock = clock
        self._tasks: list[Task] = []
        self._listeners: list[TaskListener] = []

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def session(self) -> UserSession:
        return self._session

    def get(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    # ---- change notification ----

    def subscribe(self, listener: TaskListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, tasks: list[Task]) -> None:
        self._tasks = tasks
        snapshot = tuple(tasks)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Task list listener failed")

    # ---- remote calls ----

    async def _call(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self._timeout_s)
        except asyncio.TimeoutError as e:
            logger.warning("Remote %s timed out after %.1fs", operation, self._timeout_s)
            raise TaskTimeoutError(self._timeout_s, operation=operation) from e
        except Exception as e:
            logger.warning("Remote %s failed: %s", operation, e)
            msg = failure_message(e, operation)
            if operation == "load":
                raise TaskLoadError(msg, operation=operation) from e
            raise TaskOperationError(msg, operation=operation) from e

    def _require(self, task_id: str, operation: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise TaskOperationError(MSG_UNKNOWN_TASK, operation=operation)
        return task

    def _replace(self, updated: Task) -> list[Task]:
        return [updated if t.id == updated.id else t for t in self._tasks]

    # ---- operations ----

    async def load(self) -> tuple[Task, ...]:
        user_id = self._session.user_id
        try:
            rows = await self._call("load", self._gateway.list_tasks, user_id)
        except TaskTimeoutError as e:
            # Timeouts on load are still page-level load errors.
            raise TaskLoadError(e.user_message, operation="load") from e
        self._commit(list(rows))
        logger.info("Loaded %d todos for user=%s", len(self._tasks), user_id)
        return self.tasks

    async def add(self, text: str) -> Task:
        clean = (text or "").strip()
        if not clean:
            raise ValueError(MSG_EMPTY_TEXT)

        created = await self._call("add", self._gateway.insert_task, clean, self._session.user_id)
        self._commit([*self._tasks, created])
        logger.debug("Todo added id=%s", created.id)
        return created

    async def set_completed(self, task_id: str, value: bool) -> Task:
        self._require(task_id, "update")
        updated = await self._call("update", self._gateway.update_task, task_id, {"completed": bool(value)})

        # Merge only the completed flag; other local fields stay as they are.
        current = self.get(task_id)
        if current is None:
            return updated
        merged = Task(
            id=current.id,
            text=current.text,
            completed=bool(updated.completed),
            owner=current.owner,
            created_at=current.created_at,
            reminder_at=current.reminder_at,
            reminder_type=current.reminder_type,
        )
        self._commit(self._replace(merged))
        return merged

    async def set_text(self, task_id: str, text: str) -> Task:
        current = self._require(task_id, "edit")
        clean = (text or "").strip()
        if not clean or clean == current.text:
            return current
        if current.completed:
            raise TaskOperationError(MSG_COMPLETED_READONLY, operation="edit")

        updated = await self._call("edit", self._gateway.update_task, task_id, {"text": clean})
        self._commit(self._replace(updated))
        return updated

    async def set_reminder(
        self,
        task_id: str,
        reminder_at: float | None,
        reminder_type: ReminderType | str | None = None,
    ) -> Task:
        self._require(task_id, "reminder")

        if reminder_at is None:
            fields: dict[str, Any] = {"reminder_at": None, "reminder_type": None}
        else:
            if float(reminder_at) <= self._clock():
                raise ValueError(MSG_PAST_REMINDER)
            rtype = ReminderType.from_db(str(reminder_type)) if reminder_type else ReminderType.PUSH
            fields = {"reminder_at": float(reminder_at), "reminder_type": rtype}

        updated = await self._call("reminder", self._gateway.update_task, task_id, fields)
        self._commit(self._replace(updated))
        return updated

    async def remove(self, task_id: str) -> None:
        self._require(task_id, "delete")
        await self._call("delete", self._gateway.delete_task, task_id)
        self._commit([t for t in self._tasks if t.id != task_id])
        logger.debug("Todo removed id=%s", task_id)
