# src/mypsico/tasks/task_scheduler.py

"""
Reminder scheduler.

Keeps exactly one deferred callback per eligible task:
- every change to the task list triggers a full rebuild,
- a rebuild cancels all previous callbacks before registering new ones,
- stale reminders (due time already passed) are skipped, never fired late,
- email reminders are delivered server-side and never scheduled here.

Full rebuilds are fine for per-user lists (tens of tasks); no diffing.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from ..core.ports import DeferredRunner
from .task_models import ReminderType, Task

logger = logging.getLogger(__name__)


def should_schedule(task: Task, now: float) -> float | None:
    """
    Delay in seconds until the task's push reminder, or None if it must not be scheduled.

    Not scheduled:
    - no reminder_at
    - completed tasks (even with a future reminder_at)
    - email reminders
    - reminder_at <= now (stale; skipped, not an error)
    """
    if task.reminder_at is None or task.completed:
        return None

    rtype = task.reminder_type or ReminderType.PUSH
    if rtype != ReminderType.PUSH:
        return None

    delay = float(task.reminder_at) - float(now)
    if delay <= 0:
        return None
    return delay


class LoopDeferredRunner:
    """DeferredRunner on top of an asyncio event loop (call_later / TimerHandle.cancel)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def schedule(self, fn: Callable[[], None], delay_s: float) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0.0, float(delay_s)), fn)

    def cancel(self, handle: Any) -> None:
        handle.cancel()


class ReminderScheduler:
    def __init__(
        self,
        deferred: DeferredRunner,
        on_fire: Callable[[Task], None],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._deferred = deferred
        self._on_fire = on_fire
        self._clock = clock
        self._handles: dict[str, Any] = {}
        self._delays: dict[str, float] = {}
        self._closed = False

    @property
    def pending(self) -> dict[str, float]:
        """task id -> delay (seconds) computed at the last rebuild."""
        return dict(self._delays)

    def cancel_all(self) -> None:
        for task_id, handle in list(self._handles.items()):
            try:
                self._deferred.cancel(handle)
            except Exception:
                logger.exception("cancel failed task_id=%s", task_id)
        self._handles.clear()
        self._delays.clear()

    def rebuild(self, tasks: Iterable[Task]) -> int:
        self.cancel_all()
        if self._closed:
            return 0

        now = self._clock()
        for task in tasks:
            delay = should_schedule(task, now)
            if delay is None:
                continue
            self._handles[task.id] = self._deferred.schedule(self._make_callback(task), delay)
            self._delays[task.id] = delay

        logger.debug("Reminder schedule rebuilt: %d pending", len(self._handles))
        return len(self._handles)

    def _make_callback(self, task: Task) -> Callable[[], None]:
        def fire() -> None:
            self._handles.pop(task.id, None)
            self._delays.pop(task.id, None)
            logger.info("Reminder due task_id=%s", task.id)
            try:
                self._on_fire(task)
            except Exception:
                logger.exception("Reminder callback failed task_id=%s", task.id)

        return fire

    def attach(self, store) -> Callable[[], None]:
        """Rebuild on every change of `store` (anything with subscribe(listener))."""
        return store.subscribe(self.rebuild)

    def close(self) -> None:
        self._closed = True
        self.cancel_all()
