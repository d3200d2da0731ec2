# src/mypsico/tasks/task_api.py

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime

from ..core.ports import DeferredRunner, NotificationCenter
from .notifier import DEFAULT_TITLE, Notifier
from .reminder_store import ReminderStore
from .task_models import ReminderType, Task
from .task_scheduler import LoopDeferredRunner, ReminderScheduler

logger = logging.getLogger(__name__)

_MONTHS_ES = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sep", "oct", "nov", "dic")


class ReminderSubsystem:
    """
    Wires store -> scheduler -> notifier.

    Use ReminderSubsystem.start(...) from inside a running event loop; call close() on teardown.
    """

    def __init__(self, store: ReminderStore, notifier: Notifier, scheduler: ReminderScheduler) -> None:
        self.store = store
        self.notifier = notifier
        self.scheduler = scheduler
        self._unsubscribe: Callable[[], None] | None = None

    @classmethod
    async def start(
        cls,
        store: ReminderStore,
        center: NotificationCenter,
        *,
        title: str = DEFAULT_TITLE,
        deferred: DeferredRunner | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] = time.time,
        load: bool = True,
    ) -> ReminderSubsystem:
        """
        Request notification permission (once, if undetermined), subscribe the
        scheduler to the store and load the list.

        A failed load closes the subsystem before the error propagates, so nothing
        stays subscribed. To keep reminders running across a failed first load, pass
        load=False and call store.load() yourself (see cli.bootstrap.start_reminders).
        """
        notifier = Notifier(center, title=title)
        scheduler = ReminderScheduler(
            deferred or LoopDeferredRunner(loop),
            notifier.notify,
            clock=clock,
        )
        sub = cls(store, notifier, scheduler)

        await notifier.start()
        sub._unsubscribe = scheduler.attach(store)
        # Anything already cached gets scheduled right away.
        scheduler.rebuild(store.tasks)

        if load:
            try:
                await store.load()
            except BaseException:
                sub.close()
                raise
        return sub

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.scheduler.close()
        logger.debug("Reminder subsystem closed")


def format_reminder_date(ts: float) -> str:
    """Local time, e.g. '14 mar 10:30'."""
    d = datetime.fromtimestamp(ts).astimezone()
    return f"{d.day} {_MONTHS_ES[d.month - 1]} {d:%H:%M}"


def format_reminder(task: Task) -> str:
    """Reminder line shown under an open task; empty when there is nothing to show."""
    if not task.has_reminder or task.completed:
        return ""
    label = "Email" if task.reminder_type == ReminderType.EMAIL else "Push"
    return f"Recordatorio ({label}): {format_reminder_date(task.reminder_at)}"


def parse_reminder_time(raw: str, *, now: float | None = None) -> float:
    """
    Parse user input into an epoch timestamp.

    Accepted:
    - relative: '+30m', '+2h', '+1d' (also '+45' = minutes)
    - local datetime: 'YYYY-MM-DDTHH:MM' or 'YYYY-MM-DD HH:MM'
    - local time today: 'HH:MM'
    """
    s = (raw or "").strip()
    if not s:
        raise ValueError("Empty reminder time.")
    base = time.time() if now is None else float(now)

    if s.startswith("+"):
        body = s[1:].strip().lower()
        units = {"m": 60, "h": 3600, "d": 86400}
        mult = 60
        if body and body[-1] in units:
            mult = units[body[-1]]
            body = body[:-1]
        try:
            amount = float(body)
        except ValueError as e:
            raise ValueError(f"Bad relative time: {raw}") from e
        return base + amount * mult

    if len(s) <= 5 and ":" in s:
        hh, mm = s.split(":", 1)
        today = datetime.fromtimestamp(base).astimezone()
        d = today.replace(hour=int(hh), minute=int(mm), second=0, microsecond=0)
        return d.timestamp()

    d = datetime.fromisoformat(s.replace(" ", "T", 1))
    if d.tzinfo is None:
        d = d.astimezone()
    return d.timestamp()
