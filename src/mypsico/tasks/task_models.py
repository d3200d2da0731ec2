# src/mypsico/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ReminderType(StrEnum):
    """
    Reminder delivery channel.

    Notes:
    - "push" reminders fire locally (in-process notification).
    - "email" reminders are delivered by a server-side job; never scheduled here.
    """

    PUSH = "push"
    EMAIL = "email"

    @classmethod
    def from_db(cls, raw: str | None) -> ReminderType:
        # Rows written before reminder_type existed count as push.
        if not raw:
            return cls.PUSH
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.PUSH


@dataclass(slots=True)
class Task:
    id: str
    text: str
    completed: bool
    owner: str
    created_at: float = 0.0

    reminder_at: float | None = None
    reminder_type: ReminderType | None = None

    @property
    def has_reminder(self) -> bool:
        return self.reminder_at is not None
