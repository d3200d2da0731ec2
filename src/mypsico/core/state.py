# src/mypsico/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..tasks.reminder_store import ReminderStore
    from ..tasks.task_api import ReminderSubsystem
    from .chat import ChatSession
    from .ports import ActivityLogSource


class Role(StrEnum):
    ADMIN = "admin"
    THERAPIST = "terapeuta"
    PATIENT = "paciente"


@dataclass(slots=True, frozen=True)
class UserSession:
    """
    The signed-in user. Passed explicitly to whatever needs it;
    there is no ambient "current user".
    """

    user_id: str
    email: str = ""
    role: Role = Role.PATIENT
    access_token: str | None = None


@dataclass
class AppState:
    settings: Any
    session: UserSession

    store: ReminderStore
    reminders: ReminderSubsystem | None = None
    chat: ChatSession | None = None
    activity: ActivityLogSource | None = None

