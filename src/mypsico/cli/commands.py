# src/mypsico/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import cast

from ..core.errors import TaskOperationError, failure_message, friendly_error_message
from ..core.state import AppState
from ..progress.report import fetch_progress_report, log_activity
from ..tasks.task_api import format_reminder, parse_reminder_time
from ..tasks.task_models import ReminderType, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console (/help, /todos, /remind, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Task errors come back as their user-facing message; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        nparams = len(inspect.signature(handler).parameters)
        try:
            if nparams >= 3:
                return await cast(CommandHandler3, handler)(state, args, emit)
            return await cast(CommandHandler2, handler)(state, args)
        except (TaskOperationError, ValueError) as e:
            return f"[ERROR] {friendly_error_message(e)}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _resolve(state: AppState, ref: str) -> Task:
    """
    Find a task by its 1-based position in /todos or by an id prefix.
    """
    tasks = state.store.tasks
    if ref.isdigit():
        idx = int(ref)
        if 1 <= idx <= len(tasks):
            return tasks[idx - 1]
    matches = [t for t in tasks if t.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    raise ValueError(f"No such task: {ref}")


def render_tasks(tasks: tuple[Task, ...] | list[Task]) -> str:
    if not tasks:
        return "No tienes tareas pendientes. ¡Añade una para empezar!"
    lines = ["Mis Tareas Diarias:"]
    for i, t in enumerate(tasks, start=1):
        mark = "x" if t.completed else " "
        lines.append(f"{i:>2}. [{mark}] {t.text}")
        reminder = format_reminder(t)
        if reminder:
            lines.append(f"       {reminder}")
    return "\n".join(lines)


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    backend = "Supabase" if getattr(s, "supabase_enabled", False) else "local SQLite (offline)"
    pending = len(state.reminders.scheduler.pending) if state.reminders else 0
    permission = state.reminders.notifier.permission.value if state.reminders else "-"
    models = ", ".join(list(getattr(s, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  User: {state.session.email or state.session.user_id} ({state.session.role.value})\n"
        f"  Task store: {backend}\n"
        f"  Scheduled push reminders: {pending}\n"
        f"  Notifications: {permission}\n"
        f"  Assistant models: {models}"
    )


async def cmd_todos(state: AppState, args: list[str]) -> str:
    """
    /todos          -> show cached list
    /todos reload   -> reload from the server (manual retry after a load error)
    """
    if args and args[0].lower() in ("reload", "refresh"):
        await state.store.load()
    return render_tasks(state.store.tasks)


async def cmd_add(state: AppState, args: list[str]) -> str:
    task = await state.store.add(" ".join(args))
    return f"Tarea añadida: {task.text}"


async def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <n>"
    task = await state.store.set_completed(_resolve(state, args[0]).id, True)
    return f"Completada: {task.text}"


async def cmd_undo(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /undo <n>"
    task = await state.store.set_completed(_resolve(state, args[0]).id, False)
    return f"Pendiente de nuevo: {task.text}"


async def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <n> <new text>"
    current = _resolve(state, args[0])
    task = await state.store.set_text(current.id, " ".join(args[1:]))
    if task is current:
        return "Sin cambios."
    return f"Tarea actualizada: {task.text}"


async def cmd_remind(state: AppState, args: list[str]) -> str:
    """
    /remind <n> <when> [push|email]
      when: +30m | +2h | +1d | HH:MM | YYYY-MM-DDTHH:MM
    """
    if len(args) < 2:
        return "Usage: /remind <n> <+30m|+2h|HH:MM|YYYY-MM-DDTHH:MM> [push|email]"
    current = _resolve(state, args[0])
    rtype = ReminderType.PUSH
    when_parts = args[1:]
    if when_parts[-1].lower() in ("push", "email"):
        rtype = ReminderType(when_parts[-1].lower())
        when_parts = when_parts[:-1]
    ts = parse_reminder_time(" ".join(when_parts))
    task = await state.store.set_reminder(current.id, ts, rtype)
    return f"{task.text} -> {format_reminder(task)}"


async def cmd_unremind(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /unremind <n>"
    task = await state.store.set_reminder(_resolve(state, args[0]).id, None, None)
    return f"Recordatorio eliminado: {task.text}"


async def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <n>"
    task = _resolve(state, args[0])
    await state.store.remove(task.id)
    return f"Tarea eliminada: {task.text}"


async def cmd_progress(state: AppState, args: list[str]) -> str:
    if state.activity is None:
        return "Progress report needs a Supabase project (offline mode)."
    try:
        points = await asyncio.to_thread(fetch_progress_report, state.activity, state.session.user_id)
    except Exception as e:
        logger.warning("Progress report failed: %s", e)
        raise TaskOperationError(failure_message(e, "progress"), operation="progress") from e
    if not points:
        return "Aún no hay actividades registradas en los últimos 30 días."
    lines = ["Progreso (30 días): fecha | ánimo | ansiedad | estrés | actividades"]
    for p in points:
        lines.append(f"  {p.date} | {p.mood:.1f} | {p.anxiety:.1f} | {p.stress:.1f} | {p.completed_tasks}")
    return "\n".join(lines)


async def cmd_log(state: AppState, args: list[str]) -> str:
    """
    /log <activity id> <mood> <anxiety> <stress> [reflection]
      scores are 1-5; the reflection is free text
    """
    if state.activity is None:
        return "Activity logging needs a Supabase project (offline mode)."
    if len(args) < 4:
        return "Usage: /log <activity id> <mood 1-5> <anxiety 1-5> <stress 1-5> [reflection]"
    try:
        content_id, mood, anxiety, stress = (int(a) for a in args[:4])
    except ValueError as e:
        raise ValueError("Activity id and scores must be whole numbers.") from e
    reflection = " ".join(args[4:])

    try:
        await asyncio.to_thread(
            log_activity,
            state.activity,
            user_id=state.session.user_id,
            content_id=content_id,
            reflection=reflection,
            mood=mood,
            anxiety=anxiety,
            stress=stress,
        )
    except ValueError:
        raise
    except Exception as e:
        logger.warning("Activity log failed: %s", e)
        raise TaskOperationError(failure_message(e, "activity"), operation="activity") from e
    return "Actividad registrada. ¡Buen trabajo!"


async def cmd_attach(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /attach <image path>  -> send the image with your next message
    /attach clear         -> drop the pending image
    """
    if state.chat is None:
        return "Assistant is not available."
    if not args:
        return "Usage: /attach <image path> | /attach clear"
    if args[0].lower() == "clear":
        state.chat.clear_attachment()
        return "Imagen descartada."
    path = " ".join(args)
    try:
        img = await asyncio.to_thread(state.chat.attach, path)
    except OSError as e:
        return f"[ERROR] Cannot read {path}: {e.strerror or e}"
    if emit is not None:
        emit("La imagen se enviará con tu próximo mensaje.")
    return f"Imagen adjunta ({img.mime_type})."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show session, task store and reminder status.")
registry.register("todos", cmd_todos, help_text="List tasks: /todos | /todos reload.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <text>.")
registry.register("done", cmd_done, help_text="Mark task completed: /done <n>.")
registry.register("undo", cmd_undo, help_text="Mark task open again: /undo <n>.")
registry.register("edit", cmd_edit, help_text="Edit task text: /edit <n> <text>.")
registry.register("remind", cmd_remind, help_text="Set reminder: /remind <n> <+30m|HH:MM|date> [push|email].")
registry.register("unremind", cmd_unremind, help_text="Clear reminder: /unremind <n>.")
registry.register("rm", cmd_rm, help_text="Delete task: /rm <n>.", aliases=["del"])
registry.register("progress", cmd_progress, help_text="30-day mood/anxiety/stress report.")
registry.register("log", cmd_log, help_text="Record a completed activity: /log <id> <mood> <anxiety> <stress> [reflection].")
registry.register("attach", cmd_attach, help_text="Attach an image to the next chat message.")
