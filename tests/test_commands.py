# tests/test_commands.py

from __future__ import annotations

import pytest

from mypsico.cli.commands import CommandRegistry, registry
from mypsico.core.errors import TaskOperationError

from .fakes import InMemoryActivityLogSource


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    notes: list[str] = []

    async def h2(state, args):
        return "h2:" + ",".join(args)

    async def h3(state, args, emit):
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(state, "/a x y") == "h2:x,y"
    assert await reg.handle(state, "/AA") == "h2:"
    assert await reg.handle(state, "/b", emit=notes.append) == "h3"
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_task_errors_become_messages(state) -> None:
    reg = CommandRegistry()

    async def failing(state, args):
        raise TaskOperationError("No se pudo añadir la tarea.", operation="add")

    reg.register("f", failing, "f")
    assert await reg.handle(state, "/f") == "[ERROR] No se pudo añadir la tarea."


@pytest.mark.asyncio
async def test_todo_flow(state) -> None:
    assert "No tienes tareas" in await registry.handle(state, "/todos")

    assert await registry.handle(state, "/add Caminar 20 minutos") == "Tarea añadida: Caminar 20 minutos"
    assert "[ERROR]" in await registry.handle(state, "/add   ")

    reply = await registry.handle(state, "/remind 1 +2h email")
    assert "Recordatorio (Email)" in reply

    listing = await registry.handle(state, "/todos reload")
    assert " 1. [ ] Caminar 20 minutos" in listing
    assert "Recordatorio (Email)" in listing

    assert await registry.handle(state, "/edit 1 Caminar 20 minutos") == "Sin cambios."
    assert await registry.handle(state, "/done 1") == "Completada: Caminar 20 minutos"
    assert "[ERROR]" in await registry.handle(state, "/edit 1 Correr")

    listing = await registry.handle(state, "/todos")
    assert "[x]" in listing
    assert "Recordatorio" not in listing

    assert await registry.handle(state, "/rm 1") == "Tarea eliminada: Caminar 20 minutos"
    assert state.store.tasks == ()


@pytest.mark.asyncio
async def test_unknown_task_reference(state) -> None:
    assert await registry.handle(state, "/done 7") == "[ERROR] No such task: 7"


@pytest.mark.asyncio
async def test_past_reminder_is_refused(state) -> None:
    await registry.handle(state, "/add Dormir temprano")
    reply = await registry.handle(state, "/remind 1 2001-01-01T08:00")
    assert reply.startswith("[ERROR] Por favor, selecciona una fecha")


@pytest.mark.asyncio
async def test_progress_offline_and_status(state) -> None:
    assert "offline" in await registry.handle(state, "/progress")
    status = await registry.handle(state, "/status")
    assert "local SQLite" in status
    assert "paciente" in status


@pytest.mark.asyncio
async def test_log_records_activity(state) -> None:
    state.activity = InMemoryActivityLogSource()

    reply = await registry.handle(state, "/log 12 4 2 3 Hoy caminé por el parque")

    assert reply == "Actividad registrada. ¡Buen trabajo!"
    assert state.activity.rows == [
        {
            "user_id": "u1",
            "content_id": 12,
            "reflection": "Hoy caminé por el parque",
            "mood": 4,
            "anxiety": 2,
            "stress": 3,
        }
    ]


@pytest.mark.asyncio
async def test_log_rejects_bad_scores_without_remote_call(state) -> None:
    state.activity = InMemoryActivityLogSource()

    assert (await registry.handle(state, "/log 12 9 2 3")).startswith("[ERROR] mood must be between 1 and 5")
    assert (await registry.handle(state, "/log 12 bien 2 3")).startswith("[ERROR]")
    assert "Usage" in await registry.handle(state, "/log 12 4")
    assert state.activity.rows == []


@pytest.mark.asyncio
async def test_log_failure_and_offline(state) -> None:
    assert "offline" in await registry.handle(state, "/log 1 3 3 3")

    state.activity = InMemoryActivityLogSource()
    state.activity.fail_with = ConnectionError("")
    assert await registry.handle(state, "/log 1 3 3 3") == "[ERROR] No se pudo registrar la actividad."
