# src/mypsico/core/errors.py

"""
Error types surfaced to the user.

Remote failures are not classified (network, validation and authorization all
look the same); only timeouts get their own type so the UI can say "the server
is slow". Every error carries a display-ready, localized `user_message`.
"""

from __future__ import annotations

# Localized fallbacks, keyed by operation.
DEFAULT_MESSAGES: dict[str, str] = {
    "load": "No se pudieron cargar las tareas.",
    "add": "No se pudo añadir la tarea.",
    "update": "No se pudo actualizar la tarea.",
    "edit": "No se pudo guardar la tarea.",
    "delete": "No se pudo eliminar la tarea.",
    "reminder": "No se pudo guardar el recordatorio.",
    "progress": "No se pudo cargar el progreso.",
    "activity": "No se pudo registrar la actividad.",
}

GENERIC_MESSAGE = "La operación no se pudo completar."


def timeout_message(timeout_s: float) -> str:
    return (
        f"La operación tardó demasiado en responder (más de {timeout_s:g} segundos). "
        "Esto puede deberse a un problema de conexión o a que el servidor no está activo."
    )


class TaskOperationError(RuntimeError):
    """A remote task operation failed; local state was left unchanged."""

    def __init__(self, user_message: str, *, operation: str = "") -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.operation = operation


class TaskLoadError(TaskOperationError):
    """Loading the task list failed (page-level error; retry manually)."""


class TaskTimeoutError(TaskOperationError):
    """The remote store did not answer within the configured timeout."""

    def __init__(self, timeout_s: float, *, operation: str = "") -> None:
        super().__init__(timeout_message(timeout_s), operation=operation)
        self.timeout_s = timeout_s


def failure_message(exc: BaseException, operation: str) -> str:
    """
    Prefer the underlying failure's own message (postgrest APIError exposes
    `.message`), else the localized fallback for the operation.
    """
    raw = getattr(exc, "message", None)
    if not isinstance(raw, str) or not raw.strip():
        raw = str(exc)
    raw = raw.strip()
    if raw:
        return raw
    return DEFAULT_MESSAGES.get(operation, GENERIC_MESSAGE)


def friendly_error_message(err: BaseException) -> str:
    if isinstance(err, TaskOperationError):
        return err.user_message
    msg = str(err).strip()
    return msg or GENERIC_MESSAGE
