# src/mypsico/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the remote store, notification surface, timers and LLM provider
swappable and makes testing easier.
"""

from typing import Any, Awaitable, Callable, Iterable, Protocol

ChatMessage = dict[str, Any]
# OpenAI-style chat messages: {"role": "...", "content": str | list[part]}.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class TaskGateway(Protocol):
    """
    Remote task store (blocking, like the supabase SDK).

    Mutations return the full updated row. Errors carry a human-readable message.
    """

    def list_tasks(self, owner_id: str) -> list[Any]: ...
    def insert_task(self, text: str, owner_id: str) -> Any: ...
    def update_task(self, task_id: str, fields: dict[str, Any]) -> Any: ...
    def delete_task(self, task_id: str) -> None: ...


class ActivityLogSource(Protocol):
    def list_activity_logs(self, user_id: str, *, since_ts: float) -> list[Any]: ...
    def insert_activity_log(self, row: dict[str, Any]) -> Any: ...


class DeferredRunner(Protocol):
    """One-shot timers: schedule(fn, delay_s) -> handle; cancel(handle)."""

    def schedule(self, fn: Callable[[], None], delay_s: float) -> Any: ...
    def cancel(self, handle: Any) -> None: ...


class NotificationCenter(Protocol):
    """
    Local notification surface.

    permission is tri-state: "default" | "granted" | "denied".
    """

    @property
    def permission(self) -> Any: ...

    def request_permission(self) -> Awaitable[Any]: ...
    def show(self, title: str, body: str) -> None: ...
