# src/mypsico/core/chat.py

"""
Assessment chat session.

Transport-agnostic: the console (or any other front end) feeds text and an
optional image, and renders the streamed reply.

Key invariants:
- a turn is user message + assistant message; both are appended once the
  stream ends (successfully or not), never half-way,
- on failure the assistant message becomes a fixed apology, so the history
  stays alternating user/assistant,
- only one turn runs at a time, across threads (`busy`).
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .persona import get_system_prompt
from .ports import ChatMessage, LLMClient

logger = logging.getLogger(__name__)

APOLOGY = "Lo siento, algo salió mal. Por favor, intenta de nuevo."
MAX_IMAGE_BYTES = 8 * 1024 * 1024


class ChatBusyError(RuntimeError):
    pass


@dataclass(slots=True, frozen=True)
class ImageAttachment:
    mime_type: str
    data_b64: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data_b64}"

    @classmethod
    def from_path(cls, path: str | Path) -> ImageAttachment:
        p = Path(path).expanduser()
        mime, _ = mimetypes.guess_type(p.name)
        if not mime or not mime.startswith("image/"):
            raise ValueError(f"Not an image file: {p.name}")
        raw = p.read_bytes()
        if len(raw) > MAX_IMAGE_BYTES:
            raise ValueError(f"Image too large ({len(raw)} bytes, max {MAX_IMAGE_BYTES}).")
        return cls(mime_type=mime, data_b64=base64.b64encode(raw).decode("ascii"))


def build_user_content(text: str, image: ImageAttachment | None) -> str | list[dict[str, Any]]:
    """Plain string for text-only turns; OpenAI content parts when an image is attached."""
    if image is None:
        return text
    parts: list[dict[str, Any]] = []
    if text.strip():
        parts.append({"type": "text", "text": text})
    parts.append({"type": "image_url", "image_url": {"url": image.data_url}})
    return parts


class ChatSession:
    def __init__(self, llm: LLMClient, *, system_prompt: str | None = None, max_messages: int = 40) -> None:
        self._llm = llm
        self._system_prompt = system_prompt
        self._max_messages = max(2, int(max_messages) // 2 * 2)
        self.history: list[ChatMessage] = []
        self.pending_image: ImageAttachment | None = None
        self._turn_lock = threading.Lock()
        self.last_error: Exception | None = None

    @property
    def busy(self) -> bool:
        return self._turn_lock.locked()

    def attach(self, path: str | Path) -> ImageAttachment:
        self.pending_image = ImageAttachment.from_path(path)
        logger.debug("Image attached (%s)", self.pending_image.mime_type)
        return self.pending_image

    def clear_attachment(self) -> None:
        self.pending_image = None

    def stream_reply(self, text: str) -> Iterator[str]:
        """
        Send one user turn and yield reply chunks.

        Empty text with no attachment yields nothing. LLM failures are not raised:
        the apology is yielded instead and recorded in history; see last_error.
        """
        text = (text or "").strip()
        image = self.pending_image
        if not text and image is None:
            return
        if not self._turn_lock.acquire(blocking=False):
            raise ChatBusyError("A reply is already being generated.")

        self.pending_image = None
        self.last_error = None

        user_msg: ChatMessage = {"role": "user", "content": build_user_content(text, image)}
        messages = [*self.history, user_msg]
        reply = ""
        try:
            try:
                for chunk in self._llm.stream_chat(messages, self._system_prompt or get_system_prompt()):
                    if chunk:
                        reply += chunk
                        yield chunk
            except Exception as e:
                logger.warning("Chat stream failed: %s", e)
                self.last_error = e
                reply = APOLOGY
                yield APOLOGY

            self.history.extend([user_msg, {"role": "assistant", "content": reply}])
            if len(self.history) > self._max_messages:
                self.history = self.history[-self._max_messages:]
        finally:
            # Generators may be resumed from another thread; a plain Lock allows that.
            self._turn_lock.release()
