# src/mypsico/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.ports import ChatMessage


def _last_user_text(messages: list[ChatMessage]) -> tuple[str, bool]:
    """Text of the last user message and whether it carried an image."""
    for m in reversed(messages):
        if m.get("role") != "user":
            continue
        content = m.get("content")
        if isinstance(content, str):
            return content, False
        texts: list[str] = []
        has_image = False
        for part in content or []:
            if part.get("type") == "text":
                texts.append(str(part.get("text", "")))
            elif part.get("type") == "image_url":
                has_image = True
        return " ".join(texts).strip(), has_image
    return "", False


class OfflineLLMClient:
    """
    Offline deterministic LLM client used when no external API is configured.
    Reflects the user's message back; never calls the network.
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        user_text, has_image = _last_user_text(messages)
        attached = " (con una imagen adjunta)" if has_image else ""

        yield (
            "Modo sin conexión: el asistente de IA no está configurado.\n"
            "Define MYPSICO_LLM_API_KEY (y MYPSICO_LLM_MODELS) para obtener respuestas reales.\n\n"
            f"Has escrito{attached}: {user_text}"
        )
