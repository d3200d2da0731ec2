# tests/test_chat.py

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from mypsico.core.chat import APOLOGY, ChatBusyError, ChatSession, ImageAttachment, build_user_content
from mypsico.llm.offline import OfflineLLMClient

from .fakes import FailingLLMClient, FakeLLMClient

PNG_1PX = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


def test_reply_is_streamed_and_recorded() -> None:
    llm = FakeLLMClient(["Hola, ", "¿cómo estás?"])
    chat = ChatSession(llm, system_prompt="persona")

    assert "".join(chat.stream_reply("hola")) == "Hola, ¿cómo estás?"
    assert chat.history == [
        {"role": "user", "content": "hola"},
        {"role": "assistant", "content": "Hola, ¿cómo estás?"},
    ]
    messages, system_prompt = llm.calls[0]
    assert system_prompt == "persona"
    assert messages == [{"role": "user", "content": "hola"}]


def test_empty_message_sends_nothing() -> None:
    llm = FakeLLMClient()
    chat = ChatSession(llm)

    assert list(chat.stream_reply("   ")) == []
    assert llm.calls == []


def test_failure_yields_apology_and_keeps_turns_paired() -> None:
    chat = ChatSession(FailingLLMClient(after=1), system_prompt="p")

    out = "".join(chat.stream_reply("hola"))

    assert out.endswith(APOLOGY)
    assert chat.history[-1] == {"role": "assistant", "content": APOLOGY}
    assert isinstance(chat.last_error, RuntimeError)
    assert chat.busy is False


def test_busy_session_refuses_second_turn() -> None:
    chat = ChatSession(FakeLLMClient(["a", "b"]), system_prompt="p")

    first = chat.stream_reply("uno")
    next(first)
    with pytest.raises(ChatBusyError):
        next(chat.stream_reply("dos"))
    list(first)
    assert len(chat.history) == 2


def test_turn_guard_holds_across_threads() -> None:
    started = threading.Event()
    release = threading.Event()

    class SlowLLM:
        def stream_chat(self, messages, system_prompt):
            started.set()
            release.wait(timeout=5)
            yield "listo"

    chat = ChatSession(SlowLLM(), system_prompt="p")
    out: list[str] = []
    worker = threading.Thread(target=lambda: out.extend(chat.stream_reply("uno")))
    worker.start()
    assert started.wait(timeout=5)

    assert chat.busy is True
    with pytest.raises(ChatBusyError):
        list(chat.stream_reply("dos"))

    release.set()
    worker.join(timeout=5)
    assert out == ["listo"]
    assert chat.busy is False
    assert [m["content"] for m in chat.history] == ["uno", "listo"]


def test_history_is_trimmed_to_whole_turns() -> None:
    chat = ChatSession(FakeLLMClient(["ok"]), system_prompt="p", max_messages=5)

    for i in range(5):
        list(chat.stream_reply(f"m{i}"))

    assert len(chat.history) == 4
    assert chat.history[0] == {"role": "user", "content": "m3"}


def test_image_attachment_becomes_content_parts(tmp_path: Path) -> None:
    img = tmp_path / "dibujo.png"
    img.write_bytes(PNG_1PX)
    llm = FakeLLMClient(["Veo un dibujo."])
    chat = ChatSession(llm, system_prompt="p")

    chat.attach(img)
    list(chat.stream_reply("¿qué ves?"))

    content = llm.calls[0][0][-1]["content"]
    assert content[0] == {"type": "text", "text": "¿qué ves?"}
    assert content[1]["type"] == "image_url"
    assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")
    assert chat.pending_image is None


def test_image_only_turn_has_no_text_part() -> None:
    parts = build_user_content("", ImageAttachment("image/jpeg", "QUJD"))
    assert parts == [{"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,QUJD"}}]


def test_non_image_file_is_rejected(tmp_path: Path) -> None:
    f = tmp_path / "notas.txt"
    f.write_text("hola")
    with pytest.raises(ValueError):
        ImageAttachment.from_path(f)


def test_offline_client_reflects_last_user_message() -> None:
    chat = ChatSession(OfflineLLMClient(), system_prompt="p")

    reply = "".join(chat.stream_reply("me siento cansado"))

    assert "Modo sin conexión" in reply
    assert reply.endswith("me siento cansado")
