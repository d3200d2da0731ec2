# src/mypsico/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
import threading
from datetime import datetime

from ..cli.bootstrap import start_reminders
from ..cli.commands import registry as command_registry
from ..cli.commands import render_tasks
from ..core.chat import ChatBusyError
from ..core.state import AppState
from ..llm.client import friendly_llm_error_message

logger = logging.getLogger(__name__)

PROMPT = ">>> Tú: "


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _settle(fut: asyncio.Future, value: str | None, exc: BaseException | None) -> None:
    if fut.done():
        return
    if exc is not None:
        fut.set_exception(exc)
    else:
        fut.set_result(value)


async def _ainput(prompt: str) -> str:
    """
    input() on a daemon thread, so Ctrl+C / loop shutdown never waits on a blocked read.
    """
    loop = asyncio.get_running_loop()
    fut: asyncio.Future = loop.create_future()

    def reader() -> None:
        try:
            line = input(prompt)
        except BaseException as e:  # EOFError, KeyboardInterrupt
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(_settle, fut, None, e)
            return
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(_settle, fut, line, None)

    threading.Thread(target=reader, name="console-input", daemon=True).start()
    return await fut


def _emit(text: str) -> None:
    # Reminders fire while input() is blocked in a worker thread; re-show the prompt after.
    print(text, flush=True)
    if text.startswith("\n"):
        print(PROMPT, end="", flush=True)


async def _stream_chat(state: AppState, text: str) -> None:
    chat = state.chat
    if chat is None:
        _print_ts("[ASISTENTE] No disponible.")
        return

    app_name = str(getattr(state.settings, "app_name", "MyPsico"))
    printed = False

    def run() -> None:
        nonlocal printed
        for piece in chat.stream_reply(text):
            if not printed:
                print(f"[{_ts_local()}] <<< {app_name}: ", end="", flush=True)
                printed = True
            print(piece, end="", flush=True)

    # The LLM stream is blocking; keep the loop free so reminders still fire.
    try:
        await asyncio.to_thread(run)
    except ChatBusyError as e:
        _print_ts(f"[ASISTENTE] {e}")
        return

    if chat.last_error is not None:
        logger.info("Assistant error: %s", friendly_llm_error_message(chat.last_error))
    print("\n" if printed else "")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (user=%s).", state.session.user_id)
    _print_ts("[CONSOLE] Escribe /help para ver los comandos, /exit para salir.\n")

    load_error = await start_reminders(state, _emit)
    if load_error:
        _print_ts(f"[ERROR] {load_error} Usa /todos reload para reintentar.")
    else:
        print(render_tasks(state.store.tasks) + "\n")

    try:
        while True:
            try:
                user_input = (await _ainput(PROMPT)).strip()
                _rewrite_prev_line(f"[{_ts_local()}] {PROMPT}{user_input}")
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                cmd_response = await command_registry.handle(state, user_input, emit=_emit)
            except Exception:
                logger.exception("Command handler crashed.")
                cmd_response = "Internal error while handling a command."

            if cmd_response is not None:
                _print_ts(cmd_response)
                continue

            try:
                await _stream_chat(state, user_input)
            except Exception:
                logger.exception("Console chat handler crashed.")
                _print_ts("Internal error while generating a reply.")
    finally:
        if state.reminders is not None:
            state.reminders.close()
        logger.info("Console connector finished.")
