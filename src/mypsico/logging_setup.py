# src/mypsico/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "mypsico.log"

# Supabase/OpenAI clients log every HTTP round-trip at INFO.
CHATTY_LIBRARIES = ("httpx", "httpcore", "openai", "postgrest", "supabase", "gotrue", "realtime")

# Per-logger console floors inside the app; reminders already print themselves.
APP_CONSOLE_FLOORS = {
    "mypsico.tasks.task_scheduler": logging.WARNING,
    "mypsico.tasks.notifier": logging.WARNING,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    The REPL shares stderr with the prompt, so only app records reach it;
    third-party and py.warnings records need ERROR+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith("mypsico."):
            return record.levelno >= logging.ERROR
        for prefix, floor in APP_CONSOLE_FLOORS.items():
            if record.name.startswith(prefix):
                return record.levelno >= floor
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/mypsico",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console: short lines, filtered. File (<log_dir>/mypsico.log): everything
    from file_level up, including reminder scheduling and gateway timings.

    Safe to call again (e.g. from tests); previous handlers are replaced.
    Returns the log file path.
    """
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)-7s [%(threadName)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    for name in CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
