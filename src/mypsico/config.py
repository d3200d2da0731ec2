# src/mypsico/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Offline mode (local SQLite, offline LLM) when nothing is configured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "MYPSICO"

# Real environment wins over .env.
load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Supabase (remote task store + auth) ----
    supabase_url: str
    supabase_key: Optional[str]
    supabase_schema: str
    todos_table: str
    activity_table: str

    # ---- Session ----
    user_email: str
    user_password: str
    user_id: str

    # ---- Remote calls ----
    api_timeout_seconds: float

    # ---- Notifications ----
    notification_title: str
    notification_permission: str
    grant_notifications: bool

    # ---- Assessment chat (OpenAI-compatible) ----
    llm_api_key: Optional[str]
    llm_base_url: str
    llm_models: List[str]

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "MyPsico")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/mypsico"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "todos.sqlite3")

        supabase_url = (_first_env(_k("SUPABASE_URL"), "SUPABASE_URL", default="") or "").strip()
        supabase_key = _first_env(_k("SUPABASE_KEY"), "SUPABASE_ANON_KEY", "SUPABASE_KEY", default=None)
        supabase_schema = _env(_k("SUPABASE_SCHEMA"), "public")
        todos_table = _env(_k("TODOS_TABLE"), "todos")
        activity_table = _env(_k("ACTIVITY_TABLE"), "activity_logs")

        user_email = _env(_k("USER_EMAIL"), "").strip()
        user_password = _env(_k("USER_PASSWORD"), "")
        user_id = _env(_k("USER_ID"), "local-user").strip() or "local-user"

        api_timeout_seconds = max(0.1, _env_float(_k("API_TIMEOUT_SECONDS"), 15.0))

        notification_title = _env(_k("NOTIFICATION_TITLE"), "Recordatorio de Tarea: DOM+M")
        notification_permission = _env(_k("NOTIFICATION_PERMISSION"), "default").strip().lower()
        grant_notifications = _env_bool(_k("GRANT_NOTIFICATIONS"), True)

        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENAI_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "google/gemini-2.5-flash",
                "openai/gpt-4o-mini",
            ],
        )

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            supabase_schema=supabase_schema,
            todos_table=todos_table,
            activity_table=activity_table,
            user_email=user_email,
            user_password=user_password,
            user_id=user_id,
            api_timeout_seconds=api_timeout_seconds,
            notification_title=notification_title,
            notification_permission=notification_permission,
            grant_notifications=grant_notifications,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
