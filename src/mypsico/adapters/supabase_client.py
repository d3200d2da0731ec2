# src/mypsico/adapters/supabase_client.py

"""
Supabase client construction + password sign-in.

One client per process (thread-safe singleton); table calls run in worker
threads, so the client must be shareable.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from supabase import Client, create_client
from supabase.lib.client_options import SyncClientOptions

from ..core.state import Role, UserSession

logger = logging.getLogger(__name__)

__all__ = ["supa", "supa_reset", "sign_in"]

_client_lock = threading.Lock()
_client: Optional[Client] = None


def _build_client(url: str, key: str, *, timeout_s: float, schema: str) -> Client:
    opts = SyncClientOptions(
        postgrest_client_timeout=timeout_s,
        storage_client_timeout=timeout_s,
        headers={"X-Client-Info": "mypsico-console"},
        schema=(schema or "public"),
    )
    return create_client(url, key, options=opts)


def supa(settings) -> Client:
    """Thread-safe singleton Supabase client built from settings."""
    global _client
    if _client is not None:
        return _client
    with _client_lock:
        if _client is None:
            url = (getattr(settings, "supabase_url", "") or "").strip()
            key = (getattr(settings, "supabase_key", "") or "").strip()
            if not url or not key:
                raise RuntimeError(
                    "Supabase is not configured. Set MYPSICO_SUPABASE_URL and MYPSICO_SUPABASE_KEY in your .env."
                )
            _client = _build_client(
                url,
                key,
                timeout_s=float(getattr(settings, "api_timeout_seconds", 15.0)),
                schema=getattr(settings, "supabase_schema", "public"),
            )
            logger.info("Supabase client ready url=%s", url)
    return _client


def supa_reset() -> None:
    """Reset the cached client (tests, key rotation)."""
    global _client
    with _client_lock:
        _client = None


def sign_in(client: Client, email: str, password: str) -> UserSession:
    """
    Password sign-in via Supabase Auth, then read the role from `profiles`.

    Auth errors propagate; a missing profile row only downgrades to the patient role.
    """
    resp = client.auth.sign_in_with_password({"email": email, "password": password})
    user = getattr(resp, "user", None)
    if user is None or not getattr(user, "id", None):
        raise RuntimeError("Sign-in returned no user.")

    session = getattr(resp, "session", None)
    token = getattr(session, "access_token", None) if session is not None else None

    role = Role.PATIENT
    try:
        res = client.table("profiles").select("role").eq("id", user.id).limit(1).execute()
        rows = res.data or []
        if rows and rows[0].get("role"):
            role = Role(rows[0]["role"])
    except ValueError:
        logger.warning("Unknown role on profile id=%s; using patient", user.id)
    except Exception:
        logger.warning("Profile lookup failed for id=%s; using patient", user.id, exc_info=True)

    logger.info("Signed in user_id=%s role=%s", user.id, role.value)
    return UserSession(user_id=str(user.id), email=str(getattr(user, "email", "") or email), role=role, access_token=token)
