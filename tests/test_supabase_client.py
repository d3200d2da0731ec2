# tests/test_supabase_client.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from mypsico.adapters.supabase_client import sign_in, supa, supa_reset
from mypsico.core.state import Role

from .fakes import FakeSupabaseClient


class FakeAuth:
    def __init__(self, user_id: str | None = "uid-1") -> None:
        self.user_id = user_id
        self.credentials: list[dict[str, str]] = []

    def sign_in_with_password(self, credentials: dict[str, str]):
        self.credentials.append(credentials)
        user = SimpleNamespace(id=self.user_id, email=credentials["email"]) if self.user_id else None
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token="jwt"))


class AuthClient(FakeSupabaseClient):
    def __init__(self, profile_rows, user_id: str | None = "uid-1") -> None:
        super().__init__(profile_rows)
        self.auth = FakeAuth(user_id)


@pytest.fixture(autouse=True)
def _fresh_client():
    supa_reset()
    yield
    supa_reset()


def test_supa_requires_url_and_key() -> None:
    with pytest.raises(RuntimeError):
        supa(SimpleNamespace(supabase_url="", supabase_key=None))


def test_sign_in_reads_role_from_profile() -> None:
    client = AuthClient([{"role": "terapeuta"}])

    session = sign_in(client, "ana@example.com", "secret")

    assert session.user_id == "uid-1"
    assert session.role is Role.THERAPIST
    assert session.access_token == "jwt"
    table, ops = client.executed[0]
    assert table == "profiles"
    assert ("eq", ("id", "uid-1")) in ops


def test_missing_or_unknown_profile_role_means_patient() -> None:
    assert sign_in(AuthClient([]), "a@example.com", "x").role is Role.PATIENT
    assert sign_in(AuthClient([{"role": "superuser"}]), "a@example.com", "x").role is Role.PATIENT


def test_sign_in_without_user_fails() -> None:
    with pytest.raises(RuntimeError):
        sign_in(AuthClient([], user_id=None), "a@example.com", "x")
