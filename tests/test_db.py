"""Tests for settings and the authenticated Supabase client."""

from types import SimpleNamespace

import pytest

import db

SETTING_KEYS = [
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "LOANS_SCHEMA",
    "LOANS_TABLE",
    "LOANS_SOON_DAYS",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in SETTING_KEYS:
        monkeypatch.delenv(key, raising=False)
    # no secrets.toml in tests
    monkeypatch.setattr(db.st, "secrets", {}, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    s = db.load_settings()
    assert s == db.Settings()
    assert not s.is_configured


def test_from_env(clean_env):
    clean_env.setenv("SUPABASE_URL", "https://example.supabase.co")
    clean_env.setenv("SUPABASE_ANON_KEY", "anon")
    clean_env.setenv("LOANS_SCHEMA", "lending")
    clean_env.setenv("LOANS_SOON_DAYS", "5")
    clean_env.setenv("LOG_FORMAT", "json")

    s = db.load_settings()

    assert s.is_configured
    assert (s.schema, s.table, s.soon_days, s.log_format) == ("lending", "loans", 5, "json")


def test_secrets_fallback(clean_env):
    clean_env.setattr(db.st, "secrets", {"LOANS_TABLE": "micro_loans"}, raising=False)
    assert db.load_settings().table == "micro_loans"


def test_bad_int_setting_uses_default(clean_env):
    clean_env.setenv("LOANS_SOON_DAYS", "soon")
    assert db.load_settings().soon_days == 3


class FakeClient:
    def __init__(self):
        self.tokens = []
        self.sessions = []
        self.postgrest = SimpleNamespace(auth=self.tokens.append)
        self.auth = SimpleNamespace(set_session=lambda a, r: self.sessions.append((a, r)))


def test_authed_client_attaches_token(monkeypatch):
    client = FakeClient()
    monkeypatch.setattr(db, "create_client", lambda url, key: client)

    out = db.authed_client("https://x", "anon", {"access_token": "jwt", "refresh_token": "r"})

    assert out is client
    assert client.tokens == ["jwt"]
    assert client.sessions == [("jwt", "r")]


def test_authed_client_without_session(monkeypatch):
    client = FakeClient()
    monkeypatch.setattr(db, "create_client", lambda url, key: client)

    db.authed_client("https://x", "anon", None)

    assert client.tokens == []
