# db.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import streamlit as st
from supabase import create_client

log = logging.getLogger(__name__)


# -------------------------
# SECRETS / SETTINGS
# -------------------------
def get_secret(key: str, default=None):
    # Railway / docker (env vars)
    if os.getenv(key):
        return os.getenv(key)

    # Streamlit Cloud (secrets); st.secrets raises if no secrets.toml exists
    try:
        if hasattr(st, "secrets") and key in st.secrets:
            return st.secrets[key]
    except Exception:
        log.debug("st.secrets unavailable while reading %s", key)

    return default


def _int_setting(key: str, default: int) -> int:
    raw = get_secret(key)
    try:
        return int(raw) if raw not in (None, "") else default
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    schema: str = "public"
    table: str = "loans"
    soon_days: int = 3
    log_level: str = "INFO"
    log_format: str = "standard"

    @property
    def is_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def load_settings() -> Settings:
    return Settings(
        supabase_url=get_secret("SUPABASE_URL"),
        supabase_anon_key=get_secret("SUPABASE_ANON_KEY"),
        schema=str(get_secret("LOANS_SCHEMA", "public")),
        table=str(get_secret("LOANS_TABLE", "loans")),
        soon_days=_int_setting("LOANS_SOON_DAYS", 3),
        log_level=str(get_secret("LOG_LEVEL", "INFO")),
        log_format=str(get_secret("LOG_FORMAT", "standard")),
    )


# -------------------------
# SUPABASE CLIENTS
# -------------------------
def _extract_access_token(session: Any) -> Optional[str]:
    """
    Tries to pull an access token from various session shapes:
    - supabase-py session object: session.access_token
    - dict-like session: session["access_token"]
    """
    if session is None:
        return None

    token = getattr(session, "access_token", None)
    if token:
        return token

    if isinstance(session, dict):
        return session.get("access_token") or None

    return None


def _extract_refresh_token(session: Any) -> Optional[str]:
    if session is None:
        return None
    token = getattr(session, "refresh_token", None)
    if token:
        return token
    if isinstance(session, dict):
        return session.get("refresh_token") or None
    return None


def public_client(settings: Settings):
    """Anon client, used for auth calls before a session exists."""
    return create_client(settings.supabase_url, settings.supabase_anon_key)


def authed_client(supabase_url: str, supabase_anon_key: str, session: Any):
    """
    Creates a Supabase client and attaches the user's JWT to PostgREST
    so that RLS policies (owner = auth.uid()) apply to every loans query.
    """
    c = create_client(supabase_url, supabase_anon_key)

    token = _extract_access_token(session)
    if token:
        c.postgrest.auth(token)

        refresh = _extract_refresh_token(session)
        if refresh:
            try:
                c.auth.set_session(token, refresh)
            except Exception:
                log.debug("auth.set_session failed; PostgREST keeps the bearer token", exc_info=True)

    return c

