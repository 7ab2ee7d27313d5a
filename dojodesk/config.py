"""Runtime settings for DojoDesk.

Values come from Streamlit secrets first and environment variables second:

    [supabase]
    url = "https://<project>.supabase.co"
    anon_key = "..."

    [app]
    log_level = "INFO"
    log_file = "logs/dojodesk_{time:YYYY-MM-DD}.log"
    club_name = "Northside Judo"
    debug = false
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

try:
    import streamlit as st
except Exception:  # pragma: no cover - allow headless usage (tests / CLI)
    st = None


class SupabaseConfigError(RuntimeError):
    """Raised when Supabase credentials are missing from secrets or env."""


MISSING_CONFIG_MSG = (
    "Supabase secrets missing. Add `[supabase].url` and `[supabase].anon_key` to "
    "`.streamlit/secrets.toml` or set SUPABASE_URL and SUPABASE_ANON_KEY environment "
    "variables."
)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    log_level: str = "INFO"
    log_file: Optional[str] = None
    club_name: str = "DojoDesk"
    debug: bool = False


def _secrets_section(name: str) -> Dict[str, Any]:
    if st is None:
        return {}
    try:
        section = st.secrets[name]
    except Exception:  # missing secrets.toml or section
        return {}
    try:
        return dict(section)
    except (TypeError, ValueError):
        return {}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUTHY


def read_supabase_config() -> Dict[str, str]:
    """Return ``{"url", "anon_key"}`` or raise :class:`SupabaseConfigError`."""
    section = _secrets_section("supabase")
    url = section.get("url") or os.getenv("SUPABASE_URL")
    key = section.get("anon_key") or os.getenv("SUPABASE_ANON_KEY")
    if not url or not key:
        raise SupabaseConfigError(MISSING_CONFIG_MSG)
    return {"url": url, "anon_key": key}


def load_settings() -> Settings:
    supabase = read_supabase_config()
    app = _secrets_section("app")
    return Settings(
        supabase_url=supabase["url"],
        supabase_anon_key=supabase["anon_key"],
        log_level=str(app.get("log_level") or os.getenv("DOJODESK_LOG_LEVEL") or "INFO").upper(),
        log_file=app.get("log_file") or os.getenv("DOJODESK_LOG_FILE") or None,
        club_name=app.get("club_name") or os.getenv("DOJODESK_CLUB_NAME") or "DojoDesk",
        debug=_as_bool(app.get("debug", os.getenv("DOJODESK_DEBUG"))),
    )


__all__ = [
    "MISSING_CONFIG_MSG",
    "Settings",
    "SupabaseConfigError",
    "load_settings",
    "read_supabase_config",
]
