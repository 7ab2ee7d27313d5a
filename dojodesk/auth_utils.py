"""Detection and cleanup of invalid or expired Supabase sessions."""
from __future__ import annotations

from typing import Any

import streamlit as st
from loguru import logger
from supabase import AuthApiError

from dojodesk.supabase_client import (
    SESSION_EXPIRED_MSG,
    clear_session_state,
    get_client,
    session_value,
    sign_out as supabase_sign_out,
)

__all__ = [
    "clear_auth_session",
    "handle_auth_error",
    "is_session_error",
    "recover_session",
]

SESSION_ERROR_MARKERS = (
    "Auth session missing",
    "Refresh Token",
    "Invalid Refresh Token",
    "refresh_token_not_found",
    "Session not found",
    "Invalid session",
    "Session expired",
    "Token expired",
    "JWT expired",
    "AuthApiError",
)

# Session-scoped keys that hold data fetched under the old session.
_CACHED_DATA_PREFIXES = ("results__", "competitions__", "analytics__", "wizard__")


def is_session_error(error: Any) -> bool:
    """Return True when ``error`` means the stored session is unusable."""
    if error is None:
        return False
    if isinstance(error, AuthApiError) or type(error).__name__ == "AuthApiError":
        return True

    message = getattr(error, "message", None) or str(error)
    if any(marker in message for marker in SESSION_ERROR_MARKERS):
        return True

    code = getattr(error, "code", None)
    if code and "SESSION" in str(code).upper():
        return True

    return getattr(error, "status", None) == 401


def clear_auth_session(reason: str | None = None) -> None:
    """Drop cached tokens and any page data loaded under the old session."""
    clear_session_state(reason)
    for key in list(st.session_state.keys()):
        if str(key).startswith(_CACHED_DATA_PREFIXES):
            del st.session_state[key]


def handle_auth_error(error: Any) -> bool:
    """Sign out and send the user back to the login form on session errors.

    Returns False when the caller should handle ``error`` itself. For session
    errors the state is cleared before ``st.rerun()``, which raises to restart
    the script, so this never returns; the trailing ``True`` is only seen when
    ``st.rerun`` is stubbed out.
    """
    if not is_session_error(error):
        return False

    logger.warning("[Auth:handle_auth_error] clearing session: {}", error)
    try:
        supabase_sign_out()
    except Exception as exc:
        logger.error("[Auth:handle_auth_error] sign_out failed: {}", exc)
    clear_auth_session(SESSION_EXPIRED_MSG)
    st.session_state["current_page"] = None
    st.rerun()
    return True


def recover_session() -> bool:
    """Return True when a usable session exists, clearing it otherwise."""
    try:
        session = get_client().auth.get_session()
    except Exception as exc:
        if not is_session_error(exc):
            raise
        logger.warning("[Auth:recover_session] {}", exc)
        clear_auth_session(SESSION_EXPIRED_MSG)
        return False
    return bool(session and session_value(session, "access_token"))
