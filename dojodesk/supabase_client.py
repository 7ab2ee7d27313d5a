"""Supabase client helpers for DojoDesk."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import streamlit as st
from loguru import logger
from supabase import AuthApiError, AuthError

from dojodesk.utils.supa import (
    SupabaseConfigError,
    SupabaseConnectionError,
    create_session_client,
)

__all__ = [
    "get_client",
    "get_current_user",
    "session_value",
    "sign_in",
    "sign_out",
    "subscribe_auth_changes",
    "unsubscribe_auth_changes",
]

_AUTH_STATE_KEY = "auth"
_SESSION_STATE_KEY = "supabase_session"
_CLIENT_KEY = "supabase__client"
_LISTENER_KEY = "supabase__unsubscribe"
SESSION_EXPIRED_MSG = "Your session expired. Please sign in again."


def session_value(session: Any, key: str) -> Any:
    """Safely retrieve values from Supabase session objects or dicts."""

    if session is None:
        return None

    if hasattr(session, key):
        return getattr(session, key)

    if isinstance(session, dict):
        return session.get(key)

    return None


def _ensure_auth_state() -> Dict[str, Any]:
    """Return the mutable auth state dict stored in Streamlit session state."""
    auth = st.session_state.setdefault(_AUTH_STATE_KEY, {})
    auth.setdefault("authenticated", False)
    auth.setdefault("user", None)
    return auth


def _serialize_user(user: Any) -> Optional[Dict[str, Any]]:
    """Convert Supabase user model objects to plain dictionaries."""
    if user is None:
        return None
    if isinstance(user, dict):
        return user
    dump = getattr(user, "model_dump", None)
    if callable(dump):
        data = dump()
        if isinstance(data, dict):
            return data
    snapshot: Dict[str, Any] = {}
    for attr in ("id", "email", "user_metadata", "role", "last_sign_in_at"):
        value = getattr(user, attr, None)
        if value is not None:
            snapshot[attr] = value
    return snapshot or {"repr": repr(user)}


def _store_session(session: Any, user: Any | None = None) -> None:
    """Persist access and refresh tokens plus user metadata in session state."""
    access_token = session_value(session, "access_token")
    refresh_token = session_value(session, "refresh_token")
    session_data: Dict[str, str] = {}
    if access_token:
        session_data["access_token"] = access_token
    if refresh_token:
        session_data["refresh_token"] = refresh_token
    if session_data:
        st.session_state[_SESSION_STATE_KEY] = session_data
    auth = _ensure_auth_state()
    auth["authenticated"] = True
    auth["user"] = _serialize_user(user or session_value(session, "user"))
    auth.pop("last_error", None)


def clear_session_state(reason: Optional[str] = None) -> None:
    """Reset cached Supabase session data and auth flags."""
    had_tokens = st.session_state.pop(_SESSION_STATE_KEY, None) is not None
    auth = _ensure_auth_state()
    auth["authenticated"] = False
    auth["user"] = None
    if reason and had_tokens:
        auth["last_error"] = reason
    else:
        auth.pop("last_error", None)


def _safe_get_session(client) -> Any | None:
    """Fetch the current Supabase session, clearing state on Auth API errors."""
    try:
        return client.auth.get_session()
    except AuthApiError as exc:
        logger.warning("[Auth:get_session] {}", exc)
        clear_session_state(SESSION_EXPIRED_MSG)
        return None


def _apply_saved_session(client) -> None:
    """Sync Supabase client auth with tokens stored in session state.

    Only tokens this browser session stored count; a session already held by
    the client is never adopted without them. The client's own session is
    newer than the stored copy after a token refresh, so it wins.
    """
    stored = st.session_state.get(_SESSION_STATE_KEY)
    if not stored:
        clear_session_state()
        return

    current = _safe_get_session(client)
    if current and session_value(current, "access_token"):
        _store_session(current, session_value(current, "user"))
        return

    access_token = stored.get("access_token")
    refresh_token = stored.get("refresh_token")
    if access_token and refresh_token:
        try:
            response = client.auth.set_session(access_token, refresh_token)
        except AuthError as exc:
            logger.warning("[Auth:set_session] {}", exc)
            clear_session_state(SESSION_EXPIRED_MSG)
            return
        session = getattr(response, "session", None)
        if session and session_value(session, "access_token"):
            _store_session(session, getattr(response, "user", None))
            return

    clear_session_state(SESSION_EXPIRED_MSG)


def _session_client():
    """Return this browser session's Supabase client, creating it once."""
    client = st.session_state.get(_CLIENT_KEY)
    if client is None:
        try:
            client = create_session_client()
        except (SupabaseConfigError, SupabaseConnectionError) as exc:
            logger.error("[Supabase:get_client] {}", exc)
            st.error(str(exc))
            st.stop()
            raise
        st.session_state[_CLIENT_KEY] = client
    return client


def get_client():
    """Return the session's Supabase client, restoring saved auth when present."""
    client = _session_client()
    _apply_saved_session(client)
    return client


def get_current_user() -> Optional[Dict[str, Any]]:
    """Return the signed-in user as a dict, or ``None`` when anonymous.

    Auth API failures propagate so callers can route them through
    :func:`dojodesk.auth_utils.handle_auth_error`.
    """
    response = get_client().auth.get_user()
    user = getattr(response, "user", None) if response is not None else None
    return _serialize_user(user)


def subscribe_auth_changes(
    on_event: Optional[Callable[[str, Any], None]] = None,
) -> Callable[[], None]:
    """Listen for auth state changes on this session's client.

    Registers at most one listener per browser session; later calls return
    the existing unsubscribe callable and ignore ``on_event``. ``SIGNED_OUT``
    always clears the cached tokens before ``on_event`` runs.
    """
    existing = st.session_state.get(_LISTENER_KEY)
    if existing is not None:
        return existing

    def _listener(event: str, session: Any) -> None:
        logger.debug("[Auth:state_change] {}", event)
        if event == "SIGNED_OUT":
            clear_session_state()
        elif event in ("SIGNED_IN", "TOKEN_REFRESHED") and session_value(session, "access_token"):
            _store_session(session)
        if on_event is not None:
            on_event(event, session)

    subscription = _session_client().auth.on_auth_state_change(_listener)
    st.session_state[_LISTENER_KEY] = subscription.unsubscribe
    return subscription.unsubscribe


def unsubscribe_auth_changes() -> None:
    """Drop this session's auth listener, if one is registered."""
    unsubscribe = st.session_state.pop(_LISTENER_KEY, None)
    if unsubscribe is not None:
        unsubscribe()


def sign_in(email: str, password: str):
    """Authenticate with Supabase email/password and cache the session tokens."""
    response = get_client().auth.sign_in_with_password({"email": email, "password": password})
    session = getattr(response, "session", None)
    user = getattr(response, "user", None)
    if session and session_value(session, "access_token"):
        _store_session(session, user)
        logger.info("[Auth:sign_in] signed in {}", email)
    else:
        clear_session_state()
    return response


def sign_out() -> None:
    """Sign out from Supabase, then drop the auth listener and cached tokens."""
    client = _session_client()
    try:
        client.auth.sign_out()
    finally:
        unsubscribe_auth_changes()
        clear_session_state()
