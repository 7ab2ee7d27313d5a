"""Streamlit authentication gate backed by Supabase email/password auth."""

from __future__ import annotations

from typing import Dict

import streamlit as st
from loguru import logger
from supabase import AuthApiError, AuthError

from dojodesk.supabase_client import (
    get_client,
    session_value,
    sign_in as supabase_sign_in,
    sign_out as supabase_sign_out,
)

_LAST_EMAIL_KEY = "login__last_email"
_FORM_KEY = "login_form"


def _ensure_auth_state() -> Dict[str, object]:
    return st.session_state.setdefault("auth", {"authenticated": False, "user": None})


def logout() -> None:
    """Terminate the Supabase session; the sidebar button callback reruns."""
    try:
        supabase_sign_out()
    except AuthError as exc:
        logger.warning("[Auth:logout] sign_out failed: {}", exc)
    st.session_state["current_page"] = None


def _inject_login_styles() -> None:
    st.markdown(
        """
        <style>
        .block-container { min-height: 80vh; display: grid; place-items: center; }
        div[data-testid="stForm"] {
          width: 100%; max-width: 440px; margin: 0 auto;
          border-radius: 12px; padding: 22px 20px;
        }
        .form-title { margin: 0 0 8px 0; font-weight: 700; font-size: 1.25rem; }
        .login-caption { opacity: .8; font-size: .9rem; margin-bottom: 12px; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def login(title: str = "DojoDesk") -> None:
    """Render the authentication form when the user is not signed in.

    Returns normally only for an authenticated session; otherwise the script
    run stops after the form.
    """

    auth_state = _ensure_auth_state()
    client = get_client()
    session = None
    try:
        session = client.auth.get_session()
    except AuthApiError as exc:
        logger.warning("[Auth:get_session] API error: {}", exc)
        auth_state["last_error"] = "Your session has expired. Please sign in again."
        try:
            supabase_sign_out()
        except AuthError as sign_out_exc:
            logger.warning("[Auth:get_session] sign_out after failure: {}", sign_out_exc)
    except AuthError as exc:
        logger.warning("[Auth:get_session] auth error: {}", exc)
        auth_state["last_error"] = "Authentication error when restoring your session. Please sign in again."
    if session and session_value(session, "access_token") and auth_state.get("authenticated"):
        return

    _inject_login_styles()
    last_error = _ensure_auth_state().pop("last_error", None)

    with st.form(_FORM_KEY, clear_on_submit=False):
        st.markdown(f"<div class='form-title'>{title}</div>", unsafe_allow_html=True)
        st.markdown(
            "<div class='login-caption'>Sign in with your club admin email and password.</div>",
            unsafe_allow_html=True,
        )
        email = st.text_input(
            "Email",
            value=st.session_state.get(_LAST_EMAIL_KEY, ""),
            autocomplete="email",
            placeholder="you@example.com",
        )
        password = st.text_input(
            "Password",
            type="password",
            autocomplete="current-password",
            placeholder="Enter your password",
        )
        submitted = st.form_submit_button("Sign in", type="primary")

    if last_error:
        st.warning(last_error)

    if submitted:
        email = email.strip()
        st.session_state[_LAST_EMAIL_KEY] = email
        if not email:
            st.warning("Email is required.")
            st.stop()
        if not password:
            st.warning("Password is required.")
            st.stop()
        try:
            response = supabase_sign_in(email=email, password=password)
        except AuthApiError as exc:
            logger.info("[Auth:sign_in] invalid credentials for {}: {}", email, exc)
            st.error("Invalid email or password. Please try again.")
            st.stop()
        except AuthError as exc:
            logger.error("[Auth:sign_in] auth error: {}", exc)
            st.error("Authentication failed. Please try again in a moment.")
            st.stop()

        session = getattr(response, "session", None)
        if not session or not session_value(session, "access_token"):
            st.error("Supabase did not return a valid session. Please try again.")
            st.stop()
        st.rerun()

    st.stop()


__all__ = ["login", "logout"]
