# path: dojodesk/ui/sidebar.py
from __future__ import annotations

import re
from contextlib import contextmanager
from html import escape
from typing import Callable, Dict, Iterable, List

import streamlit as st

_NAV_KEY = "sidebar_nav"
_COLLAPSED_KEY = "sidebar_collapsed"


# ----------------------------- Public API --------------------------------- #

def is_sidebar_collapsed() -> bool:
    return bool(st.session_state.get(_COLLAPSED_KEY, False))


def set_sidebar_collapsed(flag: bool) -> None:
    st.session_state[_COLLAPSED_KEY] = bool(flag)


def build_sidebar(
    *,
    current: str,
    nav_keys: Iterable[str],
    nav_labels: Dict[str, str],
    nav_icons: Dict[str, str],
    app_title: str,
    app_tagline: str,
    app_version: str,
    on_navigate: Callable[[str], None],
    logout: Callable[[], None],
) -> None:
    """Render the Streamlit sidebar; the only place that writes to it."""
    with _sidebar_owner():
        nav_options: List[str] = list(nav_keys)
        nav_display = {
            k: f"{nav_icons.get(k, '')} {nav_labels.get(k, k)}".strip() for k in nav_options
        }

        with st.sidebar:
            st.markdown(_build_header_html(app_title, app_tagline), unsafe_allow_html=True)
            st.toggle(
                "Compact sidebar",
                value=is_sidebar_collapsed(),
                key="sidebar-compact-toggle",
                on_change=lambda: set_sidebar_collapsed(
                    st.session_state.get("sidebar-compact-toggle", False)
                ),
            )

            if nav_options:
                _build_nav(current, nav_options, nav_display, on_navigate)

            auth = st.session_state.get("auth", {})
            user = auth.get("user")
            if auth.get("authenticated") and user and not is_sidebar_collapsed():
                st.markdown(_build_profile_html(user), unsafe_allow_html=True)
            if auth.get("authenticated"):
                st.button(
                    "Sign out",
                    on_click=logout,
                    type="secondary",
                    key="sidebar-signout",
                    use_container_width=True,
                )

            st.markdown(_build_footer_html(app_title, app_version), unsafe_allow_html=True)


__all__ = ["build_sidebar", "is_sidebar_collapsed", "set_sidebar_collapsed"]


# --------------------------- Internal helpers ------------------------------ #

@contextmanager
def _sidebar_owner():
    """Context manager to mark sidebar owner and restore prior state."""
    prev = bool(st.session_state.get("_sidebar_owner_active"))
    st.session_state["_sidebar_owner_active"] = True
    try:
        yield
    finally:
        st.session_state["_sidebar_owner_active"] = prev


def _build_header_html(title: str, tagline: str) -> str:
    tagline_html = f"<p class='sb-tagline'>{escape(tagline)}</p>" if tagline and not is_sidebar_collapsed() else ""
    return (
        f"""
        <div class='sb-header-card' role='banner'>
          <div class='sb-title-block'>
            <h1 class='sb-title'>{escape(title or "")}</h1>
            {tagline_html}
          </div>
        </div>
        """.strip()
    )


def _build_nav(
    current: str,
    options: List[str],
    display_map: Dict[str, str],
    on_navigate: Callable[[str], None],
) -> None:
    # The radio follows current_page, which pages change through ui.nav.go.
    if st.session_state.get(_NAV_KEY) != current:
        st.session_state[_NAV_KEY] = current if current in options else options[0]

    def _handle_change() -> None:
        target = st.session_state.get(_NAV_KEY)
        if target in options:
            on_navigate(target)

    st.radio(
        "Navigate",
        options=options,
        format_func=lambda k: display_map.get(k, k),
        key=_NAV_KEY,
        label_visibility="collapsed",
        on_change=_handle_change,
    )


def _build_profile_html(user: Dict[str, object]) -> str:
    metadata = user.get("user_metadata") or {}
    name = (
        str(metadata.get("full_name") or "")
        or str(user.get("email") or "")
        or "Club admin"
    )
    email = str(user.get("email") or "")
    initials = _compute_initials(name) or "DD"
    email_line = f"<div class='sb-profile-email'>{escape(email)}</div>" if email and email != name else ""
    return (
        f"""
        <div class='sb-profile-card'>
          <div class='sb-profile-avatar' data-initials='{escape(initials)}'>{escape(initials)}</div>
          <div class='sb-profile-meta'>
            <div class='sb-profile-name'>{escape(name)}</div>
            {email_line}
          </div>
        </div>
        """.strip()
    )


def _build_footer_html(title: str, version: str) -> str:
    return (
        f"""
        <footer class='sb-footer-line' aria-label='Application version'>
          <span class='sb-footer-title'>{escape(title or "")}</span>
          <span class='sb-version'>v{escape(version or "")}</span>
        </footer>
        """.strip()
    )


# ----------------------------- Utilities ---------------------------------- #

_INITIALS_RE = re.compile(r"\w", re.UNICODE)

def _compute_initials(name: str, max_len: int = 2) -> str:
    """Extract up to max_len initials from name."""
    parts = [p for p in re.split(r"[\s@._-]+", name.strip()) if p]
    chars: List[str] = []
    for part in parts:
        m = _INITIALS_RE.search(part)
        if m:
            chars.append(m.group(0).upper())
        if len(chars) >= max_len:
            break
    return "".join(chars)[:max_len]
