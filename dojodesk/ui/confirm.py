"""Two-step delete buttons."""
from __future__ import annotations

import streamlit as st


def confirm_button(
    label: str,
    *,
    key: str,
    message: str = "Are you sure?",
    confirm_text: str = "Delete",
    cancel_text: str = "Cancel",
) -> bool:
    """Render ``label``; return True once the user confirms the action.

    The first click opens an inline prompt; the pending state lives under
    ``{key}__confirm_open`` until confirmed or cancelled.
    """
    open_key = f"{key}__confirm_open"

    if not st.session_state.get(open_key):
        if st.button(label, key=key, type="secondary"):
            st.session_state[open_key] = True
            st.rerun()
        return False

    st.warning(message)
    col_ok, col_cancel = st.columns(2)
    confirmed = col_ok.button(confirm_text, key=f"{key}__ok", type="primary", use_container_width=True)
    cancelled = col_cancel.button(cancel_text, key=f"{key}__cancel", use_container_width=True)
    if confirmed or cancelled:
        st.session_state[open_key] = False
    if cancelled:
        st.rerun()
    return confirmed


__all__ = ["confirm_button"]
