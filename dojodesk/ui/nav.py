"""Tiny navigation helper for DojoDesk pages."""

from typing import Any

import streamlit as st

_PARAMS_KEY = "nav_params"


def set_page(page: str, **params: Any) -> None:
    """Record the target page and its parameters without rerunning."""
    st.session_state["current_page"] = page
    st.session_state[_PARAMS_KEY] = dict(params)


def go(page: str, **params: Any) -> None:
    """Switch to ``page`` and force a rerun.

    Parameters (for example ``competition_id``) stay available through
    :func:`nav_param` until the next navigation. The sidebar radio follows
    ``current_page`` on the next render.
    """
    set_page(page, **params)
    st.rerun()


def nav_param(name: str, default: Any = None) -> Any:
    return st.session_state.get(_PARAMS_KEY, {}).get(name, default)


__all__ = ["go", "nav_param", "set_page"]
