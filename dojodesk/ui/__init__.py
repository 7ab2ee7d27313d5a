"""Shared Streamlit UI helpers."""

from .nav import go, nav_param, set_page
from .sidebar import build_sidebar, is_sidebar_collapsed, set_sidebar_collapsed

__all__ = [
    "build_sidebar",
    "go",
    "is_sidebar_collapsed",
    "nav_param",
    "set_page",
    "set_sidebar_collapsed",
]
