"""Route page-level failures to the auth handler or an error banner."""
from __future__ import annotations

import streamlit as st
from loguru import logger

from dojodesk.auth_utils import handle_auth_error
from dojodesk.config import load_settings
from dojodesk.errors import ServiceError, api_error_expander


def show_error(exc: Exception, message: str) -> None:
    """Show ``message`` for ``exc`` unless it was an expired session.

    Validation errors (``ValueError``) display their own text.
    """
    if handle_auth_error(exc):
        return
    if isinstance(exc, ValueError):
        st.error(str(exc))
        return
    logger.error("{}: {}", message, exc)
    st.error(message)
    if isinstance(exc, ServiceError) and load_settings().debug:
        api_error_expander(exc)


__all__ = ["show_error"]
