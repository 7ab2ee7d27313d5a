"""Service error type and the banner helpers pages use to surface failures."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import streamlit as st
from loguru import logger
from postgrest.exceptions import APIError

__all__ = [
    "ServiceError",
    "api_error_expander",
    "flash_error",
    "flash_success",
    "format_api_error",
    "is_not_found",
    "render_flash",
    "service_call",
]

_FLASH_KEY = "flash_message"
NOT_FOUND_CODE = "PGRST116"


def format_api_error(context: str, exc: APIError) -> str:
    message = getattr(exc, "message", None) or str(exc)
    hint = getattr(exc, "hint", "")
    details = getattr(exc, "details", "")
    parts = [f"{context}: {message}"]
    if details:
        parts.append(str(details))
    if hint:
        parts.append(str(hint))
    return " | ".join(parts)


class ServiceError(RuntimeError):
    """A failed Supabase call, keeping the PostgREST error fields."""

    def __init__(
        self,
        context: str,
        message: str,
        *,
        details: Any = None,
        hint: Any = None,
        code: Optional[str] = None,
    ) -> None:
        self.context = context
        self.message = message
        self.details = details
        self.hint = hint
        self.code = code
        super().__init__(f"{context}: {message}")

    @classmethod
    def from_api_error(cls, context: str, exc: APIError) -> "ServiceError":
        error = cls(
            context,
            getattr(exc, "message", None) or str(exc),
            details=getattr(exc, "details", None),
            hint=getattr(exc, "hint", None),
            code=getattr(exc, "code", None),
        )
        error.args = (format_api_error(context, exc),)
        return error


def is_not_found(exc: APIError) -> bool:
    return getattr(exc, "code", None) == NOT_FOUND_CODE


@contextmanager
def service_call(context: str) -> Iterator[None]:
    """Turn PostgREST failures inside the block into a logged ServiceError."""
    try:
        yield
    except APIError as exc:
        error = ServiceError.from_api_error(context, exc)
        logger.error("[{}] {}", context, error)
        raise error from exc


def flash_error(message: str) -> None:
    """Queue an error banner for the next render."""
    st.session_state[_FLASH_KEY] = ("error", message)


def flash_success(message: str) -> None:
    st.session_state[_FLASH_KEY] = ("success", message)


def render_flash() -> None:
    """Show and clear the queued banner, if any."""
    kind, message = st.session_state.pop(_FLASH_KEY, (None, None))
    if not message:
        return
    if kind == "error":
        st.error(message)
    else:
        st.success(message)


def api_error_expander(exc: BaseException, *, title: str = "Error details") -> None:
    """Render PostgREST diagnostics when debug mode is on."""
    if not isinstance(exc, ServiceError):
        return
    with st.expander(title, expanded=False):
        st.code(
            "\n".join(
                f"{label}: {value}"
                for label, value in (
                    ("context", exc.context),
                    ("message", exc.message),
                    ("details", exc.details),
                    ("hint", exc.hint),
                    ("code", exc.code),
                )
                if value
            )
        )
