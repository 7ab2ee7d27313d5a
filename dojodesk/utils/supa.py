from __future__ import annotations
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from supabase import Client, ClientOptions, SupabaseException, create_client

from dojodesk.config import MISSING_CONFIG_MSG, SupabaseConfigError, read_supabase_config


class SupabaseConnectionError(RuntimeError):
    """Raised when the client cannot reach Supabase within the timeout window."""


def _build_client_options() -> ClientOptions:
    """Return Supabase client options with tighter HTTP timeouts."""

    timeout = httpx.Timeout(10.0, connect=5.0)
    return ClientOptions(
        httpx_client=httpx.Client(timeout=timeout),
        postgrest_client_timeout=timeout,
        storage_client_timeout=timeout,
        function_client_timeout=timeout,
    )


def _close_http_client(options: ClientOptions) -> None:
    client = options.httpx_client
    if client is not None:
        client.close()


def _create_supabase_client() -> Client:
    cfg = read_supabase_config()
    options = _build_client_options()
    try:
        return create_client(cfg["url"], cfg["anon_key"], options=options)
    except SupabaseException as exc:
        _close_http_client(options)
        raise SupabaseConfigError(str(exc) or MISSING_CONFIG_MSG) from exc
    except httpx.HTTPStatusError as exc:
        _close_http_client(options)
        status = exc.response.status_code if exc.response is not None else "unknown"
        body = exc.response.text if exc.response is not None else ""
        preview = (body or str(exc)).strip().replace("\n", " ")[:200]
        logger.error("[Supabase:create_client] HTTP {} -> {}", status, preview)
        raise SupabaseConfigError(
            "Supabase responded with HTTP "
            f"{status}. Verify the Supabase URL/anon key in your Streamlit secrets or environment."
        ) from exc
    except httpx.HTTPError as exc:
        _close_http_client(options)
        logger.error("[Supabase:create_client] connection failed: {}", exc)
        raise SupabaseConnectionError(
            "Unable to reach Supabase right now. Check your internet connection and try again."
        ) from exc


def create_session_client() -> Client:
    """Return a new Supabase client for one browser session.

    Auth state lives on the client, so it must never be shared between
    sessions.
    """
    return _create_supabase_client()


def first_row(rows: Any) -> Optional[Dict[str, Any]]:
    """
    PostgREST Python client returns `.data` as list-like.
    Return the first dict or None.
    """
    if rows is None:
        return None
    data = getattr(rows, "data", rows)
    if isinstance(data, list) and data:
        first = data[0]
        return first if isinstance(first, dict) else None
    if isinstance(data, dict):
        return data
    return None

__all__ = [
    "create_session_client",
    "first_row",
    "SupabaseConfigError",
    "SupabaseConnectionError",
]
