import httpx
import pytest

from dojodesk.utils import supa
from dojodesk.utils.supa import SupabaseConfigError, SupabaseConnectionError, first_row


def test_first_row_basic():
    class Resp:
        def __init__(self, data):
            self.data = data
    assert first_row(Resp([{"a": 1}])) == {"a": 1}
    assert first_row(Resp([])) is None
    assert first_row(Resp({"b": 2})) == {"b": 2}
    assert first_row(None) is None


@pytest.fixture
def supabase_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")


def test_create_supabase_client_http_status_error(monkeypatch, supabase_env):
    request = httpx.Request("GET", "https://example.supabase.co")
    response = httpx.Response(404, request=request, text="Not Found")

    def _raise_http_status(*args, **kwargs):  # pragma: no cover - helper for test
        raise httpx.HTTPStatusError("not found", request=request, response=response)

    monkeypatch.setattr(supa, "create_client", _raise_http_status)

    with pytest.raises(SupabaseConfigError) as excinfo:
        supa._create_supabase_client()  # pylint: disable=protected-access

    assert "HTTP 404" in str(excinfo.value)


def test_create_supabase_client_connection_error(monkeypatch, supabase_env):
    def _raise_connect(*args, **kwargs):  # pragma: no cover - helper for test
        raise httpx.ConnectError("offline")

    monkeypatch.setattr(supa, "create_client", _raise_connect)

    with pytest.raises(SupabaseConnectionError):
        supa._create_supabase_client()  # pylint: disable=protected-access


def test_missing_credentials_raise_config_error(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
    monkeypatch.setattr("dojodesk.config._secrets_section", lambda name: {})

    with pytest.raises(SupabaseConfigError, match="Supabase secrets missing"):
        supa._create_supabase_client()  # pylint: disable=protected-access
