from types import SimpleNamespace

import pytest

from dojodesk import auth_utils, supabase_client


@pytest.fixture
def st_stub(fake_st):
    return fake_st(auth_utils, supabase_client)


@pytest.mark.parametrize(
    "error",
    [
        RuntimeError("Invalid Refresh Token: Refresh Token Not Found"),
        RuntimeError("JWT expired"),
        SimpleNamespace(message="nope", code="session_not_found", status=None),
        SimpleNamespace(message="unauthorised", code=None, status=401),
    ],
)
def test_is_session_error_detects_expired_sessions(error):
    assert auth_utils.is_session_error(error)


def test_is_session_error_ignores_other_failures():
    assert not auth_utils.is_session_error(None)
    assert not auth_utils.is_session_error(ValueError("Round is required"))


def test_clear_auth_session_drops_cached_page_data(st_stub):
    st_stub.session_state.update(
        {
            "supabase_session": {"access_token": "a", "refresh_token": "r"},
            "results__state_1": object(),
            "wizard__1": object(),
            "members__search": "kim",
        }
    )
    auth_utils.clear_auth_session("expired")

    assert "supabase_session" not in st_stub.session_state
    assert "results__state_1" not in st_stub.session_state
    assert "wizard__1" not in st_stub.session_state
    assert st_stub.session_state["members__search"] == "kim"
    assert st_stub.session_state["auth"] == {"authenticated": False, "user": None, "last_error": "expired"}


def test_handle_auth_error_signs_out_and_reruns(monkeypatch, st_stub):
    signed_out = []
    monkeypatch.setattr(auth_utils, "supabase_sign_out", lambda: signed_out.append(True))
    st_stub.session_state["current_page"] = "Members"

    assert auth_utils.handle_auth_error(RuntimeError("JWT expired")) is True
    assert signed_out == [True]
    assert st_stub.session_state["current_page"] is None
    assert st_stub.reruns == [True]


def test_handle_auth_error_survives_failed_sign_out(monkeypatch, st_stub):
    def _boom():
        raise RuntimeError("network down")

    monkeypatch.setattr(auth_utils, "supabase_sign_out", _boom)
    assert auth_utils.handle_auth_error(RuntimeError("Auth session missing!")) is True
    assert st_stub.reruns == [True]


class _Rerun(BaseException):
    """Stands in for Streamlit's rerun control exception."""


def test_handle_auth_error_clears_state_before_rerun_raises(monkeypatch, st_stub):
    def _rerun():
        raise _Rerun()

    monkeypatch.setattr(auth_utils, "supabase_sign_out", lambda: None)
    st_stub.rerun = _rerun
    st_stub.session_state.update(
        {"current_page": "Members", "supabase_session": {"access_token": "a", "refresh_token": "r"}}
    )

    with pytest.raises(_Rerun):
        auth_utils.handle_auth_error(RuntimeError("JWT expired"))

    assert st_stub.session_state["current_page"] is None
    assert "supabase_session" not in st_stub.session_state


def test_handle_auth_error_leaves_other_errors(st_stub):
    assert auth_utils.handle_auth_error(ValueError("bad input")) is False
    assert st_stub.reruns == []
