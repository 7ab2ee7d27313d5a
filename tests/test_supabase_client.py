from types import SimpleNamespace

import pytest

from dojodesk import supabase_client as sc


def _session(token, email="alice@example.com"):
    return SimpleNamespace(access_token=token, refresh_token=f"{token}-refresh", user={"email": email})


class FakeAuth:
    """Holds one auth session and the registered state-change listeners."""

    def __init__(self, session=None):
        self.session = session
        self.listeners = []

    def get_session(self):
        return self.session

    def set_session(self, access_token, refresh_token):
        self.session = SimpleNamespace(access_token=access_token, refresh_token=refresh_token, user=None)
        return SimpleNamespace(session=self.session, user=None)

    def sign_in_with_password(self, credentials):
        self.session = _session("token-" + credentials["email"], credentials["email"])
        return SimpleNamespace(session=self.session, user=self.session.user)

    def sign_out(self):
        self.session = None
        for listener in list(self.listeners):
            listener("SIGNED_OUT", None)

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return SimpleNamespace(unsubscribe=lambda: self.listeners.remove(callback))


def _client(session=None):
    return SimpleNamespace(auth=FakeAuth(session))


@pytest.fixture
def st_stub(fake_st):
    return fake_st(sc)


def test_fresh_session_does_not_inherit_another_login(monkeypatch, st_stub):
    shared = _client()
    monkeypatch.setattr(sc, "create_session_client", lambda: shared)

    sc.sign_in("alice@example.com", "pw")
    assert st_stub.session_state["auth"]["authenticated"]

    # A second browser session handed the same client object.
    bob_state = {}
    st_stub.session_state = bob_state
    assert shared.auth.session is not None
    sc.get_client()

    assert not bob_state["auth"]["authenticated"]
    assert "supabase_session" not in bob_state


def test_each_browser_session_gets_its_own_client(monkeypatch, st_stub):
    monkeypatch.setattr(sc, "create_session_client", _client)

    first = sc.get_client()
    assert sc.get_client() is first

    st_stub.session_state = {}
    assert sc.get_client() is not first


def test_stored_tokens_restore_the_session(monkeypatch, st_stub):
    client = _client()
    monkeypatch.setattr(sc, "create_session_client", lambda: client)
    st_stub.session_state["supabase_session"] = {"access_token": "a1", "refresh_token": "r1"}

    sc.get_client()

    assert client.auth.session.access_token == "a1"
    assert st_stub.session_state["auth"]["authenticated"]


def test_refreshed_client_session_wins_over_stored_tokens(monkeypatch, st_stub):
    client = _client(_session("fresh"))
    monkeypatch.setattr(sc, "create_session_client", lambda: client)
    st_stub.session_state["supabase_session"] = {"access_token": "stale", "refresh_token": "stale-refresh"}

    sc.get_client()

    assert st_stub.session_state["supabase_session"]["access_token"] == "fresh"


def test_subscribing_twice_keeps_one_listener(monkeypatch, st_stub):
    client = _client()
    monkeypatch.setattr(sc, "create_session_client", lambda: client)

    first = sc.subscribe_auth_changes()
    second = sc.subscribe_auth_changes()

    assert first is second
    assert len(client.auth.listeners) == 1


def test_sign_out_clears_tokens_and_listener(monkeypatch, st_stub):
    client = _client()
    monkeypatch.setattr(sc, "create_session_client", lambda: client)
    sc.sign_in("alice@example.com", "pw")
    sc.subscribe_auth_changes()

    sc.sign_out()

    assert client.auth.listeners == []
    assert "supabase_session" not in st_stub.session_state
    assert not st_stub.session_state["auth"]["authenticated"]
    sc.subscribe_auth_changes()
    assert len(client.auth.listeners) == 1
