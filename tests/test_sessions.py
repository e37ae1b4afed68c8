"""Tests for session persistence and the session manager."""

from unittest.mock import MagicMock

import pytest

from affiliate_scout.errors import AuthenticationError
from affiliate_scout.sessions import Authenticator, SessionManager, SessionStore

from .fakes import FakeMarketplace, FakeSessionFactory, make_settings


class TestSessionStore:
    """Tests for SessionStore."""

    def test_missing_file(self, tmp_path):
        assert SessionStore(tmp_path / "state.json").load() is None

    def test_save_then_load(self, tmp_path):
        store = SessionStore(tmp_path / "nested" / "state.json")
        store.save({"cookies": [{"name": "sid", "value": "abc"}]})
        assert store.load() == {"cookies": [{"name": "sid", "value": "abc"}]}

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")
        assert SessionStore(path).load() is None


class TestSessionManager:
    """Tests for SessionManager."""

    def test_reuses_stored_state_when_alive(self):
        store = MagicMock()
        store.load.return_value = {"cookies": ["cached"]}
        auth = MagicMock()
        auth.probe.return_value = True

        manager = SessionManager(store, auth)
        assert manager.ensure_authenticated() == {"cookies": ["cached"]}
        assert manager.ensure_authenticated() == {"cookies": ["cached"]}

        store.load.assert_called_once_with()
        auth.login.assert_not_called()

    def test_logs_in_when_probe_fails(self):
        store = MagicMock()
        store.load.return_value = {"cookies": ["expired"]}
        auth = MagicMock()
        auth.probe.return_value = False
        auth.login.return_value = {"cookies": ["fresh"]}

        state = SessionManager(store, auth).ensure_authenticated()

        assert state == {"cookies": ["fresh"]}
        store.save.assert_called_once_with({"cookies": ["fresh"]})

    def test_logs_in_without_stored_state(self):
        store = MagicMock()
        store.load.return_value = None
        auth = MagicMock()
        auth.login.return_value = {"cookies": ["fresh"]}

        SessionManager(store, auth).ensure_authenticated()

        auth.probe.assert_not_called()
        auth.login.assert_called_once_with()

    def test_invalidate_forces_reload(self):
        store = MagicMock()
        store.load.return_value = {"cookies": ["cached"]}
        auth = MagicMock()
        auth.probe.return_value = True

        manager = SessionManager(store, auth)
        manager.ensure_authenticated()
        manager.invalidate()
        manager.ensure_authenticated()

        assert store.load.call_count == 2

    def test_login_failure_propagates(self):
        store = MagicMock()
        store.load.return_value = None
        auth = MagicMock()
        auth.login.side_effect = AuthenticationError("Login failed.")

        with pytest.raises(AuthenticationError):
            SessionManager(store, auth).ensure_authenticated()
        store.save.assert_not_called()


class TestAuthenticator:
    """Tests for Authenticator against the fake dashboard."""

    def test_probe_alive(self):
        auth = Authenticator(make_settings(), FakeSessionFactory(FakeMarketplace([])))
        assert auth.probe({"cookies": []})

    def test_probe_redirected_to_login(self):
        auth = Authenticator(make_settings(), FakeSessionFactory(FakeMarketplace([], authenticated=False)))
        assert not auth.probe({"cookies": []})

    def test_login_returns_storage_state(self):
        factory = FakeSessionFactory(FakeMarketplace([]))
        state = Authenticator(make_settings(), factory).login()

        assert state["cookies"][0]["value"] == "fresh"
        page = factory.pages[0]
        assert page.fields["input#username"] == "publisher@example.test"
        assert page.closed

    def test_login_rejected(self):
        auth = Authenticator(make_settings(), FakeSessionFactory(FakeMarketplace([], authenticated=False)))
        with pytest.raises(AuthenticationError):
            auth.login()
