"""Tests for the auth provider and session context."""

import pytest

from kakeibo.auth import LocalAuthProvider
from kakeibo.session import NotSignedInError, SessionContext


class TestLocalAuthProvider:

    def test_listener_called_immediately_and_on_change(self):
        auth = LocalAuthProvider()
        seen = []
        auth.on_auth_state_changed(seen.append)
        auth.sign_in("u1", display_name="太郎")
        auth.sign_out()
        assert seen[0] is None
        assert seen[1].uid == "u1"
        assert seen[2] is None

    def test_unsubscribe_stops_notifications(self):
        auth = LocalAuthProvider()
        seen = []
        unsubscribe = auth.on_auth_state_changed(seen.append)
        unsubscribe()
        auth.sign_in("u1")
        assert seen == [None]


class TestSessionContext:

    def test_follows_auth_after_start(self):
        auth = LocalAuthProvider()
        session = SessionContext(auth)
        session.start()
        assert not session.is_signed_in

        auth.sign_in("u1", email="u1@example.com")
        assert session.user.uid == "u1"
        assert session.require_user().email == "u1@example.com"

    def test_require_user_when_signed_out(self):
        session = SessionContext(LocalAuthProvider())
        session.start()
        with pytest.raises(NotSignedInError):
            session.require_user()

    def test_stop_unsubscribes(self):
        auth = LocalAuthProvider()
        session = SessionContext(auth)
        session.start()
        session.stop()
        auth.sign_in("u1")
        assert session.user is None
        assert not session.is_active

    def test_start_twice_subscribes_once(self):
        auth = LocalAuthProvider()
        session = SessionContext(auth)
        session.start()
        session.start()
        assert len(auth._listeners) == 1

    def test_sign_out_through_session(self):
        auth = LocalAuthProvider()
        auth.sign_in("u1")
        session = SessionContext(auth)
        session.start()
        assert session.is_signed_in
        session.sign_out()
        assert session.user is None
