"""
Session context.

Holds "who is signed in" for the rest of the app. Created once at the
composition root; start() subscribes to the auth provider and stop()
unsubscribes.
"""

from typing import Optional

from kakeibo.auth import AuthProvider, Unsubscribe
from kakeibo.models.expense import AuthUser


class NotSignedInError(Exception):
    """An action needs a signed-in user and there is none."""
    pass


class SessionContext:

    def __init__(self, auth: AuthProvider):
        self._auth = auth
        self._user: Optional[AuthUser] = None
        self._unsubscribe: Optional[Unsubscribe] = None

    def start(self) -> None:
        """Begin following the auth provider. Calling twice is harmless."""
        if self._unsubscribe is None:
            self._unsubscribe = self._auth.on_auth_state_changed(self._on_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._user = None

    @property
    def is_active(self) -> bool:
        return self._unsubscribe is not None

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def is_signed_in(self) -> bool:
        return self._user is not None

    def require_user(self) -> AuthUser:
        """
        Raises:
            NotSignedInError: If nobody is signed in
        """
        if self._user is None:
            raise NotSignedInError("Sign-in required")
        return self._user

    def sign_out(self) -> None:
        self._auth.sign_out()

    def _on_change(self, user: Optional[AuthUser]) -> None:
        self._user = user
