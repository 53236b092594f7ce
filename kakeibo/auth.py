"""
Authentication collaborator.

The app never talks to an identity service directly. It asks an
AuthProvider who is signed in and subscribes to sign-in/sign-out
changes. LocalAuthProvider is the in-process implementation used by
the Streamlit app and by tests.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import structlog

from kakeibo.models.expense import AuthUser


logger = structlog.get_logger(__name__)

AuthListener = Callable[[Optional[AuthUser]], None]
Unsubscribe = Callable[[], None]


class AuthProvider(ABC):

    @abstractmethod
    def current_user(self) -> Optional[AuthUser]:
        """The signed-in identity, or None."""
        pass

    @abstractmethod
    def on_auth_state_changed(self, callback: AuthListener) -> Unsubscribe:
        """
        Register a listener for identity changes.

        The callback is invoked once immediately with the current
        identity and again on every change.

        Returns:
            A function that removes the listener
        """
        pass

    @abstractmethod
    def sign_out(self) -> None:
        pass


class LocalAuthProvider(AuthProvider):
    """Keeps the identity in memory and notifies listeners synchronously."""

    def __init__(self, user: Optional[AuthUser] = None):
        self._user = user
        self._listeners: list[AuthListener] = []

    def current_user(self) -> Optional[AuthUser]:
        return self._user

    def on_auth_state_changed(self, callback: AuthListener) -> Unsubscribe:
        self._listeners.append(callback)
        callback(self._user)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sign_in(
        self,
        uid: str,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> AuthUser:
        self._user = AuthUser(uid=uid, display_name=display_name, email=email)
        logger.info("signed_in", uid=uid)
        self._notify()
        return self._user

    def sign_out(self) -> None:
        if self._user is not None:
            logger.info("signed_out", uid=self._user.uid)
        self._user = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._user)
