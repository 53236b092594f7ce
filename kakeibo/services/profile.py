"""User profile documents (users collection, keyed by uid)."""

from datetime import datetime
from typing import Callable, Optional

import structlog

from kakeibo.models.expense import AuthUser, Collection, UserProfile, utc_now
from kakeibo.services.documents import parse_document
from kakeibo.services.storage.interface import DocumentStoreInterface


logger = structlog.get_logger(__name__)


class UserProfileStore:

    def __init__(
        self,
        store: DocumentStoreInterface,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._clock = clock

    async def get(self, uid: str) -> Optional[UserProfile]:
        document = await self._store.get(Collection.USERS, uid)
        if document is None:
            return None
        return parse_document(UserProfile, Collection.USERS, document)

    async def get_display_name(self, user: AuthUser) -> Optional[str]:
        """
        Name to greet the user with.

        The stored profile name wins when it is non-empty; otherwise the
        name from the auth provider is used.
        """
        profile = await self.get(user.uid)
        if profile is None:
            logger.warning("profile_not_found", uid=user.uid)
            return user.display_name
        return profile.name or user.display_name

    async def update_display_name(
        self,
        uid: str,
        name: str,
        email: Optional[str] = None,
    ) -> None:
        """Create or merge the profile with the trimmed name."""
        await self._store.set(
            Collection.USERS,
            uid,
            {
                "name": name.strip(),
                "email": email or "",
                "updatedAt": self._clock(),
            },
            merge=True,
        )
