"""Player profile management at the identity-provider boundary."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from gameserver.db.repository import UserRepository
from gameserver.errors import Conflict
from gameserver.match.models import User

logger = logging.getLogger("gameserver.profile")


class ProfileManager:
    def __init__(self, user_repo: UserRepository) -> None:
        self._user_repo = user_repo

    def get_or_create_profile(
        self, subject: str, email: str = "", username: str | None = None
    ) -> User:
        """Return the profile for an identity subject, creating it once.

        Safe to call on every session: a concurrent creation of the same
        profile resolves to whichever write landed first.
        """
        user = self._user_repo.get_user(subject)
        if user is not None:
            return user

        user = User(
            user_id=subject,
            username=username or _default_username(subject, email),
            email=email,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            user = self._user_repo.save_user(user)
        except Conflict:
            existing = self._user_repo.get_user(subject)
            if existing is None:
                raise
            return existing
        logger.info("Created profile for %s", subject)
        return user

    def get_profile(self, subject: str) -> User | None:
        return self._user_repo.get_user(subject)


def _default_username(subject: str, email: str) -> str:
    if email and "@" in email:
        return email.split("@")[0]
    return subject
