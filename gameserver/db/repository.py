"""Repository protocol interfaces for the record store.

Every save is a compare-and-swap on the entity's `version`: the write is
accepted only if the stored version still equals the version that was read
(0 meaning "must not exist yet"). Stale writes raise Conflict.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from gameserver.match.models import Game, Match, User


class GameRepository(Protocol):
    def get_game(self, name: str) -> Game | None:
        ...

    def save_game(self, game: Game) -> None:
        ...

    def list_games(self, active_only: bool = True) -> list[Game]:
        ...


class MatchRepository(Protocol):
    def get_match(self, match_id: str) -> Match | None:
        ...

    def save_match(self, match: Match, users: Sequence[User] = ()) -> Match:
        """Atomically persist the match and any users; returns the stored match."""
        ...

    def list_matches(
        self, status: str | None = None, game_type: str | None = None
    ) -> list[Match]:
        ...


class UserRepository(Protocol):
    def get_user(self, user_id: str) -> User | None:
        ...

    def save_user(self, user: User) -> User:
        ...
