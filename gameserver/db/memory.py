"""In-memory repository implementations for testing and local CLI."""

from __future__ import annotations

import copy
import threading
from typing import Sequence

from gameserver.errors import Conflict
from gameserver.match.models import Game, Match, User


def _check_version(kind: str, key: str, stored, incoming_version: int) -> None:
    stored_version = stored.version if stored is not None else 0
    if stored_version != incoming_version:
        raise Conflict(
            f"Version conflict on {kind} {key}: "
            f"expected {incoming_version}, found {stored_version}"
        )


class InMemoryGameRepository:
    def __init__(self) -> None:
        self._games: dict[str, Game] = {}

    def get_game(self, name: str) -> Game | None:
        game = self._games.get(name)
        return copy.deepcopy(game) if game else None

    def save_game(self, game: Game) -> None:
        self._games[game.name] = copy.deepcopy(game)

    def list_games(self, active_only: bool = True) -> list[Game]:
        return [
            copy.deepcopy(g)
            for g in self._games.values()
            if g.is_active or not active_only
        ]


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self.lock = threading.RLock()

    def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    def save_user(self, user: User) -> User:
        with self.lock:
            self.check(user)
            return self.put(user)

    def check(self, user: User) -> None:
        _check_version("user", user.user_id, self._users.get(user.user_id), user.version)

    def put(self, user: User) -> User:
        saved = copy.deepcopy(user)
        saved.version = user.version + 1
        self._users[user.user_id] = saved
        return copy.deepcopy(saved)


class InMemoryMatchRepository:
    """Matches, committed together with user updates when given.

    All versions are checked before anything is written, so a completion
    either lands entirely or not at all.
    """

    def __init__(self, user_repo: InMemoryUserRepository | None = None) -> None:
        self._matches: dict[str, Match] = {}
        self._user_repo = user_repo or InMemoryUserRepository()

    def get_match(self, match_id: str) -> Match | None:
        match = self._matches.get(match_id)
        return copy.deepcopy(match) if match else None

    def save_match(self, match: Match, users: Sequence[User] = ()) -> Match:
        with self._user_repo.lock:
            _check_version(
                "match", match.match_id, self._matches.get(match.match_id), match.version
            )
            for user in users:
                self._user_repo.check(user)

            for user in users:
                self._user_repo.put(user)
            saved = copy.deepcopy(match)
            saved.version = match.version + 1
            self._matches[match.match_id] = saved
            return copy.deepcopy(saved)

    def list_matches(
        self, status: str | None = None, game_type: str | None = None
    ) -> list[Match]:
        return [
            copy.deepcopy(m)
            for m in self._matches.values()
            if (status is None or m.status == status)
            and (game_type is None or m.game_type == game_type)
        ]
