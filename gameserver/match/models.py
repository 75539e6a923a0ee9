"""Data models for users, games and matches (one store item each)."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

from gameserver.utils.constants import (
    DEFAULT_RATING,
    STATUS_COMPLETED,
    STATUS_WAITING,
    TERMINAL_STATUSES,
)
from gameserver.utils.crypto import new_match_id


@dataclass
class User:
    """A player profile with per-game-type rating and counters.

    ratings, games_played and games_won always share the same keys.
    """

    user_id: str
    username: str
    email: str = ""
    ratings: dict[str, int] = field(default_factory=dict)
    games_played: dict[str, int] = field(default_factory=dict)
    games_won: dict[str, int] = field(default_factory=dict)
    created_at: str = ""
    version: int = 0

    def rating_for(self, game_type: str) -> int:
        return self.ratings.get(game_type, DEFAULT_RATING)

    def record_result(self, game_type: str, delta: int, won: bool) -> None:
        """Apply one completed match to this profile."""
        if game_type not in self.games_played:
            self.ratings[game_type] = DEFAULT_RATING
            self.games_played[game_type] = 0
            self.games_won[game_type] = 0
        self.ratings[game_type] += delta
        self.games_played[game_type] += 1
        if won:
            self.games_won[game_type] += 1

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "username": self.username,
            "email": self.email,
            "ratings": dict(self.ratings),
            "gamesPlayed": dict(self.games_played),
            "gamesWon": dict(self.games_won),
            "createdAt": self.created_at,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, d: dict) -> User:
        return cls(
            user_id=d["userId"],
            username=d.get("username", ""),
            email=d.get("email", ""),
            ratings={k: int(v) for k, v in d.get("ratings", {}).items()},
            games_played={k: int(v) for k, v in d.get("gamesPlayed", {}).items()},
            games_won={k: int(v) for k, v in d.get("gamesWon", {}).items()},
            created_at=d.get("createdAt", ""),
            version=int(d.get("version", 0)),
        )


@dataclass
class Game:
    """Reference data for one game type. `rules` is opaque to the core."""

    name: str
    display_name: str
    min_players: int
    max_players: int
    rules: dict = field(default_factory=dict)
    is_active: bool = True

    def validate(self) -> list[str]:
        errors = []
        if self.min_players < 1:
            errors.append(f"minPlayers must be positive, got {self.min_players}")
        if self.max_players < 1:
            errors.append(f"maxPlayers must be positive, got {self.max_players}")
        if self.min_players > self.max_players:
            errors.append(
                f"minPlayers ({self.min_players}) > maxPlayers ({self.max_players})"
            )
        return errors

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "rules": copy.deepcopy(self.rules),
            "minPlayers": self.min_players,
            "maxPlayers": self.max_players,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Game:
        return cls(
            name=d["name"],
            display_name=d.get("displayName", d["name"]),
            rules=d.get("rules") or {},
            min_players=int(d["minPlayers"]),
            max_players=int(d["maxPlayers"]),
            is_active=d.get("isActive", True),
        )


@dataclass
class Match:
    """One game session. game_state belongs to the selected rule module."""

    match_id: str
    game_type: str
    players: list[str]
    status: str = STATUS_WAITING
    current_player: str | None = None
    game_state: dict | None = None
    winner: str | None = None
    rating_changes: dict[str, int] | None = None
    completed_at: str | None = None
    created_at: str = ""
    updated_at: str = ""
    table_size: int | None = None
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_draw(self) -> bool:
        return self.status == STATUS_COMPLETED and self.winner is None

    def to_dict(self) -> dict:
        return {
            "matchId": self.match_id,
            "gameType": self.game_type,
            "players": list(self.players),
            "status": self.status,
            "currentPlayer": self.current_player,
            "gameState": copy.deepcopy(self.game_state),
            "winner": self.winner,
            "ratingChanges": dict(self.rating_changes) if self.rating_changes is not None else None,
            "completedAt": self.completed_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "tableSize": self.table_size,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Match:
        changes = d.get("ratingChanges")
        return cls(
            match_id=d["matchId"],
            game_type=d["gameType"],
            players=list(d.get("players", [])),
            status=d.get("status", STATUS_WAITING),
            current_player=d.get("currentPlayer"),
            game_state=d.get("gameState"),
            winner=d.get("winner"),
            rating_changes=(
                {k: int(v) for k, v in changes.items()} if changes is not None else None
            ),
            completed_at=d.get("completedAt"),
            created_at=d.get("createdAt", ""),
            updated_at=d.get("updatedAt", ""),
            table_size=int(d["tableSize"]) if d.get("tableSize") is not None else None,
            version=int(d.get("version", 0)),
        )

    @staticmethod
    def new_match_id() -> str:
        return new_match_id()
