"""Rule module contract shared by every game type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from gameserver.errors import MoveError

OUTCOME_ONGOING = "ongoing"
OUTCOME_WIN = "win"
OUTCOME_DRAW = "draw"


@dataclass(frozen=True)
class Outcome:
    kind: str
    winner: str | None = None

    @classmethod
    def ongoing(cls) -> Outcome:
        return cls(OUTCOME_ONGOING)

    @classmethod
    def win(cls, player_id: str) -> Outcome:
        return cls(OUTCOME_WIN, player_id)

    @classmethod
    def draw(cls) -> Outcome:
        return cls(OUTCOME_DRAW)

    @property
    def is_terminal(self) -> bool:
        return self.kind != OUTCOME_ONGOING

    def to_dict(self) -> dict:
        return {"kind": self.kind, "winner": self.winner}


@dataclass
class MoveResult:
    valid: bool
    state: dict | None = None
    error: MoveError | None = None


class RuleModule(Protocol):
    """Capabilities a game type must provide.

    State blobs are plain JSON-compatible dicts. Implementations must not
    mutate the state they are given and must not depend on wall-clock time
    or anything outside their arguments.
    """

    name: str

    def initial_state(self, player_ids: list[str], rules: dict | None = None) -> dict:
        ...

    def validate_move(self, state: dict, player_id: str, move: dict) -> MoveResult:
        ...

    def outcome(self, state: dict) -> Outcome:
        ...

    def next_player(self, state: dict, player_ids: list[str]) -> str:
        ...
