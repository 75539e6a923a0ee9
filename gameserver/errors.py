"""Typed errors for the match core.

Caller mistakes (most MatchError kinds and every MoveError) are reported on
ActionResult.error and never retried. Conflict and Timeout are transient and
may be retried at the call boundary. StoreUnavailable and RatingError are
raised and propagate to the caller.
"""

from __future__ import annotations


class GameServerError(Exception):
    """Base class. `code` is stable and safe to expose to API clients."""

    code = "ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# --- Match errors ---


class MatchError(GameServerError):
    code = "MATCH_ERROR"


class UnknownGame(MatchError):
    code = "UNKNOWN_GAME"


class AlreadyJoined(MatchError):
    code = "ALREADY_JOINED"


class Full(MatchError):
    code = "FULL"


class Finished(MatchError):
    code = "FINISHED"


class NotFound(MatchError):
    code = "NOT_FOUND"


class NotAPlayer(MatchError):
    code = "NOT_A_PLAYER"


class BadTableSize(MatchError):
    code = "BAD_TABLE_SIZE"


class Conflict(MatchError):
    code = "CONFLICT"


class Timeout(MatchError):
    code = "TIMEOUT"


class StoreUnavailable(MatchError):
    code = "STORE_UNAVAILABLE"


# --- Move errors ---


class MoveError(GameServerError):
    code = "MOVE_ERROR"


class NotYourTurn(MoveError):
    code = "NOT_YOUR_TURN"


class IllegalMove(MoveError):
    code = "ILLEGAL_MOVE"


# --- Rating errors ---


class RatingError(GameServerError):
    code = "RATING_ERROR"


class InvalidInput(RatingError):
    code = "INVALID_INPUT"


def is_transient(error: BaseException) -> bool:
    """Conflict and Timeout are safe to retry with a fresh read."""
    return isinstance(error, (Conflict, Timeout))
