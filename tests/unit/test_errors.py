"""Tests for the error taxonomy."""

import pytest

from gameserver.errors import (
    AlreadyJoined,
    Conflict,
    Finished,
    Full,
    IllegalMove,
    InvalidInput,
    MatchError,
    MoveError,
    NotYourTurn,
    RatingError,
    StoreUnavailable,
    Timeout,
    UnknownGame,
    is_transient,
)


class TestErrors:
    @pytest.mark.parametrize("cls", [
        UnknownGame, AlreadyJoined, Full, Finished, Conflict, Timeout, StoreUnavailable,
    ])
    def test_match_errors(self, cls):
        assert issubclass(cls, MatchError)

    def test_move_errors(self):
        assert issubclass(NotYourTurn, MoveError)
        assert issubclass(IllegalMove, MoveError)

    def test_rating_error(self):
        assert issubclass(InvalidInput, RatingError)

    def test_to_dict(self):
        assert Full("Match is full").to_dict() == {"code": "FULL", "message": "Match is full"}

    def test_default_message_is_code(self):
        assert str(Conflict()) == "CONFLICT"

    def test_transient(self):
        assert is_transient(Conflict())
        assert is_transient(Timeout())
        assert not is_transient(StoreUnavailable())
        assert not is_transient(Full())
        assert not is_transient(ValueError())
