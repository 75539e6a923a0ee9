"""Tests for user, game and match models."""

from gameserver.match.models import Game, Match, User
from gameserver.utils.constants import (
    DEFAULT_RATING,
    STATUS_ABANDONED,
    STATUS_COMPLETED,
    STATUS_WAITING,
)


class TestUser:
    def test_new_user_has_no_game_keys(self):
        user = User(user_id="u1", username="alice")
        assert user.ratings == {}
        assert user.games_played == {}
        assert user.games_won == {}

    def test_rating_defaults_before_first_game(self):
        user = User(user_id="u1", username="alice")
        assert user.rating_for("tic-tac-toe") == DEFAULT_RATING

    def test_record_result_creates_all_keys(self):
        user = User(user_id="u1", username="alice")
        user.record_result("tic-tac-toe", 16, won=True)
        assert user.ratings == {"tic-tac-toe": 1216}
        assert user.games_played == {"tic-tac-toe": 1}
        assert user.games_won == {"tic-tac-toe": 1}

    def test_record_loss_keeps_key_sets_aligned(self):
        user = User(user_id="u1", username="alice")
        user.record_result("draw-a-card", -16, won=False)
        assert set(user.ratings) == set(user.games_played) == set(user.games_won)
        assert user.games_won["draw-a-card"] == 0

    def test_record_accumulates(self):
        user = User(user_id="u1", username="alice")
        user.record_result("tic-tac-toe", 16, won=True)
        user.record_result("tic-tac-toe", -10, won=False)
        assert user.ratings["tic-tac-toe"] == 1206
        assert user.games_played["tic-tac-toe"] == 2
        assert user.games_won["tic-tac-toe"] == 1

    def test_roundtrip(self):
        user = User(user_id="u1", username="alice", email="a@example.com", version=3)
        user.record_result("tic-tac-toe", 16, won=True)
        restored = User.from_dict(user.to_dict())
        assert restored == user

    def test_from_dict_camel_case(self):
        user = User.from_dict({
            "userId": "u1",
            "username": "bob",
            "ratings": {"tic-tac-toe": 1250},
            "gamesPlayed": {"tic-tac-toe": 4},
            "gamesWon": {"tic-tac-toe": 3},
        })
        assert user.games_played == {"tic-tac-toe": 4}
        assert user.version == 0


class TestGame:
    def test_valid_bounds(self):
        game = Game(name="g", display_name="G", min_players=2, max_players=4)
        assert game.validate() == []

    def test_min_above_max(self):
        game = Game(name="g", display_name="G", min_players=3, max_players=2)
        assert any("minPlayers" in e for e in game.validate())

    def test_non_positive(self):
        game = Game(name="g", display_name="G", min_players=0, max_players=2)
        assert game.validate()

    def test_roundtrip_keeps_rules(self):
        game = Game(
            name="g", display_name="G", min_players=2, max_players=2,
            rules={"nested": {"unknown": [1, 2.5, None]}},
        )
        assert Game.from_dict(game.to_dict()) == game


class TestMatch:
    def _match(self, **kwargs) -> Match:
        defaults = dict(match_id="m1", game_type="tic-tac-toe", players=["a"])
        defaults.update(kwargs)
        return Match(**defaults)

    def test_defaults(self):
        match = self._match()
        assert match.status == STATUS_WAITING
        assert match.current_player is None
        assert match.rating_changes is None
        assert match.version == 0

    def test_terminal(self):
        assert self._match(status=STATUS_COMPLETED).is_terminal
        assert self._match(status=STATUS_ABANDONED).is_terminal
        assert not self._match().is_terminal

    def test_is_draw(self):
        assert self._match(status=STATUS_COMPLETED, winner=None).is_draw
        assert not self._match(status=STATUS_COMPLETED, winner="a").is_draw

    def test_roundtrip_preserves_opaque_state(self):
        state = {"board": ["X", "", ""], "extra": {"future": [1, {"x": "y"}]}}
        match = self._match(game_state=state, version=5)
        restored = Match.from_dict(match.to_dict())
        assert restored.game_state == state
        assert restored == match

    def test_to_dict_copies_state(self):
        match = self._match(game_state={"board": [""]})
        d = match.to_dict()
        d["gameState"]["board"][0] = "X"
        assert match.game_state == {"board": [""]}

    def test_new_match_id_unique(self):
        assert Match.new_match_id() != Match.new_match_id()
