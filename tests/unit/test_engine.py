"""Tests for the match engine."""

from datetime import timedelta

import pytest

from gameserver.errors import (
    AlreadyJoined,
    BadTableSize,
    Finished,
    Full,
    IllegalMove,
    InvalidInput,
    NotAPlayer,
    NotFound,
    NotYourTurn,
    StoreUnavailable,
    UnknownGame,
)
from gameserver.match.engine import MatchEngine
from gameserver.match.models import Game, User
from gameserver.rating.elo import EloRatingEngine
from gameserver.rules.registry import RuleRegistry, default_registry
from gameserver.rules.tictactoe import TicTacToeRules
from gameserver.utils.constants import (
    STATUS_ABANDONED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_WAITING,
)
from tests.conftest import FIXED_NOW, start_match

TTT = "tic-tac-toe"
CARDS = "draw-a-card"


def play_cells(engine, match, moves):
    """Submit (player, cell) tic-tac-toe moves, asserting success."""
    result = None
    for player, cell in moves:
        result = engine.submit_move(match.match_id, player, {"cell": cell})
        assert result.success, result.error
    return result


class TestCreateMatch:
    def test_creates_waiting_match(self, engine):
        result = engine.create_match(TTT, "alice")
        assert result.success
        match = result.match
        assert match.players == ["alice"]
        assert match.status == STATUS_WAITING
        assert match.current_player is None
        assert match.game_state is None
        assert match.created_at == FIXED_NOW.isoformat()
        assert match.version == 1

    def test_persisted(self, engine):
        match = engine.create_match(TTT, "alice").match
        assert engine.get_match(match.match_id) == match

    def test_unknown_game(self, engine):
        result = engine.create_match("chess", "alice")
        assert not result.success
        assert isinstance(result.error, UnknownGame)
        assert result.match is None

    def test_inactive_game(self, engine, game_repo):
        game = game_repo.get_game(TTT)
        game.is_active = False
        game_repo.save_game(game)
        result = engine.create_match(TTT, "alice")
        assert isinstance(result.error, UnknownGame)

    def test_game_without_rules_module(self, engine, game_repo):
        game_repo.save_game(Game(name="chess", display_name="Chess", min_players=2, max_players=2))
        result = engine.create_match("chess", "alice")
        assert isinstance(result.error, UnknownGame)

    def test_logs_event(self, engine):
        result = engine.create_match(TTT, "alice")
        assert result.events[0]["event"] == "match_created"


class TestJoinMatch:
    def test_join_starts_match(self, engine):
        match = engine.create_match(TTT, "alice").match
        result = engine.join_match(match.match_id, "bob")
        assert result.success
        match = result.match
        assert match.players == ["alice", "bob"]
        assert match.status == STATUS_IN_PROGRESS
        assert match.current_player == "alice"
        assert match.game_state["board"] == [""] * 9
        assert [e["event"] for e in result.events] == ["player_joined", "match_started"]

    def test_join_below_min_stays_waiting(self, engine, game_repo):
        game_repo.save_game(Game(
            name=CARDS, display_name="Draw a Card", min_players=3, max_players=4,
        ))
        match = engine.create_match(CARDS, "alice").match
        result = engine.join_match(match.match_id, "bob")
        assert result.match.status == STATUS_WAITING
        assert result.match.game_state is None

    def test_already_joined(self, engine):
        match = engine.create_match(CARDS, "alice").match
        result = engine.join_match(match.match_id, "alice")
        assert isinstance(result.error, AlreadyJoined)

    def test_join_started_match_below_capacity_is_finished(self, engine):
        match = start_match(engine, CARDS, ["alice", "bob"])
        result = engine.join_match(match.match_id, "carol")
        assert isinstance(result.error, Finished)

    def test_join_match_at_max_players_is_full(self, engine):
        match = start_match(engine, TTT, ["alice", "bob"])
        result = engine.join_match(match.match_id, "carol")
        assert isinstance(result.error, Full)
        assert engine.get_match(match.match_id).players == ["alice", "bob"]

    def test_rejoin_full_match_is_already_joined(self, engine):
        match = start_match(engine, TTT, ["alice", "bob"])
        result = engine.join_match(match.match_id, "alice")
        assert isinstance(result.error, AlreadyJoined)

    def test_unknown_match(self, engine):
        result = engine.join_match("missing", "bob")
        assert isinstance(result.error, NotFound)

    def test_join_abandoned(self, engine):
        match = engine.create_match(TTT, "alice").match
        engine.abandon_match(match.match_id, "alice")
        result = engine.join_match(match.match_id, "bob")
        assert isinstance(result.error, Finished)


class TestSubmitMove:
    def test_move_advances_turn(self, engine):
        match = start_match(engine, TTT, ["alice", "bob"])
        result = engine.submit_move(match.match_id, "alice", {"cell": 4})
        assert result.success
        assert result.match.current_player == "bob"
        assert result.match.game_state["board"][4] == "X"

    def test_not_your_turn_leaves_match_unchanged(self, engine):
        match = start_match(engine, TTT, ["alice", "bob"])
        result = engine.submit_move(match.match_id, "bob", {"cell": 4})
        assert isinstance(result.error, NotYourTurn)
        assert engine.get_match(match.match_id) == match

    def test_illegal_move_leaves_match_unchanged(self, engine):
        match = start_match(engine, TTT, ["alice", "bob"])
        match = engine.submit_move(match.match_id, "alice", {"cell": 4}).match
        result = engine.submit_move(match.match_id, "bob", {"cell": 4})
        assert isinstance(result.error, IllegalMove)
        assert engine.get_match(match.match_id) == match

    def test_move_on_waiting_match(self, engine):
        match = engine.create_match(TTT, "alice").match
        result = engine.submit_move(match.match_id, "alice", {"cell": 0})
        assert isinstance(result.error, Finished)

    def test_win_completes_match(self, engine, user_repo):
        match = start_match(engine, TTT, ["alice", "bob"])
        result = play_cells(engine, match, [
            ("alice", 0), ("bob", 3), ("alice", 1), ("bob", 4), ("alice", 2),
        ])
        match = result.match
        assert match.status == STATUS_COMPLETED
        assert match.winner == "alice"
        assert match.current_player is None
        assert match.rating_changes == {"alice": 16, "bob": -16}
        assert match.completed_at == FIXED_NOW.isoformat()
        assert result.events[-1]["event"] == "match_completed"

        alice = user_repo.get_user("alice")
        bob = user_repo.get_user("bob")
        assert alice.ratings == {TTT: 1216}
        assert alice.games_played == {TTT: 1}
        assert alice.games_won == {TTT: 1}
        assert bob.ratings == {TTT: 1184}
        assert bob.games_won == {TTT: 0}

    def test_draw_completes_without_winner(self, engine, user_repo):
        match = start_match(engine, TTT, ["alice", "bob"])
        result = play_cells(engine, match, [
            ("alice", 0), ("bob", 1), ("alice", 2), ("bob", 4), ("alice", 3),
            ("bob", 5), ("alice", 7), ("bob", 6), ("alice", 8),
        ])
        assert result.match.status == STATUS_COMPLETED
        assert result.match.winner is None
        assert result.match.rating_changes == {"alice": 0, "bob": 0}
        assert user_repo.get_user("bob").games_played == {TTT: 1}
        assert user_repo.get_user("bob").games_won == {TTT: 0}

    def test_completion_uses_existing_ratings(self, engine, user_repo):
        user_repo.save_user(User(
            user_id="alice", username="alice",
            ratings={TTT: 1400}, games_played={TTT: 10}, games_won={TTT: 7},
        ))
        match = start_match(engine, TTT, ["alice", "bob"])
        result = play_cells(engine, match, [
            ("alice", 0), ("bob", 3), ("alice", 1), ("bob", 4), ("alice", 2),
        ])
        assert result.match.rating_changes == {"alice": 8, "bob": -8}
        assert user_repo.get_user("alice").games_played == {TTT: 11}

    def test_move_after_completion_is_finished(self, engine):
        match = start_match(engine, TTT, ["alice", "bob"])
        done = play_cells(engine, match, [
            ("alice", 0), ("bob", 3), ("alice", 1), ("bob", 4), ("alice", 2),
        ]).match
        result = engine.submit_move(match.match_id, "bob", {"cell": 8})
        assert isinstance(result.error, Finished)
        assert engine.get_match(match.match_id).rating_changes == done.rating_changes

    def test_rating_failure_commits_nothing(self, match_repo, game_repo, user_repo, clock):
        class BrokenRatings(EloRatingEngine):
            def compute_deltas(self, ratings, outcome, roster):
                raise InvalidInput("registry out of sync")

        engine = MatchEngine(
            match_repo, game_repo, user_repo,
            registry=default_registry(), rating_engine=BrokenRatings(), clock=clock,
        )
        match = start_match(engine, TTT, ["alice", "bob"])
        before = play_cells(engine, match, [
            ("alice", 0), ("bob", 3), ("alice", 1), ("bob", 4),
        ]).match

        with pytest.raises(InvalidInput):
            engine.submit_move(match.match_id, "alice", {"cell": 2})

        assert engine.get_match(match.match_id) == before
        assert user_repo.get_user("alice") is None
        assert user_repo.get_user("bob") is None

    def test_store_unavailable_propagates(self, engine, match_repo, monkeypatch):
        match = start_match(engine, TTT, ["alice", "bob"])

        def down(*args, **kwargs):
            raise StoreUnavailable("dynamodb down")

        monkeypatch.setattr(match_repo, "save_match", down)
        with pytest.raises(StoreUnavailable):
            engine.submit_move(match.match_id, "alice", {"cell": 0})


class TestAbandonMatch:
    def test_abandon_waiting(self, engine, user_repo):
        match = engine.create_match(TTT, "alice").match
        result = engine.abandon_match(match.match_id, "alice")
        assert result.success
        assert result.match.status == STATUS_ABANDONED
        assert result.match.completed_at == FIXED_NOW.isoformat()
        assert not result.match.rating_changes
        assert user_repo.get_user("alice") is None

    def test_abandon_in_progress(self, engine):
        match = start_match(engine, TTT, ["alice", "bob"])
        result = engine.abandon_match(match.match_id, "bob")
        assert result.match.status == STATUS_ABANDONED
        assert result.match.current_player is None
        assert result.match.rating_changes is None

    def test_abandoned_is_immutable(self, engine):
        match = start_match(engine, TTT, ["alice", "bob"])
        engine.abandon_match(match.match_id, "bob")
        assert isinstance(engine.abandon_match(match.match_id, "alice").error, Finished)
        result = engine.submit_move(match.match_id, "alice", {"cell": 0})
        assert isinstance(result.error, Finished)

    def test_stranger_cannot_abandon(self, engine):
        match = engine.create_match(TTT, "alice").match
        result = engine.abandon_match(match.match_id, "mallory")
        assert isinstance(result.error, NotAPlayer)
        assert engine.get_match(match.match_id).status == STATUS_WAITING

    def test_system_can_abandon(self, engine):
        match = engine.create_match(TTT, "alice").match
        assert engine.abandon_match(match.match_id, "system").success


class TestOpenAndStaleMatches:
    def test_list_open_matches(self, engine):
        waiting = engine.create_match(TTT, "alice").match
        start_match(engine, TTT, ["carol", "dave"])
        other = engine.create_match(CARDS, "erin").match
        assert {m.match_id for m in engine.list_open_matches()} == {
            waiting.match_id, other.match_id,
        }
        assert [m.match_id for m in engine.list_open_matches(CARDS)] == [other.match_id]

    def test_abandon_stale(self, engine, clock):
        old = engine.create_match(TTT, "alice").match
        clock.now = FIXED_NOW + timedelta(minutes=50)
        fresh = engine.create_match(TTT, "bob").match

        abandoned = engine.abandon_stale_matches(3600, now=FIXED_NOW + timedelta(hours=1))
        assert [m.match_id for m in abandoned] == [old.match_id]
        assert engine.get_match(old.match_id).status == STATUS_ABANDONED
        assert engine.get_match(fresh.match_id).status == STATUS_WAITING

    def test_stale_sweep_ignores_started_matches(self, engine, clock):
        match = start_match(engine, TTT, ["alice", "bob"])
        clock.now = FIXED_NOW + timedelta(days=1)
        assert engine.abandon_stale_matches(60) == []
        assert engine.get_match(match.match_id).status == STATUS_IN_PROGRESS


class TestTableSize:
    def test_match_waits_for_full_table(self, engine):
        match = engine.create_match(CARDS, "alice", table_size=3).match
        assert match.table_size == 3
        match = engine.join_match(match.match_id, "bob").match
        assert match.status == STATUS_WAITING
        match = engine.join_match(match.match_id, "carol").match
        assert match.status == STATUS_IN_PROGRESS
        assert set(match.game_state["hands"]) == {"alice", "bob", "carol"}

    def test_join_complete_table_is_full(self, engine):
        match = engine.create_match(CARDS, "alice", table_size=4).match
        for pid in ["bob", "carol", "dave"]:
            match = engine.join_match(match.match_id, pid).match
        assert match.status == STATUS_IN_PROGRESS
        result = engine.join_match(match.match_id, "erin")
        assert isinstance(result.error, Full)
        assert len(engine.get_match(match.match_id).players) == 4

    @pytest.mark.parametrize("size", [1, 5, "3", True, 2.0])
    def test_table_size_outside_game_bounds(self, engine, size):
        result = engine.create_match(CARDS, "alice", table_size=size)
        assert isinstance(result.error, BadTableSize)
        assert result.match is None
        assert engine.list_open_matches() == []


class TestStartFailures:
    def test_missing_rules_module_on_join(self, engine, match_repo, game_repo, user_repo, clock):
        match = engine.create_match(CARDS, "alice").match
        ttt_only = MatchEngine(
            match_repo, game_repo, user_repo,
            registry=RuleRegistry([TicTacToeRules()]).freeze(), clock=clock,
        )
        result = ttt_only.join_match(match.match_id, "bob")
        assert isinstance(result.error, UnknownGame)
        assert engine.get_match(match.match_id).players == ["alice"]

    def test_rules_that_cannot_deal_the_table(self, engine, game_repo):
        game_repo.save_game(Game(
            name=CARDS, display_name="Draw a Card", min_players=3, max_players=4,
            rules={"handSize": 20},
        ))
        match = engine.create_match(CARDS, "alice").match
        engine.join_match(match.match_id, "bob")
        result = engine.join_match(match.match_id, "carol")
        assert not result.success
        assert isinstance(result.error, UnknownGame)
        assert result.match.players == ["alice", "bob"]

        stored = engine.get_match(match.match_id)
        assert stored.status == STATUS_WAITING
        assert stored.players == ["alice", "bob"]
        assert stored.game_state is None
