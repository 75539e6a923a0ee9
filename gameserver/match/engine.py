"""Match state machine: lifecycle, turn order, move application, ratings."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from gameserver.db.repository import GameRepository, MatchRepository, UserRepository
from gameserver.errors import (
    AlreadyJoined,
    BadTableSize,
    Conflict,
    Finished,
    Full,
    GameServerError,
    NotAPlayer,
    NotFound,
    UnknownGame,
)
from gameserver.match.models import Game, Match, User
from gameserver.rating.elo import EloRatingEngine
from gameserver.rules.base import Outcome, RuleModule
from gameserver.rules.registry import RuleRegistry, default_registry
from gameserver.utils.constants import (
    STATUS_ABANDONED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_WAITING,
    SYSTEM_REQUESTER,
)

logger = logging.getLogger("gameserver.engine")


@dataclass
class ActionResult:
    success: bool
    match: Match | None
    error: GameServerError | None = None
    events: list[dict] = field(default_factory=list)


class MatchEngine:
    """Stateless match engine. All state lives in Match / repositories.

    Caller mistakes come back as ActionResult.error. Store failures
    (Conflict, Timeout, StoreUnavailable) and rating invariant violations
    (InvalidInput) are raised, and nothing is committed.
    """

    def __init__(
        self,
        match_repo: MatchRepository,
        game_repo: GameRepository,
        user_repo: UserRepository,
        registry: RuleRegistry | None = None,
        rating_engine: EloRatingEngine | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._matches = match_repo
        self._games = game_repo
        self._users = user_repo
        self._registry = registry or default_registry()
        self._ratings = rating_engine or EloRatingEngine()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def create_match(
        self, game_type: str, creator_id: str, table_size: int | None = None
    ) -> ActionResult:
        """Create a WAITING match with the creator as the only player.

        table_size fixes how many players the match starts with; by default
        it starts as soon as the game's minPlayers have joined.
        """
        game, module, error = self._active_game(game_type)
        if error:
            return ActionResult(success=False, match=None, error=error)

        if table_size is not None and (
            isinstance(table_size, bool)
            or not isinstance(table_size, int)
            or not game.min_players <= table_size <= game.max_players
        ):
            return ActionResult(
                success=False, match=None,
                error=BadTableSize(
                    f"Table size for {game_type} must be "
                    f"{game.min_players}-{game.max_players}, got {table_size!r}"
                ),
            )

        now = self._now()
        match = Match(
            match_id=Match.new_match_id(),
            game_type=game_type,
            players=[creator_id],
            status=STATUS_WAITING,
            created_at=now,
            updated_at=now,
            table_size=table_size,
        )
        events = [{
            "event": "match_created",
            "match_id": match.match_id,
            "game_type": game_type,
            "creator": creator_id,
            "table_size": table_size,
        }]
        if len(match.players) >= _start_size(match, game):
            event, error = self._start(match, game, module)
            if error:
                return ActionResult(success=False, match=None, error=error)
            events.append(event)

        match = self._matches.save_match(match)
        self._log(events)
        return ActionResult(success=True, match=match, events=events)

    def join_match(self, match_id: str, player_id: str) -> ActionResult:
        """Append a player; starts the match once the table is complete."""
        match = self._matches.get_match(match_id)
        if match is None:
            return ActionResult(success=False, match=None, error=NotFound(f"Match {match_id} not found"))

        if match.is_terminal:
            return ActionResult(
                success=False, match=match,
                error=Finished(f"Match is already {match.status}"),
            )

        if player_id in match.players:
            return ActionResult(
                success=False, match=match,
                error=AlreadyJoined(f"{player_id} already joined this match"),
            )

        game, module, error = self._active_game(match.game_type)
        if error:
            return ActionResult(success=False, match=match, error=error)

        capacity = _capacity(match, game)
        if len(match.players) >= capacity:
            return ActionResult(
                success=False, match=match,
                error=Full(f"Match is full (max {capacity})"),
            )

        if match.status != STATUS_WAITING:
            return ActionResult(
                success=False, match=match,
                error=Finished(f"Match is {match.status}, not accepting players"),
            )

        match.players.append(player_id)
        events = [{
            "event": "player_joined",
            "match_id": match_id,
            "user_id": player_id,
            "players": len(match.players),
        }]
        if len(match.players) >= _start_size(match, game):
            event, error = self._start(match, game, module)
            if error:
                match.players.pop()
                return ActionResult(success=False, match=match, error=error)
            events.append(event)
        match.updated_at = self._now()

        match = self._matches.save_match(match)
        self._log(events)
        return ActionResult(success=True, match=match, events=events)

    def submit_move(self, match_id: str, player_id: str, move: dict) -> ActionResult:
        """Validate and apply one move. A rejected move changes nothing."""
        match = self._matches.get_match(match_id)
        if match is None:
            return ActionResult(success=False, match=None, error=NotFound(f"Match {match_id} not found"))

        if match.status != STATUS_IN_PROGRESS:
            return ActionResult(
                success=False, match=match,
                error=Finished(f"Match is {match.status}, not accepting moves"),
            )

        module = self._registry.get(match.game_type)
        if module is None:
            return ActionResult(
                success=False, match=match,
                error=UnknownGame(f"No rules for {match.game_type}"),
            )

        result = module.validate_move(match.game_state, player_id, move)
        if not result.valid:
            return ActionResult(success=False, match=match, error=result.error)

        match.game_state = result.state
        match.updated_at = self._now()
        events = [{
            "event": "move",
            "match_id": match_id,
            "user_id": player_id,
            "move": move,
        }]

        outcome = module.outcome(match.game_state)
        users: list[User] = []
        if outcome.is_terminal:
            users = self._complete(match, outcome, events)
        else:
            match.current_player = module.next_player(match.game_state, match.players)

        match = self._matches.save_match(match, users)
        self._log(events)
        return ActionResult(success=True, match=match, events=events)

    def abandon_match(self, match_id: str, requester_id: str) -> ActionResult:
        """Abandon a WAITING or IN_PROGRESS match. Ratings are untouched."""
        match = self._matches.get_match(match_id)
        if match is None:
            return ActionResult(success=False, match=None, error=NotFound(f"Match {match_id} not found"))

        if match.is_terminal:
            return ActionResult(
                success=False, match=match,
                error=Finished(f"Match is already {match.status}"),
            )

        if requester_id != SYSTEM_REQUESTER and requester_id not in match.players:
            return ActionResult(
                success=False, match=match,
                error=NotAPlayer(f"{requester_id} is not in this match"),
            )

        previous = match.status
        now = self._now()
        match.status = STATUS_ABANDONED
        match.current_player = None
        match.completed_at = now
        match.updated_at = now

        match = self._matches.save_match(match)
        event = {
            "event": "match_abandoned",
            "match_id": match_id,
            "requester": requester_id,
            "previous_status": previous,
        }
        self._log([event])
        return ActionResult(success=True, match=match, events=[event])

    def get_match(self, match_id: str) -> Match | None:
        return self._matches.get_match(match_id)

    def list_open_matches(self, game_type: str | None = None) -> list[Match]:
        matches = self._matches.list_matches(status=STATUS_WAITING, game_type=game_type)
        return sorted(matches, key=lambda m: m.created_at)

    def abandon_stale_matches(
        self, max_age_seconds: float, now: datetime | None = None
    ) -> list[Match]:
        """Abandon WAITING matches created more than max_age_seconds ago.

        A match that changes while the sweep runs (someone joined) is skipped.
        """
        cutoff = (now or self._clock()) - timedelta(seconds=max_age_seconds)
        abandoned = []
        for match in self._matches.list_matches(status=STATUS_WAITING):
            if datetime.fromisoformat(match.created_at) > cutoff:
                continue
            try:
                result = self.abandon_match(match.match_id, SYSTEM_REQUESTER)
            except Conflict:
                logger.info("Skipping stale match %s: changed during sweep", match.match_id)
                continue
            if result.success:
                abandoned.append(result.match)
        return abandoned

    # --- Private helpers ---

    def _active_game(
        self, game_type: str
    ) -> tuple[Game | None, RuleModule | None, GameServerError | None]:
        game = self._games.get_game(game_type)
        if game is None or not game.is_active:
            return None, None, UnknownGame(f"No active game named {game_type}")
        module = self._registry.get(game_type)
        if module is None:
            return None, None, UnknownGame(f"No rules registered for {game_type}")
        return game, module, None

    def _start(
        self, match: Match, game: Game, module: RuleModule
    ) -> tuple[dict | None, GameServerError | None]:
        """WAITING -> IN_PROGRESS: initial state and first player.

        Leaves the match untouched when the game's rules cannot seat this roster.
        """
        try:
            state = module.initial_state(list(match.players), game.rules)
        except ValueError as e:
            logger.error("Cannot start %s match %s: %s", match.game_type, match.match_id, e)
            return None, UnknownGame(f"Rules for {match.game_type} cannot start this match: {e}")
        match.game_state = state
        match.status = STATUS_IN_PROGRESS
        match.current_player = module.next_player(match.game_state, match.players)
        return {
            "event": "match_started",
            "match_id": match.match_id,
            "players": list(match.players),
            "first_player": match.current_player,
        }, None

    def _complete(self, match: Match, outcome: Outcome, events: list[dict]) -> list[User]:
        """IN_PROGRESS -> COMPLETED: winner, rating deltas, user stats.

        Returns the updated users; they are committed with the match.
        """
        now = self._now()
        users = []
        for pid in match.players:
            user = self._users.get_user(pid)
            if user is None:
                user = User(user_id=pid, username=pid, created_at=now)
            users.append(user)

        ratings = {u.user_id: u.rating_for(match.game_type) for u in users}
        deltas = self._ratings.compute_deltas(ratings, outcome, list(match.players))

        for user in users:
            user.record_result(
                match.game_type,
                deltas[user.user_id],
                won=user.user_id == outcome.winner,
            )

        match.status = STATUS_COMPLETED
        match.winner = outcome.winner
        match.current_player = None
        match.rating_changes = deltas
        match.completed_at = now

        events.append({
            "event": "match_completed",
            "match_id": match.match_id,
            "outcome": outcome.kind,
            "winner": outcome.winner,
            "rating_changes": deltas,
        })
        return users

    def _log(self, events: list[dict]) -> None:
        for event in events:
            logger.info(json.dumps(event))

    def _now(self) -> str:
        return self._clock().isoformat()


def _start_size(match: Match, game: Game) -> int:
    """Roster size at which a WAITING match starts."""
    return match.table_size or game.min_players


def _capacity(match: Match, game: Game) -> int:
    return match.table_size or game.max_players
