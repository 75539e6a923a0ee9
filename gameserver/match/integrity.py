"""State integrity checker for persisted matches."""

from __future__ import annotations

from gameserver.match.models import Game, Match
from gameserver.utils.constants import (
    MATCH_STATUSES,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_WAITING,
)


def validate_match_integrity(match: Match, game: Game | None = None) -> list[str]:
    """Validate match invariants. Returns list of errors (empty = OK).

    Checks:
    1. Status is a known value
    2. Roster has no duplicates and fits the game's player bounds
    3. currentPlayer is set (and in the roster) only while IN_PROGRESS
    4. gameState exists once the match has started
    5. completedAt is set exactly for terminal matches
    6. winner and ratingChanges only on COMPLETED, winner in roster
    7. Two-player rating changes sum to zero
    """
    errors: list[str] = []

    if match.status not in MATCH_STATUSES:
        errors.append(f"Unknown status: {match.status}")
        return errors

    if len(set(match.players)) != len(match.players):
        errors.append(f"Duplicate players: {match.players}")
    if not match.players:
        errors.append("Match has no players")

    if game is not None:
        start_size = match.table_size or game.min_players
        if match.table_size is not None and not (
            game.min_players <= match.table_size <= game.max_players
        ):
            errors.append(
                f"Table size {match.table_size} outside "
                f"{game.min_players}-{game.max_players}"
            )
        if len(match.players) > (match.table_size or game.max_players):
            errors.append(
                f"{len(match.players)} players exceeds maxPlayers {game.max_players}"
            )
        if match.status == STATUS_IN_PROGRESS and len(match.players) < start_size:
            errors.append(
                f"In progress with {len(match.players)} players, "
                f"needs {start_size}"
            )
        if match.status == STATUS_WAITING and len(match.players) >= start_size:
            errors.append("Waiting although the table is complete")

    if match.status == STATUS_IN_PROGRESS:
        if match.current_player not in match.players:
            errors.append(f"Current player {match.current_player} is not in the match")
    elif match.current_player is not None:
        errors.append(f"Current player set while {match.status}")

    if match.status in (STATUS_IN_PROGRESS, STATUS_COMPLETED) and match.game_state is None:
        errors.append("Started match has no game state")

    if match.is_terminal and not match.completed_at:
        errors.append(f"{match.status} match has no completedAt")
    if not match.is_terminal and match.completed_at:
        errors.append(f"{match.status} match has completedAt set")

    if match.status != STATUS_COMPLETED:
        if match.winner is not None:
            errors.append(f"Winner set while {match.status}")
        if match.rating_changes:
            errors.append(f"Rating changes set while {match.status}")
    else:
        if match.winner is not None and match.winner not in match.players:
            errors.append(f"Winner {match.winner} is not in the match")
        if match.rating_changes is None:
            errors.append("Completed match has no rating changes")
        elif set(match.rating_changes) != set(match.players):
            errors.append("Rating changes do not cover the roster")
        elif len(match.players) == 2 and sum(match.rating_changes.values()) != 0:
            errors.append(f"Rating changes do not sum to zero: {match.rating_changes}")

    return errors
