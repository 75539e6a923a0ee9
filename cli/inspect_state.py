"""Inspect and validate a saved match.

Usage:
  python -m cli.inspect_state --file match_snapshot.json
  python -m cli.inspect_state --file match_snapshot.json --show board
  python -m cli.inspect_state --file match_snapshot.json --validate [--min 2 --max 2]
"""

from __future__ import annotations

import argparse
import json
import sys

from gameserver.match.integrity import validate_match_integrity
from gameserver.match.models import Game, Match
from gameserver.rules.draw_a_card import DrawACardRules
from gameserver.rules.tictactoe import TicTacToeRules
from gameserver.utils.constants import GAME_DRAW_A_CARD, GAME_TIC_TAC_TOE, STATUS_COMPLETED


def inspect_state(
    file_path: str,
    show: str | None,
    validate: bool,
    min_players: int | None = None,
    max_players: int | None = None,
) -> int:
    with open(file_path) as f:
        data = json.load(f)

    match = Match.from_dict(data)

    if validate:
        game = None
        if min_players is not None and max_players is not None:
            game = Game(
                name=match.game_type,
                display_name=match.game_type,
                min_players=min_players,
                max_players=max_players,
            )
        errors = validate_match_integrity(match, game)
        if errors:
            print("Integrity errors:")
            for e in errors:
                print(f"  - {e}")
            return 1
        print("State is valid")
        return 0

    if show == "board":
        if match.game_state is None:
            print("Match has not started")
        elif match.game_type == GAME_TIC_TAC_TOE:
            print(TicTacToeRules.render(match.game_state))
        elif match.game_type == GAME_DRAW_A_CARD:
            totals = DrawACardRules.totals(match.game_state)
            for pid in match.players:
                hand = " ".join(match.game_state["hands"][pid])
                played = " ".join(match.game_state["played"][pid])
                print(f"  {pid}: hand=[{hand}] played=[{played}] total={totals[pid]}")
        else:
            print(json.dumps(match.game_state, indent=2))
        return 0

    # Default: full dump
    print(f"Match ID: {match.match_id}")
    print(f"Game: {match.game_type}")
    print(f"Status: {match.status}")
    print(f"Players: {', '.join(match.players)}")
    print(f"Current player: {match.current_player}")
    if match.status == STATUS_COMPLETED:
        print(f"Winner: {match.winner or 'draw'}")
        print(f"Rating changes: {match.rating_changes}")
    if match.completed_at:
        print(f"Completed at: {match.completed_at}")
    print(f"Version: {match.version}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect a saved match")
    parser.add_argument("--file", required=True, help="Path to match JSON")
    parser.add_argument("--show", choices=["board"], help="What to show")
    parser.add_argument("--validate", action="store_true", help="Validate integrity")
    parser.add_argument("--min", dest="min_players", type=int, help="Game minPlayers")
    parser.add_argument("--max", dest="max_players", type=int, help="Game maxPlayers")
    args = parser.parse_args()
    sys.exit(
        inspect_state(args.file, args.show, args.validate, args.min_players, args.max_players)
    )


if __name__ == "__main__":
    main()
