"""Simulate matches with random players on the in-memory store.

Usage: python -m cli.simulate --game tic-tac-toe --matches 100 [--players 2] [--seed 42] [--verbose]
"""

from __future__ import annotations

import argparse
import random
import time

from gameserver.catalog import seed_default_games
from gameserver.db.memory import (
    InMemoryGameRepository,
    InMemoryMatchRepository,
    InMemoryUserRepository,
)
from gameserver.match.engine import MatchEngine
from gameserver.match.integrity import validate_match_integrity
from gameserver.match.models import Match
from gameserver.rules.registry import default_registry
from gameserver.utils.constants import GAME_DRAW_A_CARD, GAME_TIC_TAC_TOE, STATUS_IN_PROGRESS
from gameserver.utils.crypto import create_rng


class Simulator:
    """One engine and store shared by every simulated match, so ratings accumulate."""

    def __init__(self) -> None:
        self.user_repo = InMemoryUserRepository()
        self.game_repo = InMemoryGameRepository()
        self.registry = default_registry()
        self.engine = MatchEngine(
            InMemoryMatchRepository(self.user_repo),
            self.game_repo,
            self.user_repo,
            registry=self.registry,
        )
        seed_default_games(self.game_repo)

    def random_turn(self, match: Match, rng: random.Random) -> Match:
        module = self.registry.get(match.game_type)
        moves = module.legal_moves(match.game_state, match.current_player)
        if not moves:
            raise RuntimeError(f"No legal move for {match.current_player}")
        result = self.engine.submit_move(match.match_id, match.current_player, rng.choice(moves))
        if not result.success:
            raise RuntimeError(f"Move rejected: {result.error}")
        return result.match

    def simulate_match(
        self, game_type: str, player_ids: list[str], rng: random.Random
    ) -> dict:
        """Play one match to the end. Returns stats dict."""
        game = self.game_repo.get_game(game_type)
        result = self.engine.create_match(game_type, player_ids[0], table_size=len(player_ids))
        if not result.success:
            return {"error": str(result.error), "moves": 0}
        match = result.match
        for pid in player_ids[1:]:
            result = self.engine.join_match(match.match_id, pid)
            if not result.success:
                return {"error": str(result.error), "moves": 0}
            match = result.match

        moves = 0
        while match.status == STATUS_IN_PROGRESS:
            errors = validate_match_integrity(match, game)
            if errors:
                return {"error": f"Integrity: {errors}", "moves": moves}
            match = self.random_turn(match, rng)
            moves += 1

        errors = validate_match_integrity(match, game)
        return {
            "winner": match.winner,
            "moves": moves,
            "rating_changes": match.rating_changes,
            "error": f"Integrity: {errors}" if errors else None,
        }


def main() -> None:
    parser = argparse.ArgumentParser(description="Match simulator")
    parser.add_argument("--game", default=GAME_TIC_TAC_TOE, choices=[GAME_TIC_TAC_TOE, GAME_DRAW_A_CARD])
    parser.add_argument("--matches", type=int, default=100)
    parser.add_argument("--players", type=int, default=2, choices=[2, 3, 4])
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    base_seed = args.seed if args.seed is not None else int(time.time())
    print(
        f"Simulating {args.matches} {args.game} matches with {args.players} players "
        f"(base seed: {base_seed})"
    )

    sim = Simulator()
    player_ids = [f"p{i + 1}" for i in range(args.players)]
    errors = 0
    draws = 0
    wins: dict[str, int] = {}
    total_moves = 0

    for i in range(args.matches):
        rng = create_rng(base_seed + i)
        # Rotate seats so nobody always moves first
        offset = i % len(player_ids)
        roster = player_ids[offset:] + player_ids[:offset]
        try:
            result = sim.simulate_match(args.game, roster, rng)
        except RuntimeError as e:
            result = {"error": str(e), "moves": 0}

        if result.get("error"):
            errors += 1
            if args.verbose:
                print(f"  Match {i + 1}: ERROR - {result['error']}")
            continue

        total_moves += result["moves"]
        if result["winner"] is None:
            draws += 1
        else:
            wins[result["winner"]] = wins.get(result["winner"], 0) + 1
        if args.verbose:
            print(
                f"  Match {i + 1}: winner={result['winner']}, "
                f"moves={result['moves']}, changes={result['rating_changes']}"
            )

    completed = args.matches - errors
    print("\nResults:")
    print(f"  Completed: {completed}/{args.matches}")
    print(f"  Errors: {errors}")
    if completed > 0:
        print(f"  Average moves: {total_moves / completed:.1f}")
        print(f"  Wins: {wins}  Draws: {draws}")
        print("  Final ratings:")
        for pid in player_ids:
            user = sim.user_repo.get_user(pid)
            if user is not None:
                print(f"    {pid}: {user.rating_for(args.game)}")


if __name__ == "__main__":
    main()
