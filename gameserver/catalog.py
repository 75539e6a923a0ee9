"""Game catalog: the game types offered by the server."""

from __future__ import annotations

from gameserver.db.repository import GameRepository
from gameserver.match.models import Game
from gameserver.utils.constants import (
    DEFAULT_HAND_SIZE,
    GAME_DRAW_A_CARD,
    GAME_TIC_TAC_TOE,
)

DEFAULT_GAMES = [
    Game(
        name=GAME_TIC_TAC_TOE,
        display_name="Tic Tac Toe",
        min_players=2,
        max_players=2,
        rules={"description": "Three in a row on a 3x3 board"},
    ),
    Game(
        name=GAME_DRAW_A_CARD,
        display_name="Draw a Card",
        min_players=2,
        max_players=4,
        rules={
            "description": "Play your hand, highest total wins",
            "handSize": DEFAULT_HAND_SIZE,
        },
    ),
]


def seed_default_games(game_repo: GameRepository, overwrite: bool = False) -> list[Game]:
    """Store the default games that are not in the catalog yet."""
    seeded = []
    for game in DEFAULT_GAMES:
        errors = game.validate()
        if errors:
            raise ValueError(f"Invalid game {game.name}: {errors}")
        if not overwrite and game_repo.get_game(game.name) is not None:
            continue
        game_repo.save_game(game)
        seeded.append(game)
    return seeded
