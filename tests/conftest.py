"""Shared test fixtures for the game server."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gameserver.catalog import seed_default_games
from gameserver.db.memory import (
    InMemoryGameRepository,
    InMemoryMatchRepository,
    InMemoryUserRepository,
)
from gameserver.match.engine import MatchEngine
from gameserver.rating.elo import EloRatingEngine
from gameserver.rules.registry import default_registry

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for deterministic timestamps."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def game_repo():
    repo = InMemoryGameRepository()
    seed_default_games(repo)
    return repo


@pytest.fixture
def match_repo(user_repo):
    return InMemoryMatchRepository(user_repo)


@pytest.fixture
def engine(match_repo, game_repo, user_repo, clock):
    return MatchEngine(
        match_repo,
        game_repo,
        user_repo,
        registry=default_registry(),
        rating_engine=EloRatingEngine(k_factor=32),
        clock=clock,
    )


def start_match(engine: MatchEngine, game_type: str, player_ids: list[str]):
    """Create a match with the first player and join the rest."""
    result = engine.create_match(game_type, player_ids[0])
    assert result.success, result.error
    for pid in player_ids[1:]:
        result = engine.join_match(result.match.match_id, pid)
        assert result.success, result.error
    return result.match
