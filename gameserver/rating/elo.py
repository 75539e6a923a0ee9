"""Elo rating deltas for completed matches.

Pairwise Elo generalized to draws and to more than two players: each player
collects K * (S - E) against every other player, and the sum is averaged
over the number of opponents. Deltas are integers, rounded half away from
zero; two-player deltas always sum to exactly zero.
"""

from __future__ import annotations

import math
import os

from gameserver.errors import InvalidInput
from gameserver.rules.base import Outcome
from gameserver.utils.constants import (
    DEFAULT_K_FACTOR,
    ELO_SCALE,
    RATING_FLOOR,
)


def expected_score(rating: float, opponent_rating: float) -> float:
    return 1.0 / (1.0 + 10 ** ((opponent_rating - rating) / ELO_SCALE))


def round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def actual_score(player_id: str, opponent_id: str, outcome: Outcome) -> float:
    """Score of player against opponent for a terminal outcome.

    Two players who both lost to a third one are tied with each other.
    """
    if outcome.winner == player_id:
        return 1.0
    if outcome.winner == opponent_id:
        return 0.0
    return 0.5


class EloRatingEngine:
    def __init__(self, k_factor: int | None = None, floor: int = RATING_FLOOR) -> None:
        if k_factor is None:
            k_factor = int(os.environ.get("GAMESERVER_RATING_K", DEFAULT_K_FACTOR))
        self.k_factor = k_factor
        self.floor = floor

    def compute_deltas(
        self,
        ratings: dict[str, int],
        outcome: Outcome,
        roster: list[str],
    ) -> dict[str, int]:
        """Signed rating delta per player. Raises InvalidInput on bad input."""
        self._check_input(ratings, outcome, roster)

        if len(roster) == 1:
            return {roster[0]: 0}

        raw: dict[str, float] = {}
        for pid in roster:
            total = 0.0
            for other in roster:
                if other == pid:
                    continue
                expected = expected_score(ratings[pid], ratings[other])
                total += self.k_factor * (actual_score(pid, other, outcome) - expected)
            raw[pid] = total / (len(roster) - 1)

        deltas = {pid: round_half_away(raw[pid]) for pid in roster}

        if len(roster) == 2:
            deltas = self._balance_pair(deltas, raw, roster)

        return self._apply_floor(deltas, ratings, roster)

    # --- Private helpers ---

    @staticmethod
    def _check_input(ratings: dict[str, int], outcome: Outcome, roster: list[str]) -> None:
        if not roster:
            raise InvalidInput("Empty roster")
        if len(set(roster)) != len(roster):
            raise InvalidInput(f"Duplicate players in roster: {roster}")
        if not outcome.is_terminal:
            raise InvalidInput("Ratings need a terminal outcome")
        if outcome.winner is not None and outcome.winner not in roster:
            raise InvalidInput(f"Winner {outcome.winner} is not in the roster")
        missing = [pid for pid in roster if pid not in ratings]
        if missing:
            raise InvalidInput(f"No prior rating for {missing}")

    @staticmethod
    def _balance_pair(
        deltas: dict[str, int], raw: dict[str, float], roster: list[str]
    ) -> dict[str, int]:
        remainder = sum(deltas.values())
        if remainder == 0:
            return deltas
        larger = max(roster, key=lambda pid: (abs(raw[pid]), -roster.index(pid)))
        deltas[larger] -= remainder
        return deltas

    def _apply_floor(
        self, deltas: dict[str, int], ratings: dict[str, int], roster: list[str]
    ) -> dict[str, int]:
        clamped = dict(deltas)
        for pid in roster:
            lowest = self.floor - ratings[pid]
            if clamped[pid] < lowest:
                clamped[pid] = min(0, lowest)

        # Mirror a clamp onto the opponent so the pair stays zero-sum.
        if len(roster) == 2 and clamped != deltas:
            a, b = roster
            if clamped[a] != deltas[a]:
                clamped[b] = -clamped[a]
            else:
                clamped[a] = -clamped[b]
        return clamped
