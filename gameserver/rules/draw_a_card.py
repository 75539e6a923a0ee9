"""Draw-a-card rule module.

Each player is dealt a hand from one shuffled 52-card deck and, in roster
order, plays one card per turn. When every hand is empty, the player with
the highest total of played ranks wins; a shared highest total is a draw.

The shuffle is seeded from the roster (and the optional "seed" rules key),
so the same players in the same order always get the same deal.

State layout:
    {"hands": {playerId: ["Kh", ...]}, "played": {playerId: ["3s", ...]},
     "turn": roster index of the player to move, "remaining": ["2c", ...]}

Move layout: {"card": "Kh"}
"""

from __future__ import annotations

import copy

from gameserver.errors import IllegalMove, NotYourTurn
from gameserver.rules.base import MoveResult, Outcome
from gameserver.rules.cards import Card, create_deck, deal, shuffle_cards
from gameserver.utils.constants import DEFAULT_HAND_SIZE, GAME_DRAW_A_CARD
from gameserver.utils.crypto import create_rng, roster_seed


class DrawACardRules:
    name = GAME_DRAW_A_CARD

    def initial_state(self, player_ids: list[str], rules: dict | None = None) -> dict:
        rules = rules or {}
        hand_size = int(rules.get("handSize", DEFAULT_HAND_SIZE))
        if hand_size < 1:
            raise ValueError(f"handSize must be positive, got {hand_size}")

        rng = create_rng(roster_seed(player_ids, str(rules.get("seed", ""))))
        deck = shuffle_cards(create_deck(), rng)
        hands, remaining = deal(deck, len(player_ids), hand_size)

        return {
            "order": list(player_ids),
            "hands": {
                pid: [card.compact() for card in hands[i]]
                for i, pid in enumerate(player_ids)
            },
            "played": {pid: [] for pid in player_ids},
            "turn": 0,
            "remaining": [card.compact() for card in remaining],
        }

    def validate_move(self, state: dict, player_id: str, move: dict) -> MoveResult:
        order = state["order"]
        if order[state["turn"]] != player_id:
            return MoveResult(False, error=NotYourTurn(f"It is {order[state['turn']]}'s turn"))

        code = move.get("card") if isinstance(move, dict) else None
        try:
            card = Card.from_compact(code)
        except ValueError:
            return MoveResult(False, error=IllegalMove(f"Not a card: {code!r}"))

        hand = state["hands"][player_id]
        if card.compact() not in hand:
            return MoveResult(False, error=IllegalMove(f"Card {card.display()} not in hand"))

        new_state = copy.deepcopy(state)
        new_state["hands"][player_id].remove(card.compact())
        new_state["played"][player_id].append(card.compact())
        new_state["turn"] = (state["turn"] + 1) % len(order)
        return MoveResult(True, state=new_state)

    def outcome(self, state: dict) -> Outcome:
        if any(state["hands"][pid] for pid in state["order"]):
            return Outcome.ongoing()
        totals = self.totals(state)
        best = max(totals.values())
        leaders = [pid for pid in state["order"] if totals[pid] == best]
        if len(leaders) > 1:
            return Outcome.draw()
        return Outcome.win(leaders[0])

    def next_player(self, state: dict, player_ids: list[str]) -> str:
        return player_ids[state["turn"] % len(player_ids)]

    def legal_moves(self, state: dict, player_id: str) -> list[dict]:
        if state["order"][state["turn"]] != player_id:
            return []
        return [{"card": code} for code in state["hands"][player_id]]

    @staticmethod
    def totals(state: dict) -> dict[str, int]:
        return {
            pid: sum(Card.from_compact(code).rank for code in state["played"][pid])
            for pid in state["order"]
        }
