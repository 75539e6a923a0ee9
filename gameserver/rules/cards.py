"""Playing cards for card-based rule modules: encoding, deck, shuffle, deal."""

from __future__ import annotations

import random
from dataclasses import dataclass

from gameserver.utils.constants import RANK_NAMES, RANKS, SUIT_SYMBOLS, SUITS

_RANK_BY_NAME = {v: k for k, v in RANK_NAMES.items()}


@dataclass(frozen=True)
class Card:
    """A single playing card.

    Compact encoding examples: "8h" = 8 of hearts, "Ks" = King of spades,
    "10c" = 10 of clubs, "Ad" = Ace of diamonds.
    """

    suit: str  # "h", "d", "c", "s"
    rank: int  # 1=Ace, 2-10, 11=J, 12=Q, 13=K

    def compact(self) -> str:
        return f"{RANK_NAMES[self.rank]}{self.suit}"

    @classmethod
    def from_compact(cls, code: str) -> Card:
        """Decode from compact string. Raises ValueError on bad input."""
        if not isinstance(code, str) or len(code) < 2:
            raise ValueError(f"Invalid card code: {code!r}")
        suit = code[-1]
        rank_str = code[:-1]
        if suit not in SUITS or rank_str not in _RANK_BY_NAME:
            raise ValueError(f"Invalid card code: {code!r}")
        return cls(suit=suit, rank=_RANK_BY_NAME[rank_str])

    def display(self) -> str:
        return f"{RANK_NAMES[self.rank]}{SUIT_SYMBOLS[self.suit]}"


def create_deck() -> list[Card]:
    """Create a standard 52-card deck, unshuffled."""
    return [Card(suit=suit, rank=rank) for suit in SUITS for rank in RANKS]


def shuffle_cards(cards: list[Card], rng: random.Random) -> list[Card]:
    """Fisher-Yates shuffle using provided RNG. Returns a new list."""
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal(
    deck: list[Card], num_players: int, cards_each: int
) -> tuple[list[list[Card]], list[Card]]:
    """Deal cards one at a time, round-robin.

    Returns (hands, remaining_deck). Raises ValueError if the deck is too small.
    """
    if num_players * cards_each > len(deck):
        raise ValueError(
            f"Cannot deal {cards_each} cards to {num_players} players from {len(deck)}"
        )
    dealt = num_players * cards_each
    # Card k of the deal goes to seat k % num_players
    hands = [list(deck[seat:dealt:num_players]) for seat in range(num_players)]
    return hands, list(deck[dealt:])
