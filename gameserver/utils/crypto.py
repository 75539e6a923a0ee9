"""Random and identifier utilities for the game server."""

import hashlib
import random
import secrets
import uuid


def create_rng(seed: int | None = None) -> random.Random:
    """Create a Random instance.

    If seed is provided, returns a deterministic Random (for rule modules,
    tests and replay). If seed is None, returns SystemRandom.
    """
    if seed is not None:
        return random.Random(seed)
    return secrets.SystemRandom()


def roster_seed(player_ids: list[str], salt: str = "") -> int:
    """Stable integer seed derived from the roster order.

    Same players in the same order always give the same seed, across
    processes and interpreter runs (unlike the builtin hash()).
    """
    digest = hashlib.sha256(
        ("\x1f".join(player_ids) + "\x1e" + salt).encode("utf-8")
    ).digest()
    return int.from_bytes(digest[:8], "big")


def new_match_id() -> str:
    return str(uuid.uuid4())
