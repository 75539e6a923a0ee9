"""Bounded retry-with-backoff for transient store errors at the call boundary."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from gameserver.errors import is_transient
from gameserver.utils.constants import RETRY_ATTEMPTS, RETRY_BASE_DELAY_SECONDS

logger = logging.getLogger("gameserver.retry")

T = TypeVar("T")


def retry_transient(
    fn: Callable[[], T],
    attempts: int = RETRY_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call fn, retrying Conflict/Timeout up to `attempts` times in total.

    fn must re-read the match itself; the last transient error is re-raised
    once attempts are exhausted. Anything else propagates immediately.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as e:
            if not is_transient(e) or attempt == attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "Transient %s on attempt %d/%d, retrying in %.3fs",
                getattr(e, "code", type(e).__name__), attempt, attempts, delay,
            )
            sleep(delay)
    raise AssertionError("unreachable")
