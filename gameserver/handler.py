"""AWS Lambda entry points for the game server.

Thin adapters: `lambda_handler` maps an API Gateway request onto one match
operation, `scheduled_handler` runs the stale-match sweep. All business
logic lives in gameserver/match/, gameserver/rules/ and gameserver/rating/.

Request body: {"action": "create"|"join"|"move"|"abandon"|"get", ...}
with "gameType", "tableSize", "matchId" and "move" as the action needs. The player id
is the identity provider's `sub` claim.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from gameserver.errors import (
    Conflict,
    GameServerError,
    NotFound,
    RatingError,
    StoreUnavailable,
    Timeout,
)
from gameserver.utils.constants import DEFAULT_WAITING_TTL_SECONDS
from gameserver.utils.retry import retry_transient

if TYPE_CHECKING:
    from gameserver.match.engine import MatchEngine
    from gameserver.profile.manager import ProfileManager

logger = logging.getLogger("gameserver.handler")
logger.setLevel(logging.INFO)

_STATUS_BY_ERROR = [
    (NotFound, 404),
    (Conflict, 409),
    (Timeout, 504),
    (StoreUnavailable, 503),
    (RatingError, 500),
]


@dataclass
class Deps:
    """Bundles all dependencies for the handlers."""

    engine: MatchEngine
    profiles: ProfileManager


# Module-level deps for Lambda warm starts
_deps: Deps | None = None


def _init_deps(overrides: dict | None = None, timeout: float | None = None) -> Deps:
    """Initialize dependencies (lazily, once per Lambda container).

    Store calls are bounded by `timeout` seconds, GAMESERVER_STORE_TIMEOUT by default.
    """
    global _deps

    if overrides:
        _deps = Deps(**overrides)
        return _deps

    from gameserver.db.dynamodb import (
        DynamoDBGameRepository,
        DynamoDBMatchRepository,
        DynamoDBUserRepository,
        store_timeout,
    )
    from gameserver.match.engine import MatchEngine
    from gameserver.profile.manager import ProfileManager

    if timeout is None:
        timeout = store_timeout()
    user_repo = DynamoDBUserRepository(timeout=timeout)
    match_repo = DynamoDBMatchRepository(
        user_table_name=user_repo.table_name, timeout=timeout
    )
    game_repo = DynamoDBGameRepository(timeout=timeout)
    _deps = Deps(
        engine=MatchEngine(match_repo, game_repo, user_repo),
        profiles=ProfileManager(user_repo),
    )
    return _deps


def _response(status: int, body: dict) -> dict:
    return {"statusCode": status, "body": json.dumps(body)}


def _error_response(error: GameServerError) -> dict:
    status = 400
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status = code
            break
    return _response(status, {"ok": False, "error": error.to_dict()})


def _player_id(event: dict) -> str | None:
    claims = (
        event.get("requestContext", {}).get("authorizer", {}).get("claims", {})
    )
    return claims.get("sub")


def _dispatch(deps: Deps, action: str, player_id: str, body: dict):
    engine = deps.engine
    if action == "create":
        return engine.create_match(
            body.get("gameType", ""), player_id, table_size=body.get("tableSize")
        )
    if action == "join":
        return engine.join_match(body.get("matchId", ""), player_id)
    if action == "move":
        return engine.submit_move(body.get("matchId", ""), player_id, body.get("move") or {})
    if action == "abandon":
        return engine.abandon_match(body.get("matchId", ""), player_id)
    raise ValueError(f"Unknown action: {action}")


def lambda_handler(event: dict, context: Any = None) -> dict:
    """Handle one match request via API Gateway."""
    player_id = _player_id(event)
    if not player_id:
        return _response(401, {"ok": False, "error": {"code": "UNAUTHENTICATED"}})

    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        return _response(400, {"ok": False, "error": {"code": "INVALID_JSON"}})
    if not isinstance(body, dict):
        return _response(400, {"ok": False, "error": {"code": "INVALID_JSON"}})

    action = body.get("action", "")
    logger.info(json.dumps({"event": "request_received", "action": action, "user_id": player_id}))

    deps = _deps or _init_deps()

    try:
        claims = event["requestContext"]["authorizer"]["claims"]
        deps.profiles.get_or_create_profile(player_id, claims.get("email", ""))

        if action == "get":
            match = deps.engine.get_match(body.get("matchId", ""))
            if match is None:
                return _error_response(NotFound("Match not found"))
            return _response(200, {"ok": True, "match": match.to_dict()})

        if action not in ("create", "join", "move", "abandon"):
            return _response(400, {"ok": False, "error": {"code": "UNKNOWN_ACTION"}})

        result = retry_transient(lambda: _dispatch(deps, action, player_id, body))
    except GameServerError as e:
        if isinstance(e, (StoreUnavailable, RatingError)):
            logger.exception("Request failed: %s", e.code)
        return _error_response(e)

    if not result.success:
        return _error_response(result.error)
    return _response(200, {"ok": True, "match": result.match.to_dict()})


def scheduled_handler(event: dict, context: Any = None) -> dict:
    """Abandon WAITING matches older than GAMESERVER_WAITING_TTL seconds."""
    deps = _deps or _init_deps()
    max_age = float(os.environ.get("GAMESERVER_WAITING_TTL", DEFAULT_WAITING_TTL_SECONDS))
    abandoned = deps.engine.abandon_stale_matches(max_age)
    logger.info(json.dumps({"event": "stale_sweep", "abandoned": len(abandoned)}))
    return {"abandoned": [m.match_id for m in abandoned]}
