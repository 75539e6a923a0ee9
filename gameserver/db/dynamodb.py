"""DynamoDB repository implementations for production.

Tables (key attribute in brackets): {prefix}_Games [name],
{prefix}_Matches [matchId], {prefix}_Users [userId]. Opaque blobs
(Match.gameState, Game.rules) are stored as JSON strings so they round-trip
unchanged.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from typing import Any, Sequence

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from gameserver.errors import Conflict, StoreUnavailable, Timeout
from gameserver.match.models import Game, Match, User
from gameserver.utils.constants import (
    DEFAULT_STORE_TIMEOUT_SECONDS,
    DEFAULT_TABLE_PREFIX,
)

logger = logging.getLogger("gameserver.dynamodb")

# DynamoDB resources per timeout, kept at module level for Lambda warm starts
_resources: dict[float, Any] = {}
_prefix = os.environ.get("GAMESERVER_TABLE_PREFIX", DEFAULT_TABLE_PREFIX)

_UNAVAILABLE_CODES = {
    "InternalServerError",
    "ServiceUnavailable",
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "ThrottlingException",
    "ResourceNotFoundException",
}


def store_timeout() -> float:
    return float(os.environ.get("GAMESERVER_STORE_TIMEOUT", DEFAULT_STORE_TIMEOUT_SECONDS))


def _get_dynamodb(timeout: float | None = None):
    """Shared resource whose connect and read calls give up after `timeout` seconds."""
    timeout = float(timeout if timeout is not None else store_timeout())
    if timeout not in _resources:
        _resources[timeout] = boto3.resource(
            "dynamodb",
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 2, "mode": "standard"},
            ),
        )
    return _resources[timeout]


@contextmanager
def _store_errors(operation: str):
    """Translate botocore failures into the match error taxonomy."""
    try:
        yield
    except ClientError as e:
        code = e.response["Error"]["Code"]
        if code == "ConditionalCheckFailedException":
            raise Conflict(f"{operation}: version conflict") from e
        if code == "TransactionCanceledException":
            reasons = [r.get("Code") for r in e.response.get("CancellationReasons", [])]
            if "ConditionalCheckFailed" in reasons or "TransactionConflict" in reasons:
                raise Conflict(f"{operation}: version conflict") from e
            raise StoreUnavailable(f"{operation}: transaction cancelled {reasons}") from e
        if code in _UNAVAILABLE_CODES:
            logger.error("Store unavailable during %s: %s", operation, code)
            raise StoreUnavailable(f"{operation}: {code}") from e
        raise
    except (ReadTimeoutError, ConnectTimeoutError) as e:
        raise Timeout(f"{operation}: store did not answer in time") from e
    except BotoCoreError as e:
        logger.error("Store unavailable during %s: %s", operation, e)
        raise StoreUnavailable(f"{operation}: {e}") from e


def _versioned_put(table_name: str, key_name: str, item: dict, read_version: int) -> dict:
    """Put action for TransactWriteItems, conditional on the read version.

    Values stay native Python: the resource client serializes them.
    """
    stored = dict(item, version=read_version + 1)
    put = {
        "TableName": table_name,
        "Item": stored,
    }
    if read_version == 0:
        put["ConditionExpression"] = "attribute_not_exists(#k)"
        put["ExpressionAttributeNames"] = {"#k": key_name}
    else:
        put["ConditionExpression"] = "#v = :v"
        put["ExpressionAttributeNames"] = {"#v": "version"}
        put["ExpressionAttributeValues"] = {":v": read_version}
    return {"Put": put}


def _conditional_put(table, key_name: str, item: dict, read_version: int) -> None:
    stored = dict(item, version=read_version + 1)
    if read_version == 0:
        table.put_item(
            Item=stored,
            ConditionExpression="attribute_not_exists(#k)",
            ExpressionAttributeNames={"#k": key_name},
        )
    else:
        table.put_item(
            Item=stored,
            ConditionExpression="#v = :v",
            ExpressionAttributeNames={"#v": "version"},
            ExpressionAttributeValues={":v": read_version},
        )


def _scan_all(table, **kwargs) -> list[dict]:
    items: list[dict] = []
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _match_item(match: Match) -> dict:
    item = match.to_dict()
    item["gameState"] = json.dumps(match.game_state) if match.game_state is not None else None
    return item


def _match_from_item(item: dict) -> Match:
    item = dict(item)
    blob = item.get("gameState")
    item["gameState"] = json.loads(blob) if blob else None
    return Match.from_dict(item)


class DynamoDBGameRepository:
    def __init__(
        self, table_name: str | None = None, resource=None, timeout: float | None = None
    ) -> None:
        self._table_name = table_name or f"{_prefix}_Games"
        self._table = (resource or _get_dynamodb(timeout)).Table(self._table_name)

    def get_game(self, name: str) -> Game | None:
        with _store_errors("get_game"):
            response = self._table.get_item(Key={"name": name})
        item = response.get("Item")
        if not item:
            return None
        item = dict(item)
        item["rules"] = json.loads(item.get("rules") or "{}")
        return Game.from_dict(item)

    def save_game(self, game: Game) -> None:
        item = game.to_dict()
        item["rules"] = json.dumps(game.rules)
        with _store_errors("save_game"):
            self._table.put_item(Item=item)

    def list_games(self, active_only: bool = True) -> list[Game]:
        kwargs = {"FilterExpression": Attr("isActive").eq(True)} if active_only else {}
        with _store_errors("list_games"):
            items = _scan_all(self._table, **kwargs)
        games = []
        for item in items:
            item = dict(item)
            item["rules"] = json.loads(item.get("rules") or "{}")
            games.append(Game.from_dict(item))
        return games


class DynamoDBUserRepository:
    def __init__(
        self, table_name: str | None = None, resource=None, timeout: float | None = None
    ) -> None:
        self._table_name = table_name or f"{_prefix}_Users"
        self._table = (resource or _get_dynamodb(timeout)).Table(self._table_name)

    @property
    def table_name(self) -> str:
        return self._table_name

    def get_user(self, user_id: str) -> User | None:
        with _store_errors("get_user"):
            response = self._table.get_item(Key={"userId": user_id}, ConsistentRead=True)
        item = response.get("Item")
        return User.from_dict(item) if item else None

    def save_user(self, user: User) -> User:
        with _store_errors("save_user"):
            _conditional_put(self._table, "userId", user.to_dict(), user.version)
        saved = User.from_dict(user.to_dict())
        saved.version = user.version + 1
        return saved


class DynamoDBMatchRepository:
    def __init__(
        self,
        table_name: str | None = None,
        user_table_name: str | None = None,
        resource=None,
        timeout: float | None = None,
    ) -> None:
        self._table_name = table_name or f"{_prefix}_Matches"
        self._user_table_name = user_table_name or f"{_prefix}_Users"
        resource = resource or _get_dynamodb(timeout)
        self._table = resource.Table(self._table_name)
        self._client = resource.meta.client

    def get_match(self, match_id: str) -> Match | None:
        with _store_errors("get_match"):
            response = self._table.get_item(
                Key={"matchId": match_id},
                ConsistentRead=True,
            )
        item = response.get("Item")
        if not item:
            return None
        return _match_from_item(item)

    def save_match(self, match: Match, users: Sequence[User] = ()) -> Match:
        item = _match_item(match)
        with _store_errors("save_match"):
            if not users:
                _conditional_put(self._table, "matchId", item, match.version)
            else:
                actions = [
                    _versioned_put(self._table_name, "matchId", item, match.version)
                ]
                for user in users:
                    actions.append(
                        _versioned_put(
                            self._user_table_name, "userId", user.to_dict(), user.version
                        )
                    )
                self._client.transact_write_items(TransactItems=actions)
        saved = Match.from_dict(match.to_dict())
        saved.version = match.version + 1
        return saved

    def list_matches(
        self, status: str | None = None, game_type: str | None = None
    ) -> list[Match]:
        condition = None
        if status is not None:
            condition = Attr("status").eq(status)
        if game_type is not None:
            by_type = Attr("gameType").eq(game_type)
            condition = by_type if condition is None else condition & by_type
        kwargs = {"FilterExpression": condition} if condition is not None else {}
        with _store_errors("list_matches"):
            items = _scan_all(self._table, **kwargs)
        return [_match_from_item(item) for item in items]
