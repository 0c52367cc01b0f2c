"""Audit helpers for friendships and follows."""

from __future__ import annotations

import logging
from typing import Dict

from redis.exceptions import RedisError

from socialcore.infra.redis import redis_client
from socialcore.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

FRIENDSHIP_STREAM = "x:friendships.events"
FOLLOW_STREAM = "x:follows.events"


async def _append(stream: str, event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **{key: str(value) for key, value in fields.items() if value is not None}}
	try:
		await redis_client.xadd(stream, payload)
	except RedisError:
		logger.warning("audit append failed", extra={"stream": stream, "event": event})


async def log_friend_event(event: str, fields: Dict[str, str]) -> None:
	await _append(FRIENDSHIP_STREAM, event, fields)


async def log_follow_event(event: str, fields: Dict[str, str]) -> None:
	await _append(FOLLOW_STREAM, event, fields)


def inc_friend_request(result: str) -> None:
	obs_metrics.inc_friend_request(result)


def inc_friendship_accepted(via: str) -> None:
	obs_metrics.inc_friendship_accepted(via)


def inc_friendship_removed(via: str) -> None:
	obs_metrics.inc_friendship_removed(via)


def inc_follow(kind: str, action: str) -> None:
	obs_metrics.inc_follow(kind, action)
