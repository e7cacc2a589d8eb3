"""
Fire-and-forget event broadcasting over Redis pub/sub.
"""

from __future__ import annotations

from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from checkplease.core.config import settings
from checkplease.core.log import logger
from checkplease.schema.broadcast import BroadcastMessage

__all__ = (
    "BroadcastPort",
    "FIXITY_CHECK_STREAM_PREFIX",
    "RedisBroadcaster",
    "topic_for",
)

FIXITY_CHECK_STREAM_PREFIX = f"{settings.BROADCAST_STREAM_PREFIX}fixity_check:"


def topic_for(job_identifier: str) -> str:
    return f"{FIXITY_CHECK_STREAM_PREFIX}{job_identifier}"


class BroadcastPort(Protocol):
    async def publish(self, topic: str, message: BroadcastMessage) -> None: ...


class RedisBroadcaster:
    """
    Publishes each message as one JSON-encoded PUBLISH.

    Delivery is at-most-once: nothing is acknowledged or retried, and a failed
    publish is logged rather than raised so that it never changes the outcome
    of the run that emitted it.
    """

    def __init__(self, redis: Redis):
        self.redis = redis

    async def publish(self, topic: str, message: BroadcastMessage) -> None:
        try:
            receivers = await self.redis.publish(topic, message.model_dump_json())
        except RedisError:
            logger.exception(f"Broadcast of {message.type} to {topic} failed")
            return
        logger.debug(f"Broadcast {message.type} to {topic} ({receivers} receivers)")
