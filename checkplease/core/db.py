"""
Redis connection management for record storage and broadcasting.
"""

from asyncio import AbstractEventLoop, get_running_loop
from dataclasses import dataclass

from redis.asyncio import Redis

from checkplease.core.config import settings

__all__ = (
    "close_redis",
    "get_pubsub_redis",
    "get_records_redis",
)


@dataclass
class RedisConnections:
    loop: AbstractEventLoop | None = None
    records: Redis | None = None
    pubsub: Redis | None = None


_STATE = RedisConnections()


def _connect(db: int) -> Redis:
    return Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=db,
        password=settings.REDIS_PASSWORD,
        decode_responses=True,
    )


async def _ensure_loop() -> RedisConnections:
    # redis.asyncio clients are bound to the loop that created them
    loop = get_running_loop()
    state = _STATE
    if state.loop is not loop:
        await close_redis()
        state.loop = loop
    return state


async def get_records_redis() -> Redis:
    state = await _ensure_loop()
    if state.records is None:
        state.records = _connect(settings.REDIS_DB_RECORDS)
    return state.records


async def get_pubsub_redis() -> Redis:
    state = await _ensure_loop()
    if state.pubsub is None:
        state.pubsub = _connect(settings.REDIS_DB_PUBSUB)
    return state.pubsub


async def close_redis() -> None:
    state = _STATE
    for client in (state.records, state.pubsub):
        if client is not None:
            await client.aclose()
    state.records = None
    state.pubsub = None
    state.loop = None
