"""
Push-messaging channel for fixity checks.

Speaks the ActionCable JSON protocol over a websocket at ``/cable`` so that
existing cable clients can subscribe to a run by job identifier:

    {"command": "subscribe",
     "identifier": "{\"channel\": \"FixityCheckChannel\", \"job_identifier\": \"cool-job-id1\"}"}

    {"command": "message",
     "identifier": "{\"channel\": \"FixityCheckChannel\", \"job_identifier\": \"cool-job-id1\"}",
     "data": "{\"action\": \"run_fixity_check_for_s3_object\", \"bucket_name\": \"some-bucket\",
               \"object_path\": \"path/to/object.png\", \"checksum_algorithm_name\": \"sha256\"}"}

Broadcasts on the subscribed topic are relayed as ``{"identifier", "message"}``.
"""

import asyncio
import json
from typing import Literal

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ValidationError
from redis.asyncio import Redis

from checkplease.api.deps import is_valid_authorization
from checkplease.core.broadcast import topic_for
from checkplease.core.db import get_pubsub_redis
from checkplease.core.errors import CheckPleaseError
from checkplease.core.log import logger
from checkplease.schema.broadcast import FixityCheckErrorData, FixityCheckErrorMessage
from checkplease.schema.fixity_check import FixityCheckParams
from checkplease.worker.deps import get_fixity_check_store
from checkplease.worker.fixity_state import FixityCheckStore
from checkplease.worker.tasks import enqueue_fixity_check

__all__ = ("router",)

CHANNEL_NAME = "FixityCheckChannel"

router = APIRouter(tags=["cable"])


class CableCommand(BaseModel):
    command: Literal["subscribe", "unsubscribe", "message"]
    identifier: str
    data: str | None = None


class ChannelIdentifier(BaseModel):
    channel: str
    job_identifier: str | None = None


class RunFixityCheckAction(FixityCheckParams):
    action: Literal["run_fixity_check_for_s3_object"]


class CableConnection:
    """One websocket client and the topics it streams from."""

    def __init__(self, websocket: WebSocket, redis: Redis, store: FixityCheckStore):
        self.websocket = websocket
        self.store = store
        self.pubsub = redis.pubsub(ignore_subscribe_messages=True)
        self.streams: dict[str, str] = {}  # topic -> raw identifier
        self._relay: asyncio.Task | None = None

    async def handle(self, raw: str) -> None:
        try:
            command = CableCommand.model_validate_json(raw)
            identifier = ChannelIdentifier.model_validate_json(command.identifier)
        except ValidationError as exc:
            logger.warning(f"Ignoring malformed cable command: {exc.errors()[0]['msg']}")
            return

        if identifier.channel != CHANNEL_NAME:
            await self.websocket.send_json({"identifier": command.identifier, "type": "reject_subscription"})
            return

        if command.command == "subscribe":
            await self.subscribe(command.identifier, identifier)
        elif command.command == "unsubscribe":
            await self.unsubscribe(identifier)
        else:
            await self.perform(command.identifier, identifier, command.data)

    async def subscribe(self, raw_identifier: str, identifier: ChannelIdentifier) -> None:
        # Without a job identifier the subscription is confirmed but streams nothing.
        if identifier.job_identifier:
            topic = topic_for(identifier.job_identifier)
            await self.pubsub.subscribe(topic)
            self.streams[topic] = raw_identifier
            logger.debug(f"A client has started streaming from: {topic}")
            if self._relay is None:
                self._relay = asyncio.create_task(self._relay_messages())
        await self.websocket.send_json({"identifier": raw_identifier, "type": "confirm_subscription"})

    async def unsubscribe(self, identifier: ChannelIdentifier) -> None:
        if not identifier.job_identifier:
            return
        topic = topic_for(identifier.job_identifier)
        if self.streams.pop(topic, None) is not None:
            await self.pubsub.unsubscribe(topic)
            logger.debug(f"A client has stopped streaming from: {topic}")

    async def perform(self, raw_identifier: str, identifier: ChannelIdentifier, data: str | None) -> None:
        try:
            action = RunFixityCheckAction.model_validate_json(data or "{}")
        except ValidationError as exc:
            logger.warning(f"Ignoring malformed cable action: {exc.errors()[0]['msg']}")
            return

        logger.debug(f"{action.action} action received with job_identifier: {identifier.job_identifier}")
        try:
            await enqueue_fixity_check(self.store, action, job_identifier=identifier.job_identifier)
        except CheckPleaseError as exc:
            message = FixityCheckErrorMessage(
                data=FixityCheckErrorData(
                    error_message=str(exc),
                    bucket_name=action.bucket_name,
                    object_path=action.object_path,
                    checksum_algorithm_name=action.checksum_algorithm_name,
                )
            )
            await self.websocket.send_json({"identifier": raw_identifier, "message": message.model_dump()})

    async def _relay_messages(self) -> None:
        while True:
            if not self.streams:
                await asyncio.sleep(1.0)
                continue
            message = await self.pubsub.get_message(timeout=1.0)
            if message is None:
                continue
            raw_identifier = self.streams.get(message["channel"])
            if raw_identifier is None:
                continue
            await self.websocket.send_json({"identifier": raw_identifier, "message": json.loads(message["data"])})

    async def close(self) -> None:
        if self._relay is not None:
            self._relay.cancel()
            await asyncio.gather(self._relay, return_exceptions=True)
        await self.pubsub.aclose()


@router.websocket("/cable")
async def cable(
    websocket: WebSocket,
    redis: Redis = Depends(get_pubsub_redis),  # noqa: B008
    store: FixityCheckStore = Depends(get_fixity_check_store),  # noqa: B008
) -> None:
    if not is_valid_authorization(websocket.headers.get("authorization")):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await websocket.send_json({"type": "welcome"})
    connection = CableConnection(websocket, redis, store)
    try:
        while True:
            await connection.handle(await websocket.receive_text())
    except WebSocketDisconnect:
        logger.debug("Cable client disconnected")
    finally:
        await connection.close()
