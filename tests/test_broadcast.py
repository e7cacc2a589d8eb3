import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError

from checkplease.core.broadcast import FIXITY_CHECK_STREAM_PREFIX, RedisBroadcaster, topic_for
from checkplease.schema.broadcast import FixityCheckInProgressMessage


def test_topic_for():
    assert FIXITY_CHECK_STREAM_PREFIX == "CheckPlease:test:fixity_check:"
    assert topic_for("cool-job-id1") == "CheckPlease:test:fixity_check:cool-job-id1"


@pytest.mark.asyncio
async def test_publish_sends_json():
    redis = AsyncMock()
    redis.publish.return_value = 1

    await RedisBroadcaster(redis).publish("some-topic", FixityCheckInProgressMessage())

    topic, payload = redis.publish.await_args.args
    assert topic == "some-topic"
    assert json.loads(payload) == {"type": "fixity_check_in_progress"}


@pytest.mark.asyncio
async def test_publish_failure_is_not_raised():
    redis = AsyncMock()
    redis.publish.side_effect = ConnectionError("connection refused")

    await RedisBroadcaster(redis).publish("some-topic", FixityCheckInProgressMessage())

    redis.publish.assert_awaited_once()

