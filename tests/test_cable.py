import json
from unittest.mock import AsyncMock

import fakeredis
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from checkplease.core.broadcast import topic_for
from checkplease.core.db import get_pubsub_redis
from checkplease.main import app
from checkplease.worker import tasks
from checkplease.worker.deps import get_fixity_check_store
from checkplease.worker.fixity_state import FixityCheckStore
from tests.conftest import AUTH_KEY

IDENTIFIER = json.dumps({"channel": "FixityCheckChannel", "job_identifier": "cool-job-id1"})
# Subscribing without a job identifier streams nothing; its confirmation marks
# that every earlier command has been handled.
BARRIER = json.dumps({"channel": "FixityCheckChannel"})
AUTH_HEADERS = {"Authorization": f"Bearer {AUTH_KEY}"}


def run_command(**params) -> dict:
    return {
        "command": "message",
        "identifier": IDENTIFIER,
        "data": json.dumps({"action": "run_fixity_check_for_s3_object", **params}),
    }


@pytest.fixture
def kiq(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr(tasks.check_fixity, "kiq", mock)
    return mock


@pytest.fixture
def client(redis_server):
    # The websocket runs on the test client's own event loop, so async
    # clients are created there.
    async def pubsub_redis():
        return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)

    async def fixity_check_store():
        return FixityCheckStore(fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True))

    app.dependency_overrides[get_pubsub_redis] = pubsub_redis
    app.dependency_overrides[get_fixity_check_store] = fixity_check_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sync_redis(redis_server):
    return fakeredis.FakeRedis(server=redis_server, decode_responses=True)


def barrier(ws) -> None:
    ws.send_json({"command": "subscribe", "identifier": BARRIER})
    assert ws.receive_json() == {"identifier": BARRIER, "type": "confirm_subscription"}


@pytest.mark.parametrize("authorization", [None, "Bearer wrong", "nonsense"])
def test_rejects_bad_credentials(client, authorization):
    headers = {"Authorization": authorization} if authorization else {}
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/cable", headers=headers) as ws:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_welcome_and_subscribe(client):
    with client.websocket_connect("/cable", headers=AUTH_HEADERS) as ws:
        assert ws.receive_json() == {"type": "welcome"}

        ws.send_json({"command": "subscribe", "identifier": IDENTIFIER})

        assert ws.receive_json() == {"identifier": IDENTIFIER, "type": "confirm_subscription"}


def test_unknown_channel_rejected(client):
    identifier = json.dumps({"channel": "SomethingElseChannel"})
    with client.websocket_connect("/cable", headers=AUTH_HEADERS) as ws:
        ws.receive_json()

        ws.send_json({"command": "subscribe", "identifier": identifier})

        assert ws.receive_json() == {"identifier": identifier, "type": "reject_subscription"}


def test_run_fixity_check_action(client, kiq, sync_redis):
    with client.websocket_connect("/cable", headers=AUTH_HEADERS) as ws:
        ws.receive_json()

        ws.send_json(
            run_command(bucket_name="some-bucket", object_path="path/to/object.png", checksum_algorithm_name="sha256")
        )
        barrier(ws)

    record_id = sync_redis.get(f"{FixityCheckStore.prefix}:job_identifier:cool-job-id1")
    assert record_id
    record = sync_redis.hgetall(f"{FixityCheckStore.prefix}:{record_id}")
    assert record["status"] == "pending"
    assert record["bucket_name"] == "some-bucket"
    assert record["object_path"] == "path/to/object.png"
    kiq.assert_awaited_once_with(record_id)


def test_run_with_unsupported_algorithm_replies_with_error(client, kiq, sync_redis):
    with client.websocket_connect("/cable", headers=AUTH_HEADERS) as ws:
        ws.receive_json()

        ws.send_json(
            run_command(bucket_name="some-bucket", object_path="path/to/object.png", checksum_algorithm_name="nope")
        )

        assert ws.receive_json() == {
            "identifier": IDENTIFIER,
            "message": {
                "type": "fixity_check_error",
                "data": {
                    "error_message": "Unsupported checksum algorithm: nope",
                    "bucket_name": "some-bucket",
                    "object_path": "path/to/object.png",
                    "checksum_algorithm_name": "nope",
                },
            },
        }

    assert sync_redis.keys("*") == []
    kiq.assert_not_awaited()


def test_malformed_commands_are_ignored(client, kiq):
    with client.websocket_connect("/cable", headers=AUTH_HEADERS) as ws:
        ws.receive_json()

        ws.send_text("not json")
        ws.send_json({"command": "message", "identifier": IDENTIFIER, "data": json.dumps({"action": "explode"})})
        barrier(ws)

    kiq.assert_not_awaited()


def test_broadcasts_are_relayed_to_subscribers(client, sync_redis):
    with client.websocket_connect("/cable", headers=AUTH_HEADERS) as ws:
        ws.receive_json()
        ws.send_json({"command": "subscribe", "identifier": IDENTIFIER})
        ws.receive_json()

        sync_redis.publish(topic_for("cool-job-id1"), json.dumps({"type": "fixity_check_in_progress"}))

        assert ws.receive_json() == {"identifier": IDENTIFIER, "message": {"type": "fixity_check_in_progress"}}


def test_unsubscribe_stops_the_stream(client, sync_redis):
    other = json.dumps({"channel": "FixityCheckChannel", "job_identifier": "cool-job-id2"})
    with client.websocket_connect("/cable", headers=AUTH_HEADERS) as ws:
        ws.receive_json()
        ws.send_json({"command": "subscribe", "identifier": IDENTIFIER})
        ws.receive_json()

        ws.send_json({"command": "unsubscribe", "identifier": IDENTIFIER})
        ws.send_json({"command": "subscribe", "identifier": other})
        assert ws.receive_json() == {"identifier": other, "type": "confirm_subscription"}

        assert sync_redis.publish(topic_for("cool-job-id1"), json.dumps({"type": "fixity_check_in_progress"})) == 0
        sync_redis.publish(topic_for("cool-job-id2"), json.dumps({"type": "fixity_check_in_progress"}))

        # Only the still-subscribed topic comes through.
        assert ws.receive_json() == {"identifier": other, "message": {"type": "fixity_check_in_progress"}}
