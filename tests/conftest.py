"""
Pytest configuration for CheckPlease tests.
Settings are read at import time, so the environment must be set up first.
"""

import os

os.environ["CHECKPLEASE_APP_AUTH_KEY"] = "test-auth-key"
os.environ["CHECKPLEASE_RUN_QUEUED_JOBS_INLINE"] = "true"
os.environ["CHECKPLEASE_BROADCAST_STREAM_PREFIX"] = "CheckPlease:test:"
os.environ["CHECKPLEASE_PROGRESS_POLICY"] = "chunk_count"
os.environ["CHECKPLEASE_PROGRESS_EVERY_N_CHUNKS"] = "100"

import fakeredis
import pytest

from checkplease.worker.fixity_state import FixityCheckStore
from tests.fakes import RecordingBroadcaster

AUTH_KEY = os.environ["CHECKPLEASE_APP_AUTH_KEY"]


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis(redis_server):
    return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def store(redis):
    return FixityCheckStore(redis)


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {AUTH_KEY}"}
