"""
Production wiring of stores, engine and broadcaster.

Shared by the API (as FastAPI dependencies) and worker tasks (as taskiq
dependencies).
"""

from checkplease.core.broadcast import RedisBroadcaster
from checkplease.core.config import settings
from checkplease.core.db import get_pubsub_redis, get_records_redis
from checkplease.core.fixity import FixityCheckEngine
from checkplease.core.storage import S3ObjectReader, get_s3_client
from checkplease.worker.fixity_state import FixityCheckStore
from checkplease.worker.job import FixityCheckJob

__all__ = (
    "build_fixity_check_job",
    "get_broadcaster",
    "get_fixity_check_engine",
    "get_fixity_check_store",
)


async def get_fixity_check_store() -> FixityCheckStore:
    return FixityCheckStore(await get_records_redis(), ttl_seconds=settings.RECORD_TTL_SECONDS)


async def get_broadcaster() -> RedisBroadcaster:
    return RedisBroadcaster(await get_pubsub_redis())


def get_fixity_check_engine() -> FixityCheckEngine:
    return FixityCheckEngine(S3ObjectReader(get_s3_client()))


async def build_fixity_check_job() -> FixityCheckJob:
    return FixityCheckJob(
        store=await get_fixity_check_store(),
        engine=get_fixity_check_engine(),
        broadcaster=await get_broadcaster(),
    )
