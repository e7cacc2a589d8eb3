"""
Taskiq broker configuration.

Imported by both the FastAPI process (to enqueue tasks) and the taskiq worker CLI
(to consume and execute tasks). Keep this module free of checkplease.main imports
to avoid circular dependencies.
"""

import taskiq_fastapi
from taskiq import AsyncBroker, InMemoryBroker
from taskiq_redis import ListQueueBroker, RedisAsyncResultBackend

from checkplease.core.config import settings

__all__ = ("broker",)


def _redis_url(db: int) -> str:
    auth = f":{settings.REDIS_PASSWORD}@" if settings.REDIS_PASSWORD else ""
    return f"redis://{auth}{settings.REDIS_HOST}:{settings.REDIS_PORT}/{db}"


def _build_broker() -> AsyncBroker:
    if settings.RUN_QUEUED_JOBS_INLINE:
        # kiq() executes the task in the calling process
        return InMemoryBroker()

    result_backend = RedisAsyncResultBackend(
        redis_url=_redis_url(settings.REDIS_DB_RESULTS),
        result_ex_time=3600,
    )
    return ListQueueBroker(
        url=_redis_url(settings.REDIS_DB_BROKER),
        queue_name="checkplease:fixity_checks",
    ).with_result_backend(result_backend)


broker = _build_broker()

# Runs the FastAPI lifespan inside worker processes (startup logging, Redis
# cleanup on shutdown). String path avoids the circular import.
taskiq_fastapi.init(broker, "checkplease.main:app")
