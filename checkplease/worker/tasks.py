"""
Worker tasks: run a fixity check, fail stalled checks.
"""

from datetime import UTC, datetime, timedelta

from taskiq import TaskiqDepends

from checkplease.core.broadcast import RedisBroadcaster, topic_for
from checkplease.core.config import settings
from checkplease.core.digests import digest_for
from checkplease.core.errors import InvalidTransitionError
from checkplease.core.log import logger
from checkplease.schema.fixity_check import FixityCheckParams, FixityCheckRecord
from checkplease.worker.broker import broker
from checkplease.worker.deps import build_fixity_check_job, get_broadcaster, get_fixity_check_store
from checkplease.worker.fixity_state import FixityCheckStore
from checkplease.worker.job import FixityCheckJob, error_message_for

__all__ = (
    "check_fixity",
    "enqueue_fixity_check",
    "fail_stalled_fixity_checks",
)


async def enqueue_fixity_check(
    store: FixityCheckStore,
    params: FixityCheckParams,
    job_identifier: str | None = None,
) -> FixityCheckRecord:
    """
    Create a pending record and queue its run.

    The algorithm name is validated first so a bad request fails without
    creating a record or touching the object store.
    """
    digest_for(params.checksum_algorithm_name)
    record = await store.create(
        bucket_name=params.bucket_name,
        object_path=params.object_path,
        checksum_algorithm_name=params.checksum_algorithm_name,
        job_identifier=job_identifier,
    )
    await check_fixity.kiq(record.id)
    return record


@broker.task(task_name="check_fixity")
async def check_fixity(
    record_id: str,
    job: FixityCheckJob = TaskiqDepends(build_fixity_check_job),  # noqa: B008
) -> dict:
    """
    Run the fixity check for one pending record.

    Engine failures end in the record's ``failure`` state and are not raised;
    a missing record is a configuration error and is raised (and not retried).
    """
    record = await job.run(record_id)
    return {
        "record_id": record.id,
        "job_identifier": record.job_identifier,
        "status": str(record.status),
    }


@broker.task(
    task_name="fail_stalled_fixity_checks",
    schedule=[{"cron": settings.STALLED_CHECK_CRON}],
)
async def fail_stalled_fixity_checks(
    store: FixityCheckStore = TaskiqDepends(get_fixity_check_store),  # noqa: B008
    broadcaster: RedisBroadcaster = TaskiqDepends(get_broadcaster),  # noqa: B008
) -> dict:
    """
    Fail in-progress checks whose heartbeat went quiet.

    A worker that crashed or was killed mid-stream leaves its record in
    ``in_progress`` forever; this moves such records to ``failure`` and tells
    any subscribers.
    """
    cutoff = datetime.now(UTC) - timedelta(seconds=settings.STALLED_CHECK_TIMEOUT_SECONDS)
    stalled = await store.find_stalled(cutoff)

    failed: list[str] = []
    for record in stalled:
        error_message = f"Fixity check stalled: no progress reported since {record.updated_at.isoformat()}"
        try:
            updated = await store.fail(record.id, error_message)
        except InvalidTransitionError:
            # finished between the scan and now
            continue
        await broadcaster.publish(topic_for(record.job_identifier), error_message_for(updated, error_message))
        failed.append(record.id)

    if failed:
        logger.warning(f"Marked {len(failed)} stalled fixity checks as failed: {', '.join(failed)}")
    return {"failed": failed}
