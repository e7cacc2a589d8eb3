"""
One fixity check run against a persisted record.

    pending ──start──▶ in_progress ──engine ok──▶ success    (complete broadcast)
                            │
                            └──engine error──▶ failure    (error broadcast)

Progress broadcasts are emitted while in_progress whenever the throttle allows.
"""

from __future__ import annotations

from typing import Callable

from redis.exceptions import RedisError

from checkplease.core.broadcast import BroadcastPort, topic_for
from checkplease.core.errors import FixityCheckNotFoundError, InvalidTransitionError
from checkplease.core.fixity import FixityCheckEngine
from checkplease.core.log import logger
from checkplease.core.progress import ProgressThrottle, build_throttle
from checkplease.schema.broadcast import (
    FixityCheckCompleteData,
    FixityCheckCompleteMessage,
    FixityCheckErrorData,
    FixityCheckErrorMessage,
    FixityCheckInProgressMessage,
)
from checkplease.schema.fixity_check import FixityCheckRecord, FixityCheckStatus
from checkplease.worker.fixity_state import FixityCheckStore

__all__ = (
    "FixityCheckJob",
    "ProgressReporter",
    "error_message_for",
)


def error_message_for(record: FixityCheckRecord, error_message: str) -> FixityCheckErrorMessage:
    return FixityCheckErrorMessage(
        data=FixityCheckErrorData(
            error_message=error_message,
            bucket_name=record.bucket_name,
            object_path=record.object_path,
            checksum_algorithm_name=record.checksum_algorithm_name,
        )
    )


class ProgressReporter:
    """Chunk observer that heartbeats the record and broadcasts liveness."""

    def __init__(
        self,
        record_id: str,
        topic: str,
        store: FixityCheckStore,
        broadcaster: BroadcastPort,
        throttle: ProgressThrottle,
    ):
        self.record_id = record_id
        self.topic = topic
        self.store = store
        self.broadcaster = broadcaster
        self.throttle = throttle
        self.emitted = 0

    async def __call__(self, chunk: bytes, bytes_read: int, chunk_sequence_number: int) -> None:
        if not self.throttle.should_emit(chunk_sequence_number):
            return
        await self.store.touch(self.record_id)
        await self.broadcaster.publish(self.topic, FixityCheckInProgressMessage())
        self.emitted += 1
        logger.debug(f"Fixity check {self.record_id}: {bytes_read} bytes read ({chunk_sequence_number} chunks)")


class FixityCheckJob:
    def __init__(
        self,
        store: FixityCheckStore,
        engine: FixityCheckEngine,
        broadcaster: BroadcastPort,
        throttle_factory: Callable[[], ProgressThrottle] = build_throttle,
    ):
        self.store = store
        self.engine = engine
        self.broadcaster = broadcaster
        self.throttle_factory = throttle_factory

    async def run(self, record_id: str) -> FixityCheckRecord:
        """
        Execute the fixity check for *record_id* and return the final record.

        A missing record raises FixityCheckNotFoundError. Every error raised by
        the engine ends the run in ``failure`` with an error broadcast instead of
        propagating, and a run whose terminal write fails (record expired or
        deleted, Redis unreachable) still broadcasts its outcome. Records that
        are not pending are returned untouched.
        """
        with logger.contextualize(record_id=record_id):
            record = await self.store.get(record_id)
            if record is None:
                raise FixityCheckNotFoundError(record_id)

            if record.status != FixityCheckStatus.pending:
                logger.warning(f"Fixity check {record_id}: already {record.status}, not running again")
                return record

            try:
                record = await self.store.start(record_id)
            except InvalidTransitionError as exc:
                logger.warning(f"Fixity check {record_id}: claimed by another run ({exc})")
                return await self._current(record_id)

            return await self._execute(record)

    async def _execute(self, record: FixityCheckRecord) -> FixityCheckRecord:
        topic = topic_for(record.job_identifier)
        reporter = ProgressReporter(record.id, topic, self.store, self.broadcaster, self.throttle_factory())
        logger.info(
            f"Fixity check {record.id}: {record.checksum_algorithm_name} of "
            f"{record.bucket_name}/{record.object_path}"
        )

        try:
            result = await self.engine.check(
                record.bucket_name,
                record.object_path,
                record.checksum_algorithm_name,
                on_chunk=reporter,
            )
        except Exception as exc:
            error_message = str(exc) or type(exc).__name__
            logger.error(f"Fixity check {record.id} failed: {error_message}")
            try:
                failed = await self.store.fail(record.id, error_message)
            except InvalidTransitionError:
                logger.warning(f"Fixity check {record.id}: terminal state already recorded")
                return await self._current(record.id)
            except (FixityCheckNotFoundError, RedisError):
                logger.exception(f"Fixity check {record.id}: could not record failure")
                failed = record.model_copy(
                    update={"status": FixityCheckStatus.failure, "error_message": error_message}
                )
            await self.broadcaster.publish(topic, error_message_for(failed, error_message))
            return failed

        try:
            completed = await self.store.complete(record.id, result)
        except InvalidTransitionError:
            logger.warning(f"Fixity check {record.id}: terminal state already recorded")
            return await self._current(record.id)
        except (FixityCheckNotFoundError, RedisError):
            # The digest is still good; subscribers get it even if the record is gone.
            logger.exception(f"Fixity check {record.id}: could not record result")
            completed = record.model_copy(
                update={
                    "status": FixityCheckStatus.success,
                    "checksum_hexdigest": result.hexdigest,
                    "object_size": result.size_bytes,
                }
            )

        await self.broadcaster.publish(
            topic,
            FixityCheckCompleteMessage(
                data=FixityCheckCompleteData(
                    bucket_name=completed.bucket_name,
                    object_path=completed.object_path,
                    checksum_algorithm_name=completed.checksum_algorithm_name,
                    checksum_hexdigest=result.hexdigest,
                    object_size=result.size_bytes,
                )
            ),
        )
        logger.info(
            f"Fixity check {record.id} complete: {result.hexdigest} "
            f"({result.size_bytes} bytes, {reporter.emitted} progress events)"
        )
        return completed

    async def _current(self, record_id: str) -> FixityCheckRecord:
        record = await self.store.get(record_id)
        if record is None:
            raise FixityCheckNotFoundError(record_id)
        return record
