"""
Redis-hash-backed fixity check records.

Each record is stored as a Redis hash at key ``checkplease:fixity_check:{id}``.
Null attributes are absent hash fields, so every write is a partial HSET of
just the fields it changes. Job identifiers are kept unique through a
``SET NX`` index key pointing back at the record id.
"""

from datetime import UTC, datetime
from uuid import uuid4

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError
from ulid import ULID

from checkplease.core.errors import DuplicateJobIdentifierError, FixityCheckNotFoundError, InvalidTransitionError
from checkplease.core.log import logger
from checkplease.schema.fixity_check import ChecksumResult, FixityCheckRecord, FixityCheckStatus

__all__ = (
    "FixityCheckStore",
    "VALID_TRANSITIONS",
)

VALID_TRANSITIONS: dict[FixityCheckStatus, set[FixityCheckStatus]] = {
    FixityCheckStatus.pending: {FixityCheckStatus.in_progress},
    FixityCheckStatus.in_progress: {FixityCheckStatus.success, FixityCheckStatus.failure},
    FixityCheckStatus.success: set(),
    FixityCheckStatus.failure: set(),
}


def _now() -> str:
    return datetime.now(UTC).isoformat()


class FixityCheckStore:
    """Create, read and transition fixity check records."""

    prefix = "checkplease:fixity_check"

    def __init__(self, redis: Redis, ttl_seconds: int | None = None):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def _key(self, record_id: str) -> str:
        return f"{self.prefix}:{record_id}"

    def _job_identifier_key(self, job_identifier: str) -> str:
        return f"{self.prefix}:job_identifier:{job_identifier}"

    async def create(
        self,
        *,
        bucket_name: str,
        object_path: str,
        checksum_algorithm_name: str,
        job_identifier: str | None = None,
    ) -> FixityCheckRecord:
        """Create a pending record. A job identifier is generated when none is given."""
        record_id = str(ULID())
        job_identifier = job_identifier or str(uuid4())

        claimed = await self.redis.set(
            self._job_identifier_key(job_identifier),
            record_id,
            nx=True,
            ex=self.ttl_seconds,
        )
        if not claimed:
            raise DuplicateJobIdentifierError(job_identifier)

        now = _now()
        mapping: dict[str, str] = {
            "id": record_id,
            "job_identifier": job_identifier,
            "bucket_name": bucket_name,
            "object_path": object_path,
            "checksum_algorithm_name": checksum_algorithm_name,
            "status": FixityCheckStatus.pending,
            "created_at": now,
            "updated_at": now,
        }
        await self.redis.hset(self._key(record_id), mapping=mapping)  # type: ignore
        if self.ttl_seconds:
            await self.redis.expire(self._key(record_id), self.ttl_seconds)

        logger.info(f"Fixity check {record_id} created for {bucket_name}/{object_path} ({job_identifier})")
        return FixityCheckRecord.from_hash(mapping)

    async def get(self, record_id: str) -> FixityCheckRecord | None:
        data = await self.redis.hgetall(self._key(record_id))  # type: ignore
        return FixityCheckRecord.from_hash(data) if data else None

    async def get_by_job_identifier(self, job_identifier: str) -> FixityCheckRecord | None:
        record_id = await self.redis.get(self._job_identifier_key(job_identifier))
        return await self.get(record_id) if record_id else None

    async def transition(
        self,
        record_id: str,
        new_status: FixityCheckStatus,
        *,
        fields: dict[str, str] | None = None,
    ) -> FixityCheckRecord:
        """
        Move a record to *new_status*, writing *fields* alongside.

        The status check and the write happen in one WATCH/MULTI transaction,
        so two writers racing on the same record cannot both succeed.
        """
        key = self._key(record_id)
        updates: dict[str, str] = {"status": new_status, "updated_at": _now()}
        if fields:
            updates.update(fields)

        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    current, job_identifier = await pipe.hmget(key, ["status", "job_identifier"])  # type: ignore
                    if current is None:
                        raise FixityCheckNotFoundError(record_id)
                    if new_status not in VALID_TRANSITIONS[FixityCheckStatus(current)]:
                        raise InvalidTransitionError(record_id, current, new_status)
                    pipe.multi()
                    pipe.hset(key, mapping=updates)  # type: ignore
                    self._queue_expire(pipe, key, job_identifier)
                    await pipe.execute()
                    break
                except WatchError:
                    continue

        record = await self.get(record_id)
        if record is None:
            raise FixityCheckNotFoundError(record_id)
        return record

    async def start(self, record_id: str) -> FixityCheckRecord:
        return await self.transition(record_id, FixityCheckStatus.in_progress)

    async def complete(self, record_id: str, result: ChecksumResult) -> FixityCheckRecord:
        return await self.transition(
            record_id,
            FixityCheckStatus.success,
            fields={
                "checksum_hexdigest": result.hexdigest,
                "object_size": str(result.size_bytes),
            },
        )

    async def fail(self, record_id: str, error_message: str) -> FixityCheckRecord:
        return await self.transition(
            record_id,
            FixityCheckStatus.failure,
            fields={"error_message": error_message},
        )

    async def touch(self, record_id: str) -> None:
        """
        Refresh ``updated_at`` (and the TTL, if any) without touching status.

        Guarded by WATCH so a record that expires or is deleted mid-check is
        never recreated as a hash holding only ``updated_at``.
        """
        key = self._key(record_id)
        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    job_identifier = await pipe.hget(key, "job_identifier")  # type: ignore
                    if job_identifier is None:
                        raise FixityCheckNotFoundError(record_id)
                    pipe.multi()
                    pipe.hset(key, "updated_at", _now())  # type: ignore
                    self._queue_expire(pipe, key, job_identifier)
                    await pipe.execute()
                    return
                except WatchError:
                    continue

    def _queue_expire(self, pipe: Pipeline, key: str, job_identifier: str) -> None:
        # Records live for ttl_seconds after their last write.
        if self.ttl_seconds:
            pipe.expire(key, self.ttl_seconds)
            pipe.expire(self._job_identifier_key(job_identifier), self.ttl_seconds)

    async def list_checks(
        self,
        status: FixityCheckStatus | None = None,
        limit: int | None = 100,
    ) -> list[FixityCheckRecord]:
        """List records, newest first, optionally filtered by status."""
        records: list[FixityCheckRecord] = []
        async for key in self.redis.scan_iter(match=f"{self.prefix}:*", count=200):
            if key.startswith(f"{self.prefix}:job_identifier:"):
                continue
            data = await self.redis.hgetall(key)  # type: ignore
            if not data:
                continue
            record = FixityCheckRecord.from_hash(data)
            if status is None or record.status == status:
                records.append(record)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records if limit is None else records[:limit]

    async def find_stalled(self, updated_before: datetime) -> list[FixityCheckRecord]:
        """In-progress records whose last heartbeat is older than *updated_before*."""
        in_progress = await self.list_checks(status=FixityCheckStatus.in_progress, limit=None)
        return [r for r in in_progress if r.updated_at < updated_before]
