"""
Chunked streaming reads from S3.
"""

from __future__ import annotations

import asyncio
from functools import cache
from typing import Any, Awaitable, Callable

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from checkplease.core.config import settings
from checkplease.core.errors import ObjectNotFoundError, ObjectStoreError
from checkplease.core.log import logger

__all__ = (
    "ChunkCallback",
    "S3ObjectReader",
    "get_s3_client",
)

ChunkCallback = Callable[[bytes], Awaitable[None]]

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "404", "NotFound"})


@cache
def get_s3_client() -> BaseClient:
    """Build the process-wide S3 client from settings."""
    return boto3.client(
        "s3",
        region_name=settings.AWS_REGION,
        endpoint_url=settings.AWS_ENDPOINT_URL,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
    )


class S3ObjectReader:
    """
    Streams an S3 object chunk by chunk.

    boto3 is blocking, so each network call runs in a worker thread. The chunk
    callback is awaited on the caller's event loop, and the next chunk is not
    requested until it returns.
    """

    def __init__(self, client: BaseClient, chunk_size: int | None = None):
        chunk_size = chunk_size or settings.S3_READ_CHUNK_SIZE
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.client = client
        self.chunk_size = chunk_size

    async def stream(self, bucket_name: str, object_path: str, on_chunk: ChunkCallback) -> int:
        """
        Feed every chunk of ``s3://bucket_name/object_path`` to *on_chunk*.

        Returns the object size reported by S3 (ContentLength).
        """
        response = await self._call(
            bucket_name,
            object_path,
            self.client.get_object,  # type: ignore[attr-defined]
            Bucket=bucket_name,
            Key=object_path,
        )
        reported_size = int(response["ContentLength"])
        body = response["Body"]
        logger.debug(f"Streaming s3://{bucket_name}/{object_path} ({reported_size} bytes reported)")

        try:
            while True:
                chunk = await self._call(bucket_name, object_path, body.read, self.chunk_size)
                if not chunk:
                    break
                await on_chunk(chunk)
        finally:
            body.close()

        return reported_size

    @staticmethod
    async def _call(bucket_name: str, object_path: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(bucket_name, object_path) from exc
            raise ObjectStoreError(
                f"S3 request failed for bucket={bucket_name}, path={object_path}: {exc}"
            ) from exc
        except BotoCoreError as exc:
            raise ObjectStoreError(
                f"S3 transport error for bucket={bucket_name}, path={object_path}: {exc}"
            ) from exc
