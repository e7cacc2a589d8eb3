"""
Fixity check engine: incremental digest over a chunked object stream.
"""

from __future__ import annotations

from typing import Awaitable, Protocol

from checkplease.core.digests import digest_for
from checkplease.core.errors import ReportedSizeMismatchError
from checkplease.core.log import logger
from checkplease.core.storage import ChunkCallback
from checkplease.schema.fixity_check import ChecksumResult

__all__ = (
    "ChunkObserver",
    "ChunkedObjectReader",
    "FixityCheckEngine",
)


class ChunkedObjectReader(Protocol):
    async def stream(self, bucket_name: str, object_path: str, on_chunk: ChunkCallback) -> int: ...


class ChunkObserver(Protocol):
    def __call__(self, chunk: bytes, bytes_read: int, chunk_sequence_number: int) -> Awaitable[None]: ...


class FixityCheckEngine:
    def __init__(self, reader: ChunkedObjectReader):
        self.reader = reader

    async def check(
        self,
        bucket_name: str,
        object_path: str,
        algorithm_name: str,
        on_chunk: ChunkObserver | None = None,
    ) -> ChecksumResult:
        """
        Stream the object and return its digest and size.

        *on_chunk* is awaited once per chunk, in arrival order, with the chunk,
        the running byte count and the 1-based chunk number. It gates reading
        of the next chunk.

        Raises UnsupportedAlgorithmError before any I/O, ObjectNotFoundError or
        ObjectStoreError from the reader, and ReportedSizeMismatchError when the
        bytes received differ from the size the store reported.
        """
        digest = digest_for(algorithm_name)
        bytes_read = 0
        chunk_sequence_number = 0

        async def _consume(chunk: bytes) -> None:
            nonlocal bytes_read, chunk_sequence_number
            digest.update(chunk)
            bytes_read += len(chunk)
            chunk_sequence_number += 1
            if on_chunk is not None:
                await on_chunk(chunk, bytes_read, chunk_sequence_number)

        reported_size = await self.reader.stream(bucket_name, object_path, _consume)

        # Catches truncated transfers the transport did not flag.
        if bytes_read != reported_size:
            raise ReportedSizeMismatchError(expected=reported_size, actual=bytes_read)

        hexdigest = digest.hexdigest()
        logger.debug(
            f"{algorithm_name} of {bucket_name}/{object_path}: {hexdigest} "
            f"({bytes_read} bytes, {chunk_sequence_number} chunks)"
        )
        return ChecksumResult(hexdigest=hexdigest, size_bytes=bytes_read)
