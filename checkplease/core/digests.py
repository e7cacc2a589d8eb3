"""
Streaming digest selection by checksum algorithm name.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Protocol

import google_crc32c

from checkplease.core.errors import UnsupportedAlgorithmError

__all__ = (
    "SUPPORTED_ALGORITHMS",
    "StreamingDigest",
    "digest_for",
)


class StreamingDigest(Protocol):
    def update(self, data: bytes, /) -> None: ...

    def hexdigest(self) -> str: ...


class Crc32cDigest:
    """CRC32C accumulator with a hashlib-style interface."""

    def __init__(self):
        self._checksum = google_crc32c.Checksum()

    def update(self, data: bytes, /) -> None:
        self._checksum.update(data)

    def hexdigest(self) -> str:
        # 4 bytes, big-endian
        return self._checksum.digest().hex()


_FACTORIES: dict[str, Callable[[], StreamingDigest]] = {
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
    "md5": hashlib.md5,
    "crc32c": Crc32cDigest,
}

SUPPORTED_ALGORITHMS: tuple[str, ...] = tuple(_FACTORIES)


def digest_for(algorithm_name: str) -> StreamingDigest:
    """
    Return a fresh accumulator for *algorithm_name*.

    Raises UnsupportedAlgorithmError for unknown names, before any bytes are read.
    """
    try:
        factory = _FACTORIES[algorithm_name]
    except KeyError:
        raise UnsupportedAlgorithmError(algorithm_name) from None
    return factory()
