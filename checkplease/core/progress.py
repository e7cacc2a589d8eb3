"""
Progress throttling for liveness events
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Callable

from checkplease.core.config import settings

__all__ = (
    "ChunkCountThrottle",
    "ElapsedTimeThrottle",
    "ProgressThrottle",
    "build_throttle",
)


class ProgressThrottle(ABC):
    """Stateful emit/skip decision, reset on every emission. One per run."""

    @abstractmethod
    def should_emit(self, chunk_sequence_number: int, now: float | None = None) -> bool: ...


class ChunkCountThrottle(ProgressThrottle):
    """Emit once every ``every_n_chunks`` observed chunks."""

    def __init__(self, every_n_chunks: int):
        if every_n_chunks <= 0:
            raise ValueError("every_n_chunks must be positive")
        self.every_n_chunks = every_n_chunks
        self._since_last = 0

    def should_emit(self, chunk_sequence_number: int, now: float | None = None) -> bool:
        self._since_last += 1
        if self._since_last < self.every_n_chunks:
            return False
        self._since_last = 0
        return True


class ElapsedTimeThrottle(ProgressThrottle):
    """Emit when at least ``interval_seconds`` have passed since the last emission."""

    def __init__(self, interval_seconds: float, clock: Callable[[], float] = time.monotonic):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._last_emit = clock()

    def should_emit(self, chunk_sequence_number: int, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        if now - self._last_emit < self.interval_seconds:
            return False
        self._last_emit = now
        return True


def build_throttle() -> ProgressThrottle:
    """Fresh throttle for the configured policy."""
    if settings.PROGRESS_POLICY == "elapsed_time":
        return ElapsedTimeThrottle(settings.PROGRESS_INTERVAL_SECONDS)
    return ChunkCountThrottle(settings.PROGRESS_EVERY_N_CHUNKS)
