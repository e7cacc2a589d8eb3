import pytest

from checkplease.core.progress import ChunkCountThrottle, ElapsedTimeThrottle, build_throttle


def test_chunk_count_emits_every_n_chunks():
    throttle = ChunkCountThrottle(every_n_chunks=100)

    emitted = [seq for seq in range(1, 1001) if throttle.should_emit(seq)]

    assert emitted == list(range(100, 1001, 100))


def test_chunk_count_of_one_emits_every_chunk():
    throttle = ChunkCountThrottle(every_n_chunks=1)
    assert all(throttle.should_emit(seq) for seq in range(1, 20))


def test_chunk_count_short_stream_emits_nothing():
    throttle = ChunkCountThrottle(every_n_chunks=100)
    assert not any(throttle.should_emit(seq) for seq in range(1, 100))


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_elapsed_time_emits_after_interval():
    clock = FakeClock()
    throttle = ElapsedTimeThrottle(interval_seconds=10.0, clock=clock)

    clock.now = 5.0
    assert not throttle.should_emit(1)
    clock.now = 10.0
    assert throttle.should_emit(2)
    # interval restarts at the last emission
    clock.now = 19.9
    assert not throttle.should_emit(3)
    clock.now = 20.0
    assert throttle.should_emit(4)


def test_elapsed_time_accepts_explicit_now():
    throttle = ElapsedTimeThrottle(interval_seconds=1.0, clock=FakeClock(100.0))
    assert not throttle.should_emit(1, now=100.5)
    assert throttle.should_emit(2, now=101.0)


@pytest.mark.parametrize("n", [0, -1])
def test_chunk_count_rejects_non_positive(n):
    with pytest.raises(ValueError):
        ChunkCountThrottle(every_n_chunks=n)


@pytest.mark.parametrize("interval", [0, -2.5])
def test_elapsed_time_rejects_non_positive(interval):
    with pytest.raises(ValueError):
        ElapsedTimeThrottle(interval_seconds=interval)


def test_build_throttle_follows_settings(monkeypatch):
    from checkplease.core import progress

    assert isinstance(build_throttle(), ChunkCountThrottle)
    assert build_throttle() is not build_throttle()

    monkeypatch.setattr(progress.settings, "PROGRESS_POLICY", "elapsed_time")
    monkeypatch.setattr(progress.settings, "PROGRESS_INTERVAL_SECONDS", 2.0)
    throttle = build_throttle()
    assert isinstance(throttle, ElapsedTimeThrottle)
    assert throttle.interval_seconds == 2.0
