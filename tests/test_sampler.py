from __future__ import annotations

import math
import threading

import pytest

from framesift.lens.synthetic_source import SyntheticSource
from framesift.shared.blocking_queue import CLOSED, BlockingQueue
from framesift.shared.config import SourceConfig
from framesift.shared.errors import SourceOpenError
from framesift.stages.sampler import SamplerStage, decimation_interval
from tests.fakes import BrokenSource, run_with_timeout, synthetic_source


def _drain(q: BlockingQueue) -> list:
    items = []
    while (item := q.wait_and_pop()) is not CLOSED:
        items.append(item)
    return items


@pytest.mark.parametrize(
    "source_fps, target_fps, expected",
    [
        (10.0, 2.0, 5),
        (30.0, 1.0, 30),
        (29.97, 1.0, 29),
        (25.0, 2.0, 12),
        (10.0, 10.0, 1),
        (10.0, 60.0, 1),     # target above source rate keeps every frame
        (0.0, 1.0, 1),
        (30.0, 0.0, 1),
    ],
)
def test_decimation_interval(source_fps, target_fps, expected):
    assert decimation_interval(source_fps, target_fps) == expected


def test_keeps_frames_zero_and_five_of_ten():
    q = BlockingQueue()
    stage = SamplerStage(synthetic_source(frames=10, fps=10.0), q, target_fps=2.0)

    stage.run()

    frames = _drain(q)
    assert [f.frame_id for f in frames] == [0, 5]
    assert stage.processed == 2
    assert stage.frames_read == 10
    assert stage.interval == 5
    assert stage.error is None
    assert q.closed


@pytest.mark.parametrize(
    "n, rate, target",
    [(10, 10.0, 2.0), (11, 10.0, 2.0), (7, 30.0, 10.0), (1, 30.0, 1.0), (13, 5.0, 5.0), (20, 24.0, 7.0)],
)
def test_emits_ceil_n_over_interval_frames_in_order(n, rate, target):
    q = BlockingQueue()
    SamplerStage(synthetic_source(frames=n, fps=rate), q, target_fps=target).run()

    ids = [f.frame_id for f in _drain(q)]
    interval = max(1, math.floor(rate / target))
    assert len(ids) == math.ceil(n / interval)
    assert ids[0] == 0
    assert ids == sorted(ids)
    assert all(i % interval == 0 for i in ids)


def test_empty_source_just_closes_queue():
    q = BlockingQueue()
    stage = SamplerStage(synthetic_source(frames=0), q, target_fps=1.0)

    stage.run()

    assert q.wait_and_pop() is CLOSED
    assert stage.error is None
    assert stage.processed == 0


def test_pushed_frames_do_not_share_buffers_with_source():
    src = synthetic_source(frames=3, fps=1.0)
    originals = []
    read = src.read

    def spy():
        frame = read()
        if frame is not None:
            originals.append(frame)
        return frame

    src.read = spy
    q = BlockingQueue()
    SamplerStage(src, q, target_fps=1.0).run()

    queued = _drain(q)
    assert len(queued) == len(originals) == 3
    for mine, theirs in zip(queued, originals):
        assert mine.data is not theirs.data
        assert (mine.data == theirs.data).all()


def test_open_failure_is_reported_and_queue_closed():
    q = BlockingQueue()
    src = BrokenSource()
    stage = SamplerStage(src, q, target_fps=1.0)

    stage.run()

    assert isinstance(stage.error, SourceOpenError)
    assert stage.failed
    assert q.closed
    assert q.wait_and_pop() is CLOSED
    assert src.close_calls == 1


def test_open_failure_releases_a_waiting_consumer():
    q = BlockingQueue()
    got: list[object] = []
    consumer = threading.Thread(target=lambda: got.append(q.wait_and_pop()), daemon=True)
    consumer.start()

    SamplerStage(BrokenSource(), q, target_fps=1.0).run()

    consumer.join(2.0)
    assert not consumer.is_alive()
    assert got == [CLOSED]


def test_stop_event_ends_sampling_early():
    q = BlockingQueue()
    stop = threading.Event()
    stop.set()
    stage = SamplerStage(synthetic_source(frames=100), q, target_fps=10.0, stop_event=stop)

    stage.run()

    assert stage.frames_read == 0
    assert stage.error is None
    assert q.wait_and_pop() is CLOSED


def test_stops_when_consumer_abandons_bounded_queue():
    q = BlockingQueue(maxsize=1)
    stage = SamplerStage(synthetic_source(frames=1000, fps=10.0), q, target_fps=10.0)

    t = threading.Thread(target=stage.run, daemon=True)
    t.start()
    assert q.wait_and_pop().frame_id == 0
    q.close()
    t.join(5.0)

    assert not t.is_alive()
    assert stage.error is None
    assert stage.frames_read < 1000


def test_sampler_thread_terminates():
    q = BlockingQueue()
    stage = SamplerStage(synthetic_source(frames=50, fps=25.0), q, target_fps=5.0)

    t = run_with_timeout(stage.run)

    assert not t.is_alive()
    assert len(_drain(q)) == 10


class _OffsetSource(SyntheticSource):
    """Numbers its frames from 100 instead of 0."""

    def _next_id(self) -> int:
        return super()._next_id() + 100


def test_stride_follows_read_order_not_source_ids():
    src = _OffsetSource(SourceConfig(type="synthetic", frames=12, fps=10.0, width=64, height=48))
    q = BlockingQueue()

    SamplerStage(src, q, target_fps=2.0).run()

    assert [f.frame_id for f in _drain(q)] == [100, 105, 110]
