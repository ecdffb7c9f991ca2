from __future__ import annotations

import threading
import time

import pytest

from framesift.driver import Pipeline, PipelineReport
from framesift.hawk.base import Detection
from framesift.shared.errors import (
    DetectorLoadError,
    PipelineError,
    SinkOpenError,
    SourceOpenError,
)
from tests.fakes import (
    BrokenSource,
    RecordingSink,
    StubDetector,
    run_with_timeout,
    synthetic_source,
)


def _run(pipeline: Pipeline, timeout: float = 10.0) -> PipelineReport:
    out: list[PipelineReport] = []
    t = run_with_timeout(lambda: out.append(pipeline.run()), timeout=timeout)
    assert not t.is_alive(), "pipeline did not terminate"
    return out[0]


def test_ten_frames_at_two_fps_writes_frames_zero_and_five():
    sink = RecordingSink()
    pipeline = Pipeline(synthetic_source(frames=10, fps=10.0), StubDetector(), sink, target_fps=2.0)

    report = _run(pipeline)

    assert report.ok
    assert [f.frame_id for f in sink.frames] == [0, 5]
    for frame in sink.frames:
        assert frame.meta["detection_count"] == 1
        assert frame.meta["labels"] == ["obj 0.90"]
    assert report.frames_read == 10
    assert report.frames_sampled == 2
    assert report.frames_detected == 2
    assert report.frames_written == 2
    assert report.interval == 5
    assert sink.close_calls == 1
    assert not sink.discarded
    report.raise_for_failures()


def test_failed_detection_skips_frame_and_run_still_succeeds():
    sink = RecordingSink()
    detector = StubDetector(fail_on={5})
    pipeline = Pipeline(synthetic_source(frames=10, fps=10.0), detector, sink, target_fps=2.0)

    report = _run(pipeline)

    assert report.ok
    assert detector.seen == [0, 5]
    assert [f.frame_id for f in sink.frames] == [0]
    assert report.detect_skipped == 1
    assert report.frames_written == 1


def test_failed_write_is_counted_not_fatal():
    sink = RecordingSink(fail_on={0})
    pipeline = Pipeline(synthetic_source(frames=10, fps=10.0), StubDetector(), sink, target_fps=2.0)

    report = _run(pipeline)

    assert report.ok
    assert report.write_skipped == 1
    assert [f.frame_id for f in sink.frames] == [5]


def test_unopenable_source_terminates_and_discards_output():
    sink = RecordingSink()
    detector = StubDetector()
    pipeline = Pipeline(BrokenSource(), detector, sink, target_fps=1.0)

    report = _run(pipeline)

    assert not report.ok
    assert [type(f) for f in report.failures] == [SourceOpenError]
    assert report.frames_written == 0
    assert sink.discarded
    assert detector.seen == []

    with pytest.raises(PipelineError) as info:
        report.raise_for_failures()
    assert info.value.report is report
    assert "broken source" in str(info.value)


def test_unopenable_sink_stops_the_whole_pipeline():
    sink = RecordingSink(fail_open=True)
    pipeline = Pipeline(
        synthetic_source(frames=500, fps=30.0), StubDetector(), sink, target_fps=30.0,
    )

    report = _run(pipeline)

    assert [type(f) for f in report.failures] == [SinkOpenError]
    assert report.frames_written == 0
    assert sink.discarded


def test_detector_load_failure_stops_the_whole_pipeline():
    sink = RecordingSink()
    detector = StubDetector(load_error=RuntimeError("no weights"))
    pipeline = Pipeline(synthetic_source(frames=500, fps=30.0), detector, sink, target_fps=30.0)

    report = _run(pipeline)

    assert [type(f) for f in report.failures] == [DetectorLoadError]
    assert report.frames_written == 0
    assert sink.close_calls == 1


@pytest.mark.parametrize(
    "sink, detector",
    [
        (RecordingSink(fail_open=True), StubDetector()),
        (RecordingSink(), StubDetector(load_error=RuntimeError("no weights"))),
    ],
    ids=["sink-fails", "detector-fails"],
)
def test_bounded_queues_do_not_deadlock_on_failure(sink, detector):
    pipeline = Pipeline(
        synthetic_source(frames=1000, fps=30.0), detector, sink, target_fps=30.0,
        frame_queue_size=1, result_queue_size=1,
    )

    report = _run(pipeline)

    assert not report.ok
    assert report.frames_read < 1000


def test_bounded_queues_deliver_every_sampled_frame():
    sink = RecordingSink()
    pipeline = Pipeline(
        synthetic_source(frames=60, fps=30.0), StubDetector(), sink, target_fps=10.0,
        frame_queue_size=1, result_queue_size=1,
    )

    report = _run(pipeline)

    assert report.ok
    assert [f.frame_id for f in sink.frames] == list(range(0, 60, 3))


def test_stop_ends_a_running_pipeline():
    sink = RecordingSink()
    stopped = threading.Event()

    class SlowDetector(StubDetector):
        def detect(self, frame):
            if frame.frame_id >= 3:
                stopped.wait(2.0)
            return super().detect(frame)

    pipeline = Pipeline(
        synthetic_source(frames=100_000, fps=30.0), SlowDetector(), sink, target_fps=30.0,
        frame_queue_size=2,
    )
    out: list[PipelineReport] = []
    t = threading.Thread(target=lambda: out.append(pipeline.run()), daemon=True)
    t.start()

    pipeline.stop()
    stopped.set()
    t.join(10.0)

    assert not t.is_alive()
    (report,) = out
    assert report.ok
    assert report.frames_read < 100_000
    assert report.frames_written == report.frames_sampled


def test_run_only_once():
    pipeline = Pipeline(synthetic_source(frames=2), StubDetector(), RecordingSink(), target_fps=10.0)
    _run(pipeline)

    with pytest.raises(RuntimeError):
        pipeline.run()


def test_stages_exposed_in_pipeline_order():
    pipeline = Pipeline(synthetic_source(), StubDetector(), RecordingSink(), target_fps=1.0)
    assert [s.name for s in pipeline.stages] == ["sampler", "detector", "writer"]
    assert pipeline.frame_queue.name == "frames"
    assert pipeline.result_queue.name == "results"


def test_malformed_detection_costs_one_frame_not_the_run():
    class OneBadFrame(StubDetector):
        def detect(self, frame):
            if frame.frame_id == 0:
                return [Detection(box=(1, 2, 3), label="bad", confidence=0.5)]
            return super().detect(frame)

    sink = RecordingSink()
    pipeline = Pipeline(synthetic_source(frames=10, fps=10.0), OneBadFrame(), sink, target_fps=2.0)

    report = _run(pipeline)

    assert report.ok
    assert [f.frame_id for f in sink.frames] == [5]
    assert report.detect_skipped == 1


def test_failures_are_reported_earliest_first():
    early = DetectorLoadError("model missing")
    time.sleep(0.01)
    pipeline = Pipeline(
        BrokenSource(), StubDetector(load_error=early), RecordingSink(), target_fps=1.0,
    )

    report = _run(pipeline)

    assert report.failures[0] is early
    assert [type(f) for f in report.failures] == [DetectorLoadError, SourceOpenError]
