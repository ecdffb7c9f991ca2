from __future__ import annotations

import threading

from framesift.hawk.base import Detection, FrameResult
from framesift.shared.blocking_queue import CLOSED, BlockingQueue
from framesift.shared.errors import DetectionError, DetectorLoadError
from framesift.stages.detector import DetectorStage
from tests.fakes import OBJ, StubDetector, synthetic_source


def _frames(n: int, width: int = 320, height: int = 240):
    src = synthetic_source(frames=n, width=width, height=height)
    src.open()
    frames = [src.read() for _ in range(n)]
    src.close()
    return frames


def _queue_of(items) -> BlockingQueue:
    q = BlockingQueue()
    for item in items:
        q.push(item)
    q.close()
    return q


def _drain(q: BlockingQueue) -> list:
    out = []
    while (item := q.wait_and_pop()) is not CLOSED:
        out.append(item)
    return out


def test_pairs_each_frame_with_its_detections():
    frames = _frames(3)
    results_q = BlockingQueue()
    detector = StubDetector()
    stage = DetectorStage(detector, _queue_of(frames), results_q)

    stage.run()

    results = _drain(results_q)
    assert [r.frame.frame_id for r in results] == [0, 1, 2]
    for result, frame in zip(results, frames):
        assert isinstance(result, FrameResult)
        assert result.frame is frame
        assert result.detections == [OBJ]
        assert result.inference_ms >= 0
    assert stage.processed == 3
    assert stage.error is None
    assert detector.unloaded


def test_detections_are_clamped_to_the_frame():
    overhang = Detection(box=(-20, 200, 100, 100), label="edge", confidence=0.7)
    outside = Detection(box=(400, 10, 30, 30), label="gone", confidence=0.6)
    frames = _frames(1, width=320, height=240)
    results_q = BlockingQueue()

    DetectorStage(StubDetector([OBJ, overhang, outside]), _queue_of(frames), results_q).run()

    (result,) = _drain(results_q)
    assert [d.label for d in result.detections] == ["obj", "edge"]
    for det in result.detections:
        x, y, w, h = det.box
        assert 0 <= x and 0 <= y
        assert x + w <= result.frame.width
        assert y + h <= result.frame.height
    assert result.detections[1].box == (0, 200, 80, 40)


def test_failed_frame_is_skipped_and_stage_continues():
    frames = _frames(4)
    results_q = BlockingQueue()
    stage = DetectorStage(StubDetector(fail_on={1}), _queue_of(frames), results_q)

    stage.run()

    assert [r.frame.frame_id for r in _drain(results_q)] == [0, 2, 3]
    assert stage.skipped == 1
    assert stage.processed == 3
    assert stage.error is None


def test_load_failure_closes_both_queues():
    frames_q = BlockingQueue()
    frames_q.push(_frames(1)[0])
    results_q = BlockingQueue()
    stage = DetectorStage(
        StubDetector(load_error=RuntimeError("weights corrupt")), frames_q, results_q,
    )

    stage.run()

    assert isinstance(stage.error, DetectorLoadError)
    assert "weights corrupt" in stage.error.message
    assert frames_q.closed
    assert results_q.wait_and_pop() is CLOSED


def test_result_queue_closed_once_input_is_closed():
    frames_q = BlockingQueue()
    results_q = BlockingQueue()
    stage = DetectorStage(StubDetector(), frames_q, results_q)

    t = threading.Thread(target=stage.run, daemon=True)
    t.start()
    frames_q.push(_frames(1)[0])
    frames_q.close()
    t.join(5.0)

    assert not t.is_alive()
    assert len(_drain(results_q)) == 1


def test_abandoned_result_queue_stops_stage_and_releases_input():
    frames_q = BlockingQueue()
    for frame in _frames(3):
        frames_q.push(frame)
    results_q = BlockingQueue()
    results_q.close()
    stage = DetectorStage(StubDetector(), frames_q, results_q)

    stage.run()

    assert stage.processed == 0
    assert stage.error is None
    assert frames_q.closed


class _PerFrameDetector(StubDetector):
    """Returns detections chosen by frame id."""

    def __init__(self, by_frame: dict[int, list[Detection]]):
        super().__init__()
        self._by_frame = by_frame

    def detect(self, frame):
        self.seen.append(frame.frame_id)
        return list(self._by_frame.get(frame.frame_id, [OBJ]))


def test_malformed_detection_skips_only_that_frame():
    bad = Detection(box=(1, 2, 3), label="bad", confidence=0.5)
    results_q = BlockingQueue()
    stage = DetectorStage(_PerFrameDetector({0: [bad]}), _queue_of(_frames(3)), results_q)

    stage.run()

    assert [r.frame.frame_id for r in _drain(results_q)] == [1, 2]
    assert stage.skipped == 1
    assert stage.processed == 2
    assert stage.error is None


def test_critical_detection_error_ends_the_stage():
    class DeviceLost(StubDetector):
        def detect(self, frame):
            if frame.frame_id == 1:
                raise DetectionError("device lost", critical=True)
            return super().detect(frame)

    frames_q = BlockingQueue()
    for frame in _frames(4):
        frames_q.push(frame)
    results_q = BlockingQueue()
    detector = DeviceLost()
    stage = DetectorStage(detector, frames_q, results_q)

    stage.run()

    assert isinstance(stage.error, DetectionError)
    assert stage.error.critical
    assert [r.frame.frame_id for r in _drain(results_q)] == [0]
    assert stage.skipped == 0
    assert frames_q.closed
    assert detector.unloaded
