"""
FrameSift — Detector Stage
framesift/stages/detector.py

Pops frames from the frame queue until it reports CLOSED, runs the detector
on each one synchronously and pushes a FrameResult per frame into the result
queue. Detections are clamped to the frame before they leave this stage.

The detector is loaded on this stage's thread. A frame whose inference or
result fails is dropped and counted and the stage keeps going, unless the
detector raised a critical FrameSiftError. The result queue is closed
exactly once on every exit path, which is what lets the writer finish.
"""

from __future__ import annotations

import time
from typing import Optional

from loguru import logger

from framesift.hawk.base import Detection, Detector, FrameResult
from framesift.lens.base import Frame
from framesift.shared.blocking_queue import CLOSED, BlockingQueue
from framesift.shared.errors import DetectorLoadError, FrameSiftError
from framesift.shared.redis_client import StatsReporter
from framesift.stages.base import Stage


class DetectorStage(Stage):
    """Pipeline stage 2: inference. `processed` counts frames with results pushed."""

    def __init__(
        self,
        detector: Detector,
        in_queue: BlockingQueue[Frame],
        out_queue: BlockingQueue[FrameResult],
        stats: Optional[StatsReporter] = None,
    ):
        super().__init__(name="detector", stats=stats)
        self._detector = detector
        self._in = in_queue
        self._out = out_queue

    def run(self) -> None:
        try:
            if self._load():
                try:
                    self._detect_all()
                finally:
                    self._detector.unload()
        except FrameSiftError as exc:
            self.error = exc
            self._in.close()
            logger.error("Detector: {}", exc.message)
        except Exception as exc:
            self.error = FrameSiftError(f"unexpected detector stage failure: {exc!r}", critical=True)
            self._in.close()
            logger.exception("Detector: unexpected failure")
        finally:
            self._out.close()
            self._final()
            logger.info(
                "Detector stopped — {} frames processed, {} skipped",
                self.processed, self.skipped,
            )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _load(self) -> bool:
        try:
            self._detector.load()
        except Exception as exc:
            if isinstance(exc, DetectorLoadError):
                self.error = exc
            else:
                self.error = DetectorLoadError(f"{self._detector.name}: {exc}")
            logger.error("Detector: model failed to load — {}", self.error.message)
            # Nobody will consume frames — release the sampler
            self._in.close()
            return False

        logger.info("Detector running — {}", self._detector.name)
        return True

    def _detect_all(self) -> None:
        while True:
            frame = self._in.wait_and_pop()
            if frame is CLOSED:
                logger.debug("Detector: frame queue closed and drained")
                return

            t0 = time.monotonic()
            try:
                detections = self._detector.detect(frame)
                inference_ms = (time.monotonic() - t0) * 1000
                result = FrameResult(
                    frame=frame,
                    detections=_fit_to_frame(detections, frame.width, frame.height),
                    inference_ms=round(inference_ms, 2),
                )
            except Exception as exc:
                if isinstance(exc, FrameSiftError) and exc.critical:
                    raise
                self.skipped += 1
                logger.warning("Detector: frame {} skipped — {}", frame.frame_id, exc)
                continue

            if not self._out.push(result):
                logger.warning(
                    "Detector: result queue closed by consumer — stopping at frame {}",
                    frame.frame_id,
                )
                self._in.close()
                return

            self.processed += 1
            logger.debug(
                "Detector: frame {} — {} detections in {:.1f}ms",
                frame.frame_id, len(result.detections), inference_ms,
            )
            self._tick(queue_depth=len(self._in))


def _fit_to_frame(detections: list[Detection], width: int, height: int) -> list[Detection]:
    """Clamp every box to the frame, dropping boxes left with no area. Order is kept."""
    fitted = []
    for det in detections:
        det = det.clamped(width, height)
        if det.area > 0:
            fitted.append(det)
    return fitted
