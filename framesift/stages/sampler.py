"""
FrameSift — Sampler Stage
framesift/stages/sampler.py

Reads frames sequentially from a VideoSource and keeps one of every
`interval` frames, where interval = floor(source_fps / target_fps), never
less than 1. The first frame read is always kept. Kept frames are pushed as
independent copies into the frame queue.

The frame queue is closed exactly once when the stage ends — end of stream,
open failure, read failure, stop request or downstream abandon alike.
"""

from __future__ import annotations

import math
import threading
from typing import Optional

from loguru import logger

from framesift.lens.base import Frame, VideoSource
from framesift.shared.blocking_queue import BlockingQueue
from framesift.shared.errors import FrameSiftError, SourceOpenError, SourceReadError
from framesift.shared.redis_client import StatsReporter
from framesift.stages.base import Stage


def decimation_interval(source_fps: float, target_fps: float) -> int:
    """
    Integer stride between kept frames.

    A target rate at or above the source rate (or any degenerate input)
    gives 1, i.e. keep every frame.
    """
    if source_fps <= 0 or target_fps <= 0:
        return 1
    return max(1, math.floor(source_fps / target_fps))


class SamplerStage(Stage):
    """
    Pipeline stage 1: decode and decimate.

    `processed` counts frames kept, `frames_read` counts frames decoded.
    """

    def __init__(
        self,
        source: VideoSource,
        out_queue: BlockingQueue[Frame],
        target_fps: float,
        stop_event: Optional[threading.Event] = None,
        stats: Optional[StatsReporter] = None,
    ):
        super().__init__(name="sampler", stats=stats)
        self._source = source
        self._out = out_queue
        self._target_fps = target_fps
        self._stop_event = stop_event or threading.Event()
        self.frames_read = 0
        self.interval = 1

    def run(self) -> None:
        try:
            self._open()
            if self.error is None:
                self._sample()
        except FrameSiftError as exc:
            self.error = exc
            logger.error("Sampler: {}", exc.message)
        except Exception as exc:
            self.error = SourceReadError(f"unexpected sampler failure: {exc!r}")
            logger.exception("Sampler: unexpected failure")
        finally:
            self._out.close()
            self._source.close()
            self._final()
            logger.info(
                "Sampler stopped — {} frames read, {} kept (interval={})",
                self.frames_read, self.processed, self.interval,
            )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _open(self) -> None:
        try:
            self._source.open()
        except SourceOpenError as exc:
            self.error = exc
            logger.error("Sampler: cannot open source — {}", exc.message)
            return
        except Exception as exc:
            self.error = SourceOpenError(f"{self._source.name}: {exc}")
            logger.error("Sampler: cannot open source — {}", exc)
            return

        self.interval = decimation_interval(self._source.fps, self._target_fps)
        logger.info(
            "Sampler running — source {:.2f}fps, target {:.2f}fps, keeping 1 in {}",
            self._source.fps, self._target_fps, self.interval,
        )

    def _sample(self) -> None:
        while not self._stop_event.is_set():
            frame = self._source.read()
            if frame is None:
                logger.debug("Sampler: end of stream")
                return
            self.frames_read += 1

            # stride over frames read, whatever ids the source assigns
            if (self.frames_read - 1) % self.interval != 0:
                continue

            if not self._out.push(frame.copy()):
                logger.warning(
                    "Sampler: frame queue closed by consumer — stopping at frame {}",
                    frame.frame_id,
                )
                return

            self.processed += 1
            logger.debug("Sampler: frame {} queued ({} kept)", frame.frame_id, self.processed)
            self._tick()

        logger.info("Sampler: stop requested")
