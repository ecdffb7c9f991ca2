"""
FrameSift — Writer Stage
framesift/stages/writer.py

Pops FrameResults until the result queue reports CLOSED, annotates each
frame in place and appends it to the VideoSink.

The sink is opened when the stage starts; if that fails the stage closes
(abandons) the result queue so the upstream stages stop instead of waiting
on a consumer that will never come. A frame that fails to annotate or
write is skipped unless the sink raised a critical FrameSiftError. The sink
is finalised exactly once.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from framesift.hawk.base import FrameResult
from framesift.mark import annotator
from framesift.reel.base import VideoSink
from framesift.shared.blocking_queue import CLOSED, BlockingQueue
from framesift.shared.errors import FrameSiftError, SinkOpenError
from framesift.shared.redis_client import StatsReporter
from framesift.stages.base import Stage


class WriterStage(Stage):
    """Pipeline stage 3: annotate and write. `processed` counts frames written."""

    def __init__(
        self,
        sink: VideoSink,
        in_queue: BlockingQueue[FrameResult],
        stats: Optional[StatsReporter] = None,
    ):
        super().__init__(name="writer", stats=stats)
        self._sink = sink
        self._in = in_queue

    def run(self) -> None:
        try:
            if self._open():
                try:
                    self._write_all()
                finally:
                    self._sink.close()
        except FrameSiftError as exc:
            self.error = exc
            logger.error("Writer: {}", exc.message)
        except Exception as exc:
            self.error = FrameSiftError(f"unexpected writer stage failure: {exc!r}", critical=True)
            logger.exception("Writer: unexpected failure")
        finally:
            # No-op after a normal drain; releases upstream on any early exit
            self._in.close()
            self._final()
            logger.info(
                "Writer stopped — {} frames written, {} skipped",
                self.processed, self.skipped,
            )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _open(self) -> bool:
        try:
            self._sink.open()
        except Exception as exc:
            if isinstance(exc, SinkOpenError):
                self.error = exc
            else:
                self.error = SinkOpenError(f"{self._sink.name}: {exc}")
            logger.error("Writer: cannot open output — {}", self.error.message)
            return False

        logger.info("Writer running — sink {}", self._sink.name)
        return True

    def _write_all(self) -> None:
        while True:
            result = self._in.wait_and_pop()
            if result is CLOSED:
                logger.debug("Writer: result queue closed and drained")
                return

            frame = result.frame
            try:
                annotator.draw(frame, result.detections)
                self._sink.write(frame)
            except Exception as exc:
                if isinstance(exc, FrameSiftError) and exc.critical:
                    raise
                self.skipped += 1
                logger.warning("Writer: frame {} skipped — {}", frame.frame_id, exc)
                continue

            self.processed += 1
            logger.debug(
                "Writer: frame {} written — {} detections",
                frame.frame_id, len(result.detections),
            )
            self._tick(queue_depth=len(self._in))
