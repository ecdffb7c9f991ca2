"""
FrameSift — Pipeline Driver
framesift/driver.py

Wires the three stages with two queues and runs one thread per stage:

    sampler → [frame_queue] → detector → [result_queue] → writer

run() returns only after all three threads have finished. Termination is
guaranteed by the close() cascade: every stage closes its output queue on
every exit path and closes its input queue when it stops early.

Usage:
    pipeline = build_pipeline(load_config())
    report = pipeline.run()
    report.raise_for_failures()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

import redis
from loguru import logger

from framesift.hawk import factory as hawk_factory
from framesift.hawk.base import Detector, FrameResult
from framesift.lens import factory as lens_factory
from framesift.lens.base import Frame, VideoSource
from framesift.reel.base import VideoSink
from framesift.reel.file_sink import FileSink
from framesift.shared.blocking_queue import BlockingQueue
from framesift.shared.config import PipelineConfig, SourceConfig
from framesift.shared.errors import FrameSiftError, PipelineError, SourceOpenError
from framesift.shared.redis_client import StatsReporter, wait_for_redis
from framesift.stages.base import Stage
from framesift.stages.detector import DetectorStage
from framesift.stages.sampler import SamplerStage
from framesift.stages.writer import WriterStage


@dataclass
class PipelineReport:
    """Outcome of one run, assembled after every stage thread has joined."""
    frames_read:     int = 0
    frames_sampled:  int = 0
    frames_detected: int = 0
    frames_written:  int = 0
    detect_skipped:  int = 0
    write_skipped:   int = 0
    interval:        int = 1
    failures:        list[FrameSiftError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise PipelineError if any stage reported a fatal failure."""
        if self.failures:
            raise PipelineError(self)


class Pipeline:
    """
    One run of the sample → detect → write pipeline.

    The collaborators are passed in already constructed (not opened):
    the sampler opens the source, the detector stage loads the model and the
    writer stage opens the sink, each on its own thread.
    """

    def __init__(
        self,
        source: VideoSource,
        detector: Detector,
        sink: VideoSink,
        target_fps: float,
        frame_queue_size: int = 0,
        result_queue_size: int = 0,
        stats: Optional[StatsReporter] = None,
    ):
        self._stop_event = threading.Event()
        self.frame_queue: BlockingQueue[Frame] = BlockingQueue(frame_queue_size, name="frames")
        self.result_queue: BlockingQueue[FrameResult] = BlockingQueue(result_queue_size, name="results")
        self._sink = sink

        self.sampler = SamplerStage(
            source, self.frame_queue, target_fps, stop_event=self._stop_event, stats=stats,
        )
        self.detector = DetectorStage(detector, self.frame_queue, self.result_queue, stats=stats)
        self.writer = WriterStage(sink, self.result_queue, stats=stats)
        self._ran = False

    @property
    def stages(self) -> tuple[Stage, ...]:
        return (self.sampler, self.detector, self.writer)

    def stop(self) -> None:
        """Ask the sampler to stop early; the rest of the pipeline drains and ends."""
        if not self._stop_event.is_set():
            logger.info("Pipeline: stop requested")
            self._stop_event.set()

    def run(self) -> PipelineReport:
        """Start one thread per stage and block until all of them have finished."""
        if self._ran:
            raise RuntimeError("Pipeline.run() may only be called once")
        self._ran = True

        threads = [
            threading.Thread(target=stage.run, name=stage.name, daemon=True)
            for stage in self.stages
        ]
        for t in threads:
            t.start()
        logger.info("Pipeline running — {} stage threads active", len(threads))

        for t in threads:
            t.join()

        report = self._report()
        if report.failures and report.frames_written == 0:
            self._sink.discard()

        if report.ok:
            logger.info(
                "Pipeline finished — {} read, {} sampled, {} written ({} skipped)",
                report.frames_read, report.frames_sampled, report.frames_written,
                report.detect_skipped + report.write_skipped,
            )
        else:
            for failure in report.failures:
                logger.error("Pipeline failure: {} — {}", type(failure).__name__, failure.message)
        return report

    def _report(self) -> PipelineReport:
        return PipelineReport(
            frames_read=self.sampler.frames_read,
            frames_sampled=self.sampler.processed,
            frames_detected=self.detector.processed,
            frames_written=self.writer.processed,
            detect_skipped=self.detector.skipped,
            write_skipped=self.writer.skipped,
            interval=self.sampler.interval,
            # earliest failure first
            failures=sorted(
                (s.error for s in self.stages if s.error is not None),
                key=lambda e: e.timestamp,
            ),
        )


# ── Composition from config ───────────────────────────────────────────────────

@dataclass
class SourceInfo:
    fps:    float
    width:  int
    height: int
    frames: int


def read_source_info(cfg: SourceConfig) -> SourceInfo:
    """
    Open the configured source once to read its metadata.

    Raises SourceOpenError before any output exists, so a bad input never
    leaves an empty artifact behind.
    """
    with lens_factory.create(cfg) as src:
        info = SourceInfo(fps=src.fps, width=src.width, height=src.height, frames=src.frame_count)
    if info.width <= 0 or info.height <= 0:
        raise SourceOpenError(f"{cfg.uri}: source reports no frame size")
    logger.debug("Read source info {} — {}", cfg.uri, info)
    return info


def build_pipeline(cfg: PipelineConfig) -> Pipeline:
    """Create source, detector, sink and stats reporter from config."""
    info = read_source_info(cfg.source)

    fps = cfg.writer.fps or info.fps
    sink = FileSink(cfg.writer.uri, cfg.writer.codec, fps, (info.width, info.height))

    return Pipeline(
        source=lens_factory.create(cfg.source),
        detector=hawk_factory.create(cfg.detector),
        sink=sink,
        target_fps=cfg.sampler.rate,
        frame_queue_size=cfg.queues.frame_maxsize,
        result_queue_size=cfg.queues.result_maxsize,
        stats=_build_stats(cfg),
    )


def _build_stats(cfg: PipelineConfig) -> Optional[StatsReporter]:
    if not cfg.stats.enabled:
        return None
    try:
        client = wait_for_redis(host=cfg.stats.host, port=cfg.stats.port, db=cfg.stats.db)
    except redis.RedisError as exc:
        logger.warning("Stats disabled — {}", exc)
        return None
    return StatsReporter(client, interval=cfg.stats.interval)
