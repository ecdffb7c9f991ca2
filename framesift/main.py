"""
FrameSift — Entry Point
framesift/main.py

Samples a video, runs object detection on the kept frames and writes an
annotated copy.

Run:
    python -m framesift.main [SOURCE]
    framesift [SOURCE]

SOURCE defaults to source.uri from configs/pipeline.yaml (1.mp4 in the
working directory). Sampling rate and output file come from config.

Environment:
    DEV_MODE=true       → SyntheticSource + MockDetector, no video or weights needed
    SOURCE_URI=...      → input video
    OUTPUT_URI=...      → output video (default output.avi)
    SAMPLE_RATE=...     → frames per second to keep (default 1)

Exit status is 0 on success and 1 on any failure.
"""

from __future__ import annotations

import signal
import sys
from typing import Optional, Sequence

from loguru import logger

from framesift.driver import build_pipeline
from framesift.shared.config import load_config
from framesift.shared.errors import FrameSiftError
from framesift.shared.log import setup_logging


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) > 1:
        print("usage: framesift [SOURCE]", file=sys.stderr)
        return 1

    try:
        cfg = load_config()
        if args:
            cfg.source.type = "file"
            cfg.source.uri = args[0]
        setup_logging(cfg.logging)
        logger.info(
            "FrameSift starting — source={} rate={}fps output={}",
            cfg.source.uri, cfg.sampler.rate, cfg.writer.uri,
        )

        pipeline = build_pipeline(cfg)

        def _stop(sig, _frame):
            logger.info("FrameSift received signal {} — finishing current frames", sig)
            pipeline.stop()

        previous = {sig: signal.signal(sig, _stop) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            report = pipeline.run()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
        report.raise_for_failures()
    except FrameSiftError as exc:
        logger.error("FrameSift failed — {}", exc.message)
        return 1

    logger.info("FrameSift done — {} annotated frames in {}", report.frames_written, cfg.writer.uri)
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
