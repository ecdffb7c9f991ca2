"""
FrameSift — Logging Setup
framesift/shared/log.py

Every module logs through loguru's shared `logger`. setup_logging() is
called once by the entry point to replace loguru's default stderr sink
with one at the configured level, plus an optional rotating file sink.
"""

from __future__ import annotations

import sys

from loguru import logger

from framesift.shared.config import LoggingConfig

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{thread.name}</cyan> | "
    "{message}"
)


def setup_logging(cfg: LoggingConfig) -> None:
    """Install console (and optional file) sinks. Safe to call repeatedly."""
    logger.remove()
    logger.add(sys.stderr, level=cfg.level, format=_FORMAT, backtrace=False)

    if cfg.file:
        # enqueue=True — stage threads write through loguru's background queue
        logger.add(
            cfg.file,
            level=cfg.level,
            format=_FORMAT,
            rotation=cfg.rotation,
            retention=cfg.retention,
            enqueue=True,
        )
        logger.debug("File logging enabled → {}", cfg.file)
