"""
FrameSift — Detector Factory
framesift/hawk/factory.py

Creates the correct Detector based on detector config.
Swapping mock ↔ YOLO is config-only — no code changes.

    detector.mock = true   → MockDetector (DEV_MODE, no weights required)
    detector.mock = false  → YoloDetector (Ultralytics, requires detector.weights)
"""

from __future__ import annotations

from loguru import logger

from framesift.hawk.base import Detector
from framesift.hawk.mock_engine import MockDetector
from framesift.hawk.yolo_engine import YoloDetector
from framesift.shared.config import DetectorConfig


def create(cfg: DetectorConfig) -> Detector:
    """
    Instantiate and return the correct Detector for the given config.

    Does NOT call .load() — the detector stage loads it on its own thread.
    """
    if cfg.mock:
        logger.info("DetectorFactory: creating MockDetector for '{}' (mock=true)", cfg.name)
        return MockDetector(cfg)

    logger.info(
        "DetectorFactory: creating YoloDetector for '{}' — weights={} device={}",
        cfg.name, cfg.weights, cfg.device,
    )
    return YoloDetector(cfg)
