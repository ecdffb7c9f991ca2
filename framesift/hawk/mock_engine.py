"""
FrameSift — Mock Detector
framesift/hawk/mock_engine.py

Produces synthetic detections without any real model.
Used in DEV_MODE so the full pipeline (sampler → detector → writer) can be
exercised without model weights.

Behaviour:
  - 2–5 boxes chosen once per seed at load()
  - Box positions are a pure function of (seed, frame_id): boxes drift
    across the frame as frame_id grows, and the same frame always yields
    the same detections in the same order
  - Simulates configurable inference latency (default: 5ms)
  - Labels come from a small subset of COCO classes
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass

from loguru import logger

from framesift.hawk.base import Detection, Detector, class_colour
from framesift.lens.base import Frame
from framesift.shared.config import DetectorConfig


_COCO_LABELS = [
    "person", "bicycle", "car", "motorcycle", "bus",
    "truck", "traffic light", "dog", "backpack", "umbrella",
]


@dataclass
class _DriftingBox:
    """A normalised box whose centre moves a fixed step per frame."""
    cx: float         # centre x at frame 0, 0–1
    cy: float         # centre y at frame 0, 0–1
    w:  float         # width, 0–1
    h:  float         # height, 0–1
    vx: float         # velocity x per frame
    vy: float         # velocity y per frame
    label: str
    class_id: int
    confidence: float

    def at(self, frame_id: int, frame_w: int, frame_h: int) -> Detection:
        cx = (self.cx + self.vx * frame_id) % 1.0
        cy = (self.cy + self.vy * frame_id) % 1.0
        x1 = max(0.0, cx - self.w / 2)
        y1 = max(0.0, cy - self.h / 2)
        x2 = min(1.0, cx + self.w / 2)
        y2 = min(1.0, cy + self.h / 2)
        px, py = int(x1 * frame_w), int(y1 * frame_h)
        return Detection(
            box=(px, py, int(x2 * frame_w) - px, int(y2 * frame_h) - py),
            label=self.label,
            confidence=round(self.confidence, 3),
            color=class_colour(self.class_id),
            class_id=self.class_id,
        )


def _random_box(rng: random.Random) -> _DriftingBox:
    w = rng.uniform(0.05, 0.18)
    h = rng.uniform(0.04, 0.12)
    idx = rng.randrange(len(_COCO_LABELS))
    speed = rng.uniform(0.001, 0.004)
    angle = rng.uniform(0, 2 * math.pi)
    return _DriftingBox(
        cx=rng.uniform(w / 2, 1 - w / 2),
        cy=rng.uniform(h / 2, 1 - h / 2),
        w=w,
        h=h,
        vx=speed * math.cos(angle),
        vy=speed * math.sin(angle),
        label=_COCO_LABELS[idx],
        class_id=idx,
        confidence=rng.uniform(0.55, 0.97),
    )


class MockDetector(Detector):
    """
    Mock detector for DEV_MODE.

    Returns deterministic drifting boxes so the annotated output can be
    checked without a model.
    """

    def __init__(self, cfg: DetectorConfig):
        super().__init__(name="mock")
        self._cfg       = cfg
        self._boxes:    list[_DriftingBox] = []
        self._latency_s = cfg.mock_latency_ms / 1000.0

    # ── Detector interface ────────────────────────────────────────────────────

    def load(self) -> None:
        rng = random.Random(self._cfg.seed)
        self._boxes = [_random_box(rng) for _ in range(rng.randint(2, 5))]
        self._loaded = True
        logger.info(
            "MockDetector loaded — {} drifting boxes, {:.0f}ms simulated latency",
            len(self._boxes), self._cfg.mock_latency_ms,
        )

    def detect(self, frame: Frame) -> list[Detection]:
        if self._latency_s > 0:
            time.sleep(self._latency_s)

        # Apply confidence threshold filter (mirrors real detector behaviour)
        return [
            b.at(frame.frame_id, frame.width, frame.height)
            for b in self._boxes
            if b.confidence >= self._cfg.confidence
        ]

    def unload(self) -> None:
        self._boxes = []
        self._loaded = False
        logger.info("MockDetector unloaded")
