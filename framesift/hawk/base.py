"""
FrameSift — Detector Base Class
framesift/hawk/base.py

All detectors implement this interface.
The pipeline only talks to Detector — never to concrete implementations directly.

Detection carries one detected object, in pixel coordinates of its frame.
FrameResult pairs one Frame with all of its detections; it is the unit the
detector stage hands to the writer stage and is never split or merged.
"""

from __future__ import annotations

import colorsys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

from framesift.lens.base import Frame


# ── Colour palette ────────────────────────────────────────────────────────────
# One saturated colour per class_id, consistent across frames
_MAX_CLASSES = 80


def _build_palette(n: int) -> list[tuple[int, int, int]]:
    """Generate n evenly-spaced saturated colours in BGR."""
    colours = []
    for i in range(n):
        hue = i / n
        r, g, b = colorsys.hsv_to_rgb(hue, 0.85, 0.95)
        colours.append((int(b * 255), int(g * 255), int(r * 255)))  # BGR
    return colours


_PALETTE = _build_palette(_MAX_CLASSES)


def class_colour(class_id: int) -> tuple[int, int, int]:
    return _PALETTE[class_id % _MAX_CLASSES]


# ── Results ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Detection:
    """
    Single detected object.

    box         — (x, y, width, height) in pixels, top-left origin
    label       — class name string (e.g. "person", "car")
    confidence  — detection confidence 0–1
    color       — BGR display colour used by the annotator
    class_id    — integer class index
    """
    box:        tuple[int, int, int, int]
    label:      str
    confidence: float
    color:      tuple[int, int, int] = (0, 255, 0)
    class_id:   int = 0

    @property
    def area(self) -> int:
        return self.box[2] * self.box[3]

    def clamped(self, width: int, height: int) -> "Detection":
        """Return a copy whose box lies inside a width×height frame."""
        x, y, w, h = self.box
        x1 = min(max(x, 0), width)
        y1 = min(max(y, 0), height)
        x2 = min(max(x + w, 0), width)
        y2 = min(max(y + h, 0), height)
        clipped = (x1, y1, x2 - x1, y2 - y1)
        if clipped == self.box:
            return self
        return replace(self, box=clipped)


@dataclass
class FrameResult:
    """
    Full detector output for one frame.

    frame        — the frame that was analysed (annotated later in place)
    detections   — ordered detections for that frame, clamped to its bounds
    inference_ms — wall-clock detector time in milliseconds
    """
    frame:        Frame
    detections:   list[Detection] = field(default_factory=list)
    inference_ms: float = 0.0


# ── Detector interface ────────────────────────────────────────────────────────

class Detector(ABC):
    """
    Abstract base class for all FrameSift detectors.

    Subclasses implement:
        load()     — load model weights, warm up if needed
        detect()   — run inference on one Frame, return its detections
        unload()   — release all GPU/CPU resources

    detect() may raise DetectionError for a frame it cannot process; the
    detector stage skips that frame and carries on.

    The detector stage calls load() and unload() on its own thread, since
    model contexts can be thread-local. Standalone use:

        with detector:
            detections = detector.detect(frame)
    """

    def __init__(self, name: str):
        self._name = name
        self._loaded = False

    # ── Interface ─────────────────────────────────────────────────────────────

    @abstractmethod
    def load(self) -> None:
        """Load/initialise the model. Raises DetectorLoadError on failure."""
        ...

    @abstractmethod
    def detect(self, frame: Frame) -> list[Detection]:
        """Return detections for frame in a stable order."""
        ...

    @abstractmethod
    def unload(self) -> None:
        """Release all resources. Safe to call multiple times."""
        ...

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    # ── Context manager ───────────────────────────────────────────────────────

    def __enter__(self) -> "Detector":
        self.load()
        return self

    def __exit__(self, *_) -> None:
        self.unload()
