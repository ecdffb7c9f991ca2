"""
FrameSift — Video Source Base Class
framesift/lens/base.py

All video sources implement this interface.
The pipeline only talks to VideoSource — never to concrete implementations directly.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import numpy as np


@dataclass
class Frame:
    """
    A single decoded video frame passed through the pipeline.

    data        — BGR image as numpy array (H, W, 3), uint8
    frame_id    — 0-based position of the frame in its source
    timestamp   — time.monotonic() at decode
    width       — frame width in pixels
    height      — frame height in pixels
    source      — source identifier e.g. "file:clip.mp4"
    """
    data:      np.ndarray
    frame_id:  int
    timestamp: float
    width:     int
    height:    int
    source:    str
    meta:      dict = field(default_factory=dict)  # optional extras

    def copy(self) -> "Frame":
        """Independent copy — the pixel buffer is not shared with the decoder."""
        return Frame(
            data=self.data.copy(),
            frame_id=self.frame_id,
            timestamp=self.timestamp,
            width=self.width,
            height=self.height,
            source=self.source,
            meta=dict(self.meta),
        )


class VideoSource(ABC):
    """
    Abstract base class for all FrameSift video sources.

    Subclasses implement:
        open()    — open the source and read its metadata; raise SourceOpenError on failure
        read()    — decode the next Frame in source order, or None at end of stream
        close()   — release all resources

    The pipeline uses the context manager protocol:

        with factory.create(cfg) as src:
            while (frame := src.read()) is not None:
                process(frame)
    """

    def __init__(self, name: str):
        self._name = name
        self._frame_id = 0
        self._opened = False
        self._fps = 0.0
        self._width = 0
        self._height = 0
        self._frame_count = 0

    # ── Interface ────────────────────────────────────────────────────────────

    @abstractmethod
    def open(self) -> None:
        """Open the source. Raises SourceOpenError on failure."""
        ...

    @abstractmethod
    def read(self) -> Optional[Frame]:
        """Return the next frame in source order, or None at end of stream."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release all resources. Safe to call multiple times."""
        ...

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_open(self) -> bool:
        return self._opened

    @property
    def fps(self) -> float:
        """Native frame rate. Valid after open()."""
        return self._fps

    @property
    def width(self) -> int:
        """Width of the frames read() returns. Valid after open()."""
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def frame_count(self) -> int:
        """Container-reported frame count; 0 when unknown."""
        return self._frame_count

    # ── Context manager ───────────────────────────────────────────────────────

    def __enter__(self) -> "VideoSource":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ── Helpers for subclasses ────────────────────────────────────────────────

    def _next_id(self) -> int:
        frame_id = self._frame_id
        self._frame_id += 1
        return frame_id

    def _make_frame(self, data: np.ndarray, source_id: str) -> Frame:
        h, w = data.shape[:2]
        return Frame(
            data=data,
            frame_id=self._next_id(),
            timestamp=time.monotonic(),
            width=w,
            height=h,
            source=source_id,
        )
