"""
FrameSift — Synthetic Video Source
framesift/lens/synthetic_source.py

Generates a fixed number of frames in memory at a nominal frame rate.
Used in DEV_MODE and in tests — no video file or codec required.

Each frame is a flat colour that shifts with frame_id, with the frame number
drawn in the top-left corner, so sampled output is easy to eyeball.
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np
from loguru import logger

from framesift.lens.base import Frame, VideoSource
from framesift.shared.config import SourceConfig
from framesift.shared.errors import SourceOpenError

_DEFAULT_SIZE = (640, 360)


class SyntheticSource(VideoSource):
    """
    Config fields used:
        source.frames  — number of frames before end of stream
        source.fps     — reported native frame rate
        source.width   — frame width  (0 = 640)
        source.height  — frame height (0 = 360)
    """

    def __init__(self, cfg: SourceConfig):
        super().__init__(name="synthetic")
        self._total      = cfg.frames
        self._cfg_fps    = cfg.fps
        self._cfg_width  = cfg.width or _DEFAULT_SIZE[0]
        self._cfg_height = cfg.height or _DEFAULT_SIZE[1]

    def open(self) -> None:
        if self._total < 0 or self._cfg_fps <= 0:
            raise SourceOpenError(
                f"SyntheticSource: invalid frames={self._total} fps={self._cfg_fps}"
            )
        self._fps = float(self._cfg_fps)
        self._width = self._cfg_width
        self._height = self._cfg_height
        self._frame_count = self._total
        self._frame_id = 0
        self._opened = True
        logger.info(
            "SyntheticSource opened — {}x{} @ {:.1f}fps, {} frames",
            self._width, self._height, self._fps, self._total,
        )

    def read(self) -> Optional[Frame]:
        if not self._opened:
            return None
        if self._frame_id >= self._total:
            self._opened = False
            return None

        n = self._frame_id
        img = np.empty((self._height, self._width, 3), dtype=np.uint8)
        img[:] = ((n * 7) % 256, (n * 13) % 256, (n * 29) % 256)
        cv2.putText(
            img, f"#{n}", (8, 28), cv2.FONT_HERSHEY_SIMPLEX,
            0.8, (255, 255, 255), 2, cv2.LINE_AA,
        )
        return self._make_frame(img, source_id="synthetic")

    def close(self) -> None:
        self._opened = False
