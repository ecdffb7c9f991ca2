"""
FrameSift — File Video Source
framesift/lens/file_source.py

Reads frames from a local video file via OpenCV, as fast as they decode.
No throttling and no looping — the sampler decides which frames to keep.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2
from loguru import logger

from framesift.lens.base import Frame, VideoSource
from framesift.shared.config import SourceConfig
from framesift.shared.errors import SourceOpenError, SourceReadError

# Fallback when the container does not report a frame rate
_DEFAULT_FPS = 30.0


class FileSource(VideoSource):
    """
    Sequential reader over a video file.

    Config fields used:
        source.uri     — path to video file
        source.width   — resize output width  (0 = native)
        source.height  — resize output height (0 = native)
    """

    def __init__(self, cfg: SourceConfig):
        super().__init__(name="file")
        self._path   = cfg.uri
        self._resize = (cfg.width, cfg.height) if cfg.width and cfg.height else None
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def path(self) -> str:
        return self._path

    # ── VideoSource interface ─────────────────────────────────────────────────

    def open(self) -> None:
        path = Path(self._path)
        if not path.is_file():
            raise SourceOpenError(f"FileSource: video not found at {self._path}")

        self._cap = cv2.VideoCapture(str(path))
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise SourceOpenError(f"FileSource: OpenCV could not open {self._path}")

        self._fps = self._cap.get(cv2.CAP_PROP_FPS) or _DEFAULT_FPS
        native_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        native_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self._width, self._height = self._resize or (native_w, native_h)
        self._frame_count = max(0, int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT)))
        self._frame_id = 0

        self._opened = True
        logger.info(
            "FileSource opened: {} — {}x{} @ {:.2f}fps, {} frames",
            self._path, native_w, native_h, self._fps, self._frame_count,
        )

    def read(self) -> Optional[Frame]:
        if not self._cap or not self._opened:
            return None

        try:
            ok, frame = self._cap.read()
        except cv2.error as exc:
            raise SourceReadError(
                f"FileSource: decode failed after frame {self._frame_id - 1} of {self._path}: {exc}"
            ) from exc

        if not ok or frame is None:
            logger.debug("FileSource: EOF after {} frames", self._frame_id)
            self._opened = False
            return None

        if self._resize:
            frame = cv2.resize(frame, self._resize)

        return self._make_frame(frame, source_id=f"file:{self._path}")

    def close(self) -> None:
        if self._cap:
            self._cap.release()
            self._cap = None
            logger.info("FileSource closed: {}", self._path)
        self._opened = False
