"""
FrameSift — File Video Sink
framesift/reel/file_sink.py

Writes annotated frames to a video file via cv2.VideoWriter.

OpenCV silently drops frames whose size differs from the size the writer was
opened with, so write() checks the size itself and raises FrameWriteError.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2
from loguru import logger

from framesift.lens.base import Frame
from framesift.reel.base import VideoSink
from framesift.shared.errors import FrameWriteError, SinkOpenError


class FileSink(VideoSink):
    """
    Video file writer.

    path        — output file; its directory must already exist
    codec       — FourCC string, e.g. "MJPG" (.avi) or "mp4v" (.mp4)
    fps         — playback frame rate written into the container
    frame_size  — (width, height) every frame must match
    """

    def __init__(self, path: str | Path, codec: str, fps: float, frame_size: tuple[int, int]):
        super().__init__(name="file")
        self._path       = Path(path)
        self._codec      = codec
        self._fps        = fps
        self._frame_size = frame_size
        self._writer: Optional[cv2.VideoWriter] = None
        self._created = False
        self._frames_written = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def frame_size(self) -> tuple[int, int]:
        return self._frame_size

    # ── VideoSink interface ───────────────────────────────────────────────────

    def open(self) -> None:
        if not self._path.parent.is_dir():
            raise SinkOpenError(f"FileSink: output directory {self._path.parent} does not exist")
        if len(self._codec) != 4:
            raise SinkOpenError(f"FileSink: codec must be a 4-character FourCC, got '{self._codec}'")
        width, height = self._frame_size
        if width <= 0 or height <= 0 or self._fps <= 0:
            raise SinkOpenError(
                f"FileSink: invalid stream geometry {width}x{height} @ {self._fps}fps"
            )

        fourcc = cv2.VideoWriter_fourcc(*self._codec)
        self._writer = cv2.VideoWriter(str(self._path), fourcc, self._fps, self._frame_size)
        if not self._writer.isOpened():
            self._writer.release()
            self._writer = None
            raise SinkOpenError(
                f"FileSink: OpenCV could not open {self._path} for writing (codec={self._codec})"
            )

        self._opened = True
        self._created = True
        self._frames_written = 0
        logger.info(
            "FileSink opened: {} — {}x{} @ {:.2f}fps codec={}",
            self._path, width, height, self._fps, self._codec,
        )

    def write(self, frame: Frame) -> None:
        if not self._writer or not self._opened:
            raise FrameWriteError(f"FileSink: write() on closed sink {self._path}")

        size = (frame.data.shape[1], frame.data.shape[0])
        if size != self._frame_size:
            raise FrameWriteError(
                f"FileSink: frame {frame.frame_id} is {size[0]}x{size[1]}, "
                f"expected {self._frame_size[0]}x{self._frame_size[1]}"
            )

        try:
            self._writer.write(frame.data)
        except cv2.error as exc:
            raise FrameWriteError(f"FileSink: failed to write frame {frame.frame_id}: {exc}") from exc
        self._frames_written += 1

    def close(self) -> None:
        if self._writer:
            self._writer.release()
            self._writer = None
            logger.info("FileSink closed: {} — {} frames written", self._path, self._frames_written)
        self._opened = False

    def discard(self) -> None:
        """Remove the output file, but only if this sink created it."""
        self.close()
        if self._created and self._path.exists():
            self._path.unlink()
            logger.info("FileSink: removed empty output {}", self._path)
