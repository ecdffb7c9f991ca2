"""
FrameSift — Video Sink Base Class
framesift/reel/base.py

All output video sinks implement this interface.
The writer stage only talks to VideoSink — never to concrete implementations directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from framesift.lens.base import Frame


class VideoSink(ABC):
    """
    Abstract base class for all FrameSift video sinks.

    Subclasses implement:
        open()    — create the output; raise SinkOpenError if it cannot be created
        write()   — append one frame; raise FrameWriteError if it cannot be written
        close()   — flush and finalise the output
        discard() — remove an output that never received a frame (optional)
    """

    def __init__(self, name: str):
        self._name = name
        self._opened = False

    # ── Interface ────────────────────────────────────────────────────────────

    @abstractmethod
    def open(self) -> None:
        ...

    @abstractmethod
    def write(self, frame: Frame) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        """Finalise the output. Safe to call multiple times."""
        ...

    def discard(self) -> None:
        """Remove the artifact. Default: nothing to remove."""

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_open(self) -> bool:
        return self._opened

    # ── Context manager ───────────────────────────────────────────────────────

    def __enter__(self) -> "VideoSink":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()
