"""
FrameSift — Pipeline Stage Base Class
framesift/stages/base.py

A stage is one runnable phase of the pipeline. The driver runs each stage's
run() on its own thread and only looks at the stage again after join().

Contract every stage keeps:
  - run() never raises; a fatal failure is stored on .error
  - per-frame failures are counted in .skipped and logged, not stored
  - the stage closes its output queue on every exit path, and closes its
    input queue when it stops consuming early, so no neighbour blocks forever
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from framesift.shared.errors import FrameSiftError
from framesift.shared.redis_client import StatsReporter


class Stage(ABC):
    """Runnable pipeline stage."""

    def __init__(self, name: str, stats: Optional[StatsReporter] = None):
        self._name = name
        self._stats = stats
        self.error: Optional[FrameSiftError] = None
        self.processed = 0
        self.skipped = 0

    @abstractmethod
    def run(self) -> None:
        """Process items until the input is exhausted or a fatal error occurs."""
        ...

    @property
    def name(self) -> str:
        return self._name

    @property
    def failed(self) -> bool:
        return self.error is not None

    # ── Helpers for subclasses ────────────────────────────────────────────────

    def _tick(self, queue_depth: int = 0) -> None:
        if self._stats is not None:
            self._stats.tick(self._name, self.processed, self.skipped, queue_depth)

    def _final(self) -> None:
        if self._stats is not None:
            self._stats.final(self._name, self.processed, self.skipped)

    def __repr__(self) -> str:
        state = f"error={type(self.error).__name__}" if self.error else "ok"
        return f"{type(self).__name__}(processed={self.processed}, skipped={self.skipped}, {state})"
