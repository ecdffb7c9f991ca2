"""
FrameSift — Error Taxonomy
framesift/shared/errors.py

Every failure the pipeline reports is a FrameSiftError.

critical=True   — fatal to the stage that raised it (open/load failures)
critical=False  — per-frame failure; the frame is skipped and the run goes on

A critical error raised from a per-frame call still ends its stage.
`timestamp` orders PipelineReport.failures, earliest first.

Stages never let these escape their thread. Fatal errors are stored on the
stage and collected by the driver into PipelineReport.failures.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from framesift.driver import PipelineReport


class FrameSiftError(Exception):
    """Base class for all FrameSift exceptions."""

    default_critical = False

    def __init__(self, message: str, critical: bool | None = None):
        super().__init__(message)
        self.message = message
        self.critical = self.default_critical if critical is None else critical
        self.timestamp = time.time()


class ConfigError(FrameSiftError):
    """Invalid configuration value."""
    default_critical = True


class SourceOpenError(FrameSiftError):
    """The video source could not be opened."""
    default_critical = True


class SourceReadError(FrameSiftError):
    """Decoding failed part-way through the source."""
    default_critical = True


class SinkOpenError(FrameSiftError):
    """The output video could not be created."""
    default_critical = True


class DetectorLoadError(FrameSiftError):
    """The detection model failed to load."""
    default_critical = True


class DetectionError(FrameSiftError):
    """Inference failed for a single frame."""


class FrameWriteError(FrameSiftError):
    """A single annotated frame could not be appended to the output."""


class PipelineError(FrameSiftError):
    """Raised by the driver when one or more stages failed."""

    default_critical = True

    def __init__(self, report: "PipelineReport"):
        reasons = "; ".join(
            f"{type(e).__name__}: {e.message}" for e in report.failures
        )
        super().__init__(f"pipeline failed — {reasons}")
        self.report = report
        self.failures = list(report.failures)
