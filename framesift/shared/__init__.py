# FrameSift — shared pipeline utilities
from .blocking_queue import CLOSED, BlockingQueue
from .config import load_config, PipelineConfig
from .errors import (
    ConfigError,
    DetectionError,
    DetectorLoadError,
    FrameSiftError,
    FrameWriteError,
    PipelineError,
    SinkOpenError,
    SourceOpenError,
    SourceReadError,
)

__all__ = [
    "CLOSED",
    "BlockingQueue",
    "load_config",
    "PipelineConfig",
    "ConfigError",
    "DetectionError",
    "DetectorLoadError",
    "FrameSiftError",
    "FrameWriteError",
    "PipelineError",
    "SinkOpenError",
    "SourceOpenError",
    "SourceReadError",
]
