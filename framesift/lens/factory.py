"""
FrameSift — Video Source Factory
framesift/lens/factory.py

Creates the correct VideoSource based on pipeline config.

    source.type = file       → FileSource       (OpenCV decode of source.uri)
    source.type = synthetic  → SyntheticSource  (DEV_MODE, tests)
"""

from __future__ import annotations

from loguru import logger

from framesift.lens.base import VideoSource
from framesift.lens.file_source import FileSource
from framesift.lens.synthetic_source import SyntheticSource
from framesift.shared.config import SourceConfig
from framesift.shared.errors import ConfigError

# Map config type strings → source classes
_REGISTRY: dict[str, type[VideoSource]] = {
    "file":      FileSource,
    "synthetic": SyntheticSource,
}


def create(cfg: SourceConfig) -> VideoSource:
    """
    Instantiate and return the correct VideoSource for the given config.

    Raises ConfigError for unknown source types.
    Does NOT call .open() — the caller is responsible for lifecycle.
    """
    source_type = cfg.type.lower()
    cls = _REGISTRY.get(source_type)

    if cls is None:
        valid = ", ".join(_REGISTRY)
        raise ConfigError(
            f"Unknown source type '{source_type}'. Valid types: {valid}"
        )

    logger.debug("SourceFactory: creating {} source", source_type)
    return cls(cfg)
