"""
FrameSift — Pipeline Configuration
framesift/shared/config.py

Loads configs/pipeline.yaml and returns a fully typed PipelineConfig.
Environment variables override YAML values.

Usage:
    from framesift.shared.config import load_config

    cfg = load_config()                         # auto-finds configs/pipeline.yaml
    cfg = load_config("configs/pipeline.yaml")  # explicit path

    cfg.source.uri          # "1.mp4"
    cfg.sampler.rate        # 1.0 — frames per second kept
    cfg.writer.uri          # "output.avi"
    cfg.detector.mock       # True when DEV_MODE=true
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger

from framesift.shared.errors import ConfigError


# ── Sub-configs ──────────────────────────────────────────────────────────────

@dataclass
class SourceConfig:
    type: str = "file"               # file | synthetic
    uri: str = "1.mp4"               # video path (file sources)
    width: int = 0                   # resize output width  (0 = native)
    height: int = 0                  # resize output height (0 = native)
    fps: float = 30.0                # synthetic only
    frames: int = 300                # synthetic only


@dataclass
class SamplerConfig:
    rate: float = 1.0                # target frames per second to keep


@dataclass
class DetectorConfig:
    name: str = "yolov8s"
    weights: str = "ultralytics/yolov8s.onnx"
    confidence: float = 0.5
    imgsz: int = 640
    classes: Optional[list[int]] = None   # None = all classes
    device: str = "cpu"
    mock: bool = False               # replaced by MockDetector when True
    mock_latency_ms: float = 5.0
    seed: int = 0


@dataclass
class WriterConfig:
    uri: str = "output.avi"
    codec: str = "MJPG"              # FourCC
    fps: float = 0.0                 # 0 = native fps of the source


@dataclass
class QueueConfig:
    frame_maxsize: int = 0           # 0 = unbounded
    result_maxsize: int = 0


@dataclass
class StatsConfig:
    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    interval: float = 3.0            # seconds between per-stage publishes


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = ""                   # empty = console only
    rotation: str = "10 MB"
    retention: int = 5


@dataclass
class DevConfig:
    enabled: bool = False
    frames: int = 300
    fps: float = 30.0


# ── Root config ───────────────────────────────────────────────────────────────

@dataclass
class PipelineConfig:
    source: SourceConfig = field(default_factory=SourceConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    writer: WriterConfig = field(default_factory=WriterConfig)
    queues: QueueConfig = field(default_factory=QueueConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    dev: DevConfig = field(default_factory=DevConfig)


# ── Loader ────────────────────────────────────────────────────────────────────

_DEFAULT_PATH = Path("configs/pipeline.yaml")


def load_config(path: str | Path | None = None) -> PipelineConfig:
    """
    Load pipeline.yaml and return a typed, validated PipelineConfig.

    The path is taken from the argument, then FRAMESIFT_CONFIG, then
    configs/pipeline.yaml. A missing file means defaults.

    Environment variable overrides (take precedence over YAML):
        SOURCE_TYPE      → source.type
        SOURCE_URI       → source.uri
        SAMPLE_RATE      → sampler.rate
        OUTPUT_URI       → writer.uri
        OUTPUT_CODEC     → writer.codec
        MODEL_WEIGHTS    → detector.weights
        DETECTOR_DEVICE  → detector.device
        LOG_LEVEL        → logging.level
        LOG_FILE         → logging.file
        STATS_ENABLED    → stats.enabled
        REDIS_HOST       → stats.host
        REDIS_PORT       → stats.port
        DEV_MODE         → dev.enabled   ("true" / "1" / "yes")

    Raises ConfigError for malformed YAML or invalid values.
    """
    config_path = Path(path or os.environ.get("FRAMESIFT_CONFIG") or _DEFAULT_PATH)

    raw: dict = {}
    if config_path.exists():
        try:
            with config_path.open() as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path}: top level must be a mapping")
        logger.debug("Config loaded from {}", config_path)
    else:
        logger.warning("Config not found at {} — using defaults", config_path)

    try:
        cfg = PipelineConfig(
            source=_build_source(raw.get("source") or {}),
            sampler=_build_sampler(raw.get("sampler") or {}),
            detector=_build_detector(raw.get("detector") or {}),
            writer=_build_writer(raw.get("writer") or {}),
            queues=_build_queues(raw.get("queues") or {}),
            stats=_build_stats(raw.get("stats") or {}),
            logging=_build_logging(raw.get("logging") or {}),
            dev=_build_dev(raw.get("dev") or {}),
        )
        _apply_env(cfg)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid config value: {exc}") from exc

    validate(cfg)
    return cfg


# ── Section builders ──────────────────────────────────────────────────────────

def _build_source(d: dict) -> SourceConfig:
    return SourceConfig(
        type=str(d.get("type", "file")),
        uri=str(d.get("uri", "1.mp4")),
        width=int(d.get("width", 0)),
        height=int(d.get("height", 0)),
        fps=float(d.get("fps", 30.0)),
        frames=int(d.get("frames", 300)),
    )


def _build_sampler(d: dict) -> SamplerConfig:
    return SamplerConfig(rate=float(d.get("rate", 1.0)))


def _build_detector(d: dict) -> DetectorConfig:
    return DetectorConfig(
        name=d.get("name", "yolov8s"),
        weights=d.get("weights", "ultralytics/yolov8s.onnx"),
        confidence=float(d.get("confidence", 0.5)),
        imgsz=int(d.get("imgsz", 640)),
        classes=d.get("classes"),
        device=str(d.get("device", "cpu")),
        mock=_truthy(d.get("mock", False)),
        mock_latency_ms=float(d.get("mock_latency_ms", 5.0)),
        seed=int(d.get("seed", 0)),
    )


def _build_writer(d: dict) -> WriterConfig:
    return WriterConfig(
        uri=str(d.get("uri", "output.avi")),
        codec=str(d.get("codec", "MJPG")),
        fps=float(d.get("fps", 0.0)),
    )


def _build_queues(d: dict) -> QueueConfig:
    return QueueConfig(
        frame_maxsize=int(d.get("frame_maxsize", 0)),
        result_maxsize=int(d.get("result_maxsize", 0)),
    )


def _build_stats(d: dict) -> StatsConfig:
    return StatsConfig(
        enabled=_truthy(d.get("enabled", False)),
        host=d.get("host", "localhost"),
        port=int(d.get("port", 6379)),
        db=int(d.get("db", 0)),
        interval=float(d.get("interval", 3.0)),
    )


def _build_logging(d: dict) -> LoggingConfig:
    return LoggingConfig(
        level=str(d.get("level", "INFO")).upper(),
        file=d.get("file") or "",
        rotation=str(d.get("rotation", "10 MB")),
        retention=int(d.get("retention", 5)),
    )


def _build_dev(d: dict) -> DevConfig:
    return DevConfig(
        enabled=_truthy(d.get("enabled", False)),
        frames=int(d.get("frames", 300)),
        fps=float(d.get("fps", 30.0)),
    )


# ── Environment overrides ─────────────────────────────────────────────────────

def _apply_env(cfg: PipelineConfig) -> None:
    env = os.environ

    if v := env.get("SOURCE_TYPE"):
        cfg.source.type = v
    if v := env.get("SOURCE_URI"):
        cfg.source.uri = v
    if v := env.get("SAMPLE_RATE"):
        cfg.sampler.rate = float(v)

    if v := env.get("OUTPUT_URI"):
        cfg.writer.uri = v
    if v := env.get("OUTPUT_CODEC"):
        cfg.writer.codec = v

    if v := env.get("MODEL_WEIGHTS"):
        cfg.detector.weights = v
    if v := env.get("DETECTOR_DEVICE"):
        cfg.detector.device = v

    if v := env.get("LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := env.get("LOG_FILE"):
        cfg.logging.file = v

    if v := env.get("STATS_ENABLED"):
        cfg.stats.enabled = _truthy(v)
    if v := env.get("REDIS_HOST"):
        cfg.stats.host = v
    if v := env.get("REDIS_PORT"):
        cfg.stats.port = int(v)

    if v := env.get("DEV_MODE"):
        cfg.dev.enabled = _truthy(v)

    # Dev mode side-effects — apply after all other env vars
    if cfg.dev.enabled:
        if not env.get("SOURCE_TYPE"):
            cfg.source.type = "synthetic"
            cfg.source.frames = cfg.dev.frames
            cfg.source.fps = cfg.dev.fps
        cfg.detector.mock = True
        logger.info("DEV_MODE enabled — source→{}, detector→mock", cfg.source.type)


# ── Validation ────────────────────────────────────────────────────────────────

_SOURCE_TYPES = ("file", "synthetic")


def validate(cfg: PipelineConfig) -> None:
    """Raise ConfigError on values the pipeline cannot run with."""
    if cfg.source.type.lower() not in _SOURCE_TYPES:
        raise ConfigError(
            f"source.type '{cfg.source.type}' — expected one of {', '.join(_SOURCE_TYPES)}"
        )
    if cfg.sampler.rate <= 0:
        raise ConfigError(f"sampler.rate must be > 0, got {cfg.sampler.rate}")
    if len(cfg.writer.codec) != 4:
        raise ConfigError(f"writer.codec must be a 4-character FourCC, got '{cfg.writer.codec}'")
    if cfg.writer.fps < 0:
        raise ConfigError(f"writer.fps must be >= 0, got {cfg.writer.fps}")
    if cfg.queues.frame_maxsize < 0 or cfg.queues.result_maxsize < 0:
        raise ConfigError("queue sizes must be >= 0 (0 = unbounded)")
    if not 0.0 <= cfg.detector.confidence <= 1.0:
        raise ConfigError(f"detector.confidence must be within 0–1, got {cfg.detector.confidence}")


def _truthy(val: str | bool | int) -> bool:
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ("true", "1", "yes", "on")
