"""
FrameSift — Redis Stats Telemetry
framesift/shared/redis_client.py

Optional telemetry: each stage publishes progress counters to a Redis
pub/sub channel so an external dashboard can follow a long run.

Provides:
  - Channels         — channel name constants (single source of truth)
  - StatsMessage     — the published payload
  - wait_for_redis() — startup utility, blocks until Redis is reachable
  - publish_stats()  — typed publish helper
  - StatsReporter    — per-stage rate-limited publisher used by the stages

Telemetry never affects the pipeline: publish failures are logged and dropped.
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass

import redis
from loguru import logger


# ── Channel constants ──

class Channels:
    """Redis pub/sub channel names. Import this everywhere — never hardcode."""

    STATS = "framesift:stats"        # all stages → dashboard


# ── Message schema ──

@dataclass
class StatsMessage:
    """
    Published by each stage on the STATS channel.

    frames       — items handled so far (kept / inferred / written)
    skipped      — items dropped after a per-frame failure
    queue_depth  — current length of the stage's input queue (0 for sampler)
    done         — True on the final message of the stage
    """
    source: str               # "sampler" | "detector" | "writer"
    timestamp: float
    frames: int = 0
    skipped: int = 0
    fps: float = 0.0
    queue_depth: int = 0
    done: bool = False


# ── Connection ──

def wait_for_redis(
    host: str = "localhost",
    port: int = 6379,
    db: int = 0,
    retries: int = 3,
    interval: float = 1.0,
) -> redis.Redis:
    """
    Block until Redis is reachable, then return a connected client.
    Raises redis.ConnectionError if all retries are exhausted.
    """
    for attempt in range(1, retries + 1):
        try:
            client = redis.Redis(
                host=host,
                port=port,
                db=db,
                decode_responses=True,
                socket_connect_timeout=2.0,
            )
            client.ping()
            logger.info("Redis ready (attempt {}/{})", attempt, retries)
            return client
        except redis.RedisError as exc:
            logger.warning("Redis not ready ({}/{}) — {}", attempt, retries, exc)
            if attempt < retries:
                time.sleep(interval)

    raise redis.ConnectionError(
        f"Redis at {host}:{port} unreachable after {retries} attempts"
    )


# ── Publish helpers ──

def publish_stats(msg: StatsMessage, client: redis.Redis) -> int:
    """Any stage → dashboard: publish telemetry."""
    return client.publish(Channels.STATS, json.dumps(asdict(msg)))


# ── Reporter ──

class StatsReporter:
    """
    Rate-limited stats publisher shared by all stages of one run.

    tick()   — publish at most once per `interval` seconds per source
    final()  — always publish, marking the source as done

    Usage:
        reporter = StatsReporter(wait_for_redis(), interval=3.0)
        reporter.tick("sampler", frames=kept)
        reporter.final("sampler", frames=kept)
    """

    def __init__(self, client: redis.Redis, interval: float = 3.0):
        self._client = client
        self._interval = interval
        self._lock = threading.Lock()
        self._last: dict[str, float] = {}
        self._started: dict[str, float] = {}

    def tick(self, source: str, frames: int, skipped: int = 0, queue_depth: int = 0) -> bool:
        """Publish if the interval for this source has elapsed. Returns True if published."""
        now = time.monotonic()
        with self._lock:
            self._started.setdefault(source, now)
            last = self._last.get(source)
            if last is not None and now - last < self._interval:
                return False
            self._last[source] = now
        return self._send(source, now, frames, skipped, queue_depth, done=False)

    def final(self, source: str, frames: int, skipped: int = 0) -> bool:
        now = time.monotonic()
        with self._lock:
            self._started.setdefault(source, now)
            self._last[source] = now
        return self._send(source, now, frames, skipped, 0, done=True)

    def _send(
        self,
        source: str,
        now: float,
        frames: int,
        skipped: int,
        queue_depth: int,
        done: bool,
    ) -> bool:
        elapsed = now - self._started[source]
        msg = StatsMessage(
            source=source,
            timestamp=now,
            frames=frames,
            skipped=skipped,
            fps=round(frames / elapsed, 1) if elapsed > 0 else 0.0,
            queue_depth=queue_depth,
            done=done,
        )
        try:
            publish_stats(msg, self._client)
        except redis.RedisError as exc:
            logger.debug("Stats publish failed for {}: {}", source, exc)
            return False
        return True
