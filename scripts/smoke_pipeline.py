"""
FrameSift — Pipeline Smoke Check
scripts/smoke_pipeline.py

Encodes a short synthetic clip, runs the full file → file pipeline on it with
the mock detector and checks the annotated output.
No model weights, no sample video, no Redis required.

Run from project root:
    python3 scripts/smoke_pipeline.py

Optional:
    SMOKE_FRAMES=60     clip length in frames  (default)
    SMOKE_FPS=30        clip frame rate        (default)
    SAMPLE_RATE=5       frames per second kept (default)
"""

import os
import sys
import tempfile
import time
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from framesift.driver import build_pipeline
from framesift.lens.file_source import FileSource
from framesift.lens.synthetic_source import SyntheticSource
from framesift.reel.file_sink import FileSink
from framesift.shared.config import PipelineConfig, SourceConfig
from framesift.shared.errors import PipelineError

# ── Helpers ───────────────────────────────────────────────────────────────────

PASS  = "\033[92m  PASS\033[0m"
FAIL  = "\033[91m  FAIL\033[0m"
HEAD  = "\033[96m{}\033[0m"

results: list[tuple[str, bool, str]] = []


def check(name: str, condition: bool, detail: str = "") -> bool:
    results.append((name, condition, detail))
    status = PASS if condition else FAIL
    suffix = f"  ({detail})" if detail else ""
    print(f"{status}  {name}{suffix}")
    return condition


def section(title: str) -> None:
    print(f"\n{HEAD.format('── ' + title + ' ' + '─' * max(0, 50 - len(title)))}")


def count_frames(path: Path) -> int:
    src = FileSource(SourceConfig(uri=str(path)))
    n = 0
    with src:
        while src.read() is not None:
            n += 1
    return n


# ── Checks ────────────────────────────────────────────────────────────────────

def make_clip(path: Path, frames: int, fps: float) -> None:
    section("Input clip")

    src = SyntheticSource(SourceConfig(type="synthetic", frames=frames, fps=fps, width=320, height=240))
    sink = FileSink(path, "MJPG", fps, (320, 240))
    with src, sink:
        while (frame := src.read()) is not None:
            sink.write(frame)

    check("Clip encoded", path.exists(), str(path))
    check(f"Clip has {frames} frames", count_frames(path) == frames)


def run_pipeline(clip: Path, out: Path, rate: float, frames: int, fps: float) -> None:
    section("Pipeline")

    cfg = PipelineConfig()
    cfg.source.uri = str(clip)
    cfg.sampler.rate = rate
    cfg.writer.uri = str(out)
    cfg.detector.mock = True

    pipeline = build_pipeline(cfg)
    start = time.monotonic()
    report = pipeline.run()
    elapsed = time.monotonic() - start

    try:
        report.raise_for_failures()
        check("Pipeline finished without failures", True, f"{elapsed:.2f}s")
    except PipelineError as exc:
        check("Pipeline finished without failures", False, exc.message)
        return

    interval = max(1, int(fps // rate))
    expected = -(-frames // interval)
    check(f"Sampling interval is {interval}", report.interval == interval, str(report.interval))
    check(f"{expected} frames written", report.frames_written == expected, str(report.frames_written))
    check("No frames skipped", report.detect_skipped + report.write_skipped == 0)
    check("Output file readable", count_frames(out) == expected)


def run_missing_source(out: Path) -> None:
    section("Missing source")

    cfg = PipelineConfig()
    cfg.source.uri = "/nonexistent/path/video.mp4"
    cfg.writer.uri = str(out)
    try:
        build_pipeline(cfg)
        check("Missing source is rejected", False)
    except Exception as exc:
        check("Missing source is rejected", True, type(exc).__name__)
    check("No output left behind", not out.exists())


# ── Summary ───────────────────────────────────────────────────────────────────

def print_summary() -> None:
    total  = len(results)
    passed = sum(1 for _, ok, _ in results if ok)
    failed = total - passed

    print(f"\n{'─' * 55}")
    if failed == 0:
        print(f"\033[92m  {passed}/{total} checks passed — pipeline is solid.\033[0m")
    else:
        print(f"\033[91m  {passed}/{total} passed, {failed} FAILED\033[0m")
        print("\n  Failed checks:")
        for name, ok, detail in results:
            if not ok:
                suffix = f" ({detail})" if detail else ""
                print(f"    ✗  {name}{suffix}")
    print()


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    frames = int(os.environ.get("SMOKE_FRAMES", "60"))
    fps    = float(os.environ.get("SMOKE_FPS", "30"))
    rate   = float(os.environ.get("SAMPLE_RATE", "5"))

    print(f"\n\033[96mFrameSift — Pipeline Smoke Check\033[0m")
    print(f"Clip: {frames} frames @ {fps:g}fps, keeping {rate:g}fps\n")

    with tempfile.TemporaryDirectory() as tmp:
        workdir = Path(tmp)
        clip = workdir / "clip.avi"
        make_clip(clip, frames, fps)
        run_pipeline(clip, workdir / "annotated.avi", rate, frames, fps)
        run_missing_source(workdir / "never.avi")

    print_summary()
    sys.exit(0 if all(ok for _, ok, _ in results) else 1)
