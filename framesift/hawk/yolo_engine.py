"""
FrameSift — YOLO Detector
framesift/hawk/yolo_engine.py

Runs YOLO inference via Ultralytics on .pt, .onnx or TensorRT .engine weights.
Activated by setting detector.mock=false in config (the default).

Key design decisions:
  - Uses the Ultralytics YOLO() wrapper — it handles preprocessing,
    postprocessing, NMS and backend warm-up transparently
  - Returns pixel boxes (x, y, w, h) in the coordinates of the frame it was
    given, so the annotator can draw them directly
  - load() runs on the detector stage thread — GPU contexts are thread-local
  - A failed forward pass raises DetectionError; the stage skips that frame
"""

from __future__ import annotations

import time
from pathlib import Path

from loguru import logger

from framesift.hawk.base import Detection, Detector, class_colour
from framesift.lens.base import Frame
from framesift.shared.config import DetectorConfig
from framesift.shared.errors import DetectionError, DetectorLoadError


class YoloDetector(Detector):
    """
    Ultralytics YOLO object detector.

    Requires:
      - ultralytics >= 8.1  (pip install "framesift[yolo]")
      - weights exported for the configured device (e.g. yolov8s.onnx for CPU)
    """

    def __init__(self, cfg: DetectorConfig):
        super().__init__(name="yolo")
        self._cfg          = cfg
        self._model        = None
        self._weights_path = Path(cfg.weights)
        self._class_names: dict[int, str] = {}

    # ── Detector interface ────────────────────────────────────────────────────

    def load(self) -> None:
        """
        Load the weights via Ultralytics YOLO and run one warm-up pass.

        Must be called from the detector stage thread.
        """
        if not self._weights_path.exists():
            raise DetectorLoadError(
                f"YoloDetector: weights not found at {self._weights_path}"
            )

        try:
            from ultralytics import YOLO
        except ImportError as e:
            raise DetectorLoadError(
                'ultralytics not installed. Run: pip install "framesift[yolo]"'
            ) from e

        logger.info("YoloDetector: loading {} on {}", self._weights_path, self._cfg.device)
        t0 = time.monotonic()

        try:
            self._model = YOLO(str(self._weights_path), task="detect")

            # Warm-up run so the first real frame isn't slow
            import numpy as np
            h = w = self._cfg.imgsz
            dummy = np.zeros((h, w, 3), dtype=np.uint8)
            self._model(dummy, verbose=False, device=self._cfg.device, imgsz=self._cfg.imgsz)
        except Exception as exc:
            self._model = None
            raise DetectorLoadError(
                f"YoloDetector: failed to load {self._weights_path}: {exc}"
            ) from exc

        self._class_names = dict(self._model.names)
        load_ms = (time.monotonic() - t0) * 1000

        self._loaded = True
        logger.info(
            "YoloDetector loaded in {:.0f}ms — {} classes, weights={}",
            load_ms, len(self._class_names), self._weights_path.name,
        )

    def detect(self, frame: Frame) -> list[Detection]:
        if not self._loaded or self._model is None:
            raise DetectionError(f"YoloDetector: detect() on frame {frame.frame_id} before load()")

        try:
            results = self._model(
                frame.data,
                conf=self._cfg.confidence,
                classes=self._cfg.classes,  # None = all classes
                device=self._cfg.device,
                imgsz=self._cfg.imgsz,
                verbose=False,
            )
        except Exception as exc:
            raise DetectionError(
                f"YoloDetector: inference error on frame {frame.frame_id}: {exc}"
            ) from exc

        return self._parse_results(results)

    def unload(self) -> None:
        self._model = None
        self._loaded = False
        logger.info("YoloDetector unloaded")

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _parse_results(self, results) -> list[Detection]:
        """Convert Ultralytics Results to pixel-space Detection list."""
        detections = []

        for result in results:
            boxes = result.boxes
            if boxes is None:
                continue

            for box in boxes:
                x1, y1, x2, y2 = (int(round(v)) for v in box.xyxy[0].tolist())
                conf    = float(box.conf[0])
                cls_id  = int(box.cls[0])
                label   = self._class_names.get(cls_id, str(cls_id))

                detections.append(Detection(
                    box=(x1, y1, x2 - x1, y2 - y1),
                    label=label,
                    confidence=round(conf, 3),
                    color=class_colour(cls_id),
                    class_id=cls_id,
                ))

        return detections
