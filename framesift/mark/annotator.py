"""
FrameSift — Mark Annotator
framesift/mark/annotator.py

Draws detection bounding boxes and labels onto frames.
Called by the writer stage just before a frame is appended to the output.

Visual style (per detection, in order):
  - Box in the detection's colour, 2px
  - Label "<class> <confidence to 2dp>" in a filled plate of the same colour,
    sitting on the box's top-left corner, clamped to stay inside the frame
  - Black label text over the plate

Drawing mutates frame.data in place — the writer owns the frame by then.
"""

from __future__ import annotations

from typing import Iterable

import cv2

from framesift.hawk.base import Detection
from framesift.lens.base import Frame


# ── Font settings ─────────────────────────────────────────────────────────────
_FONT       = cv2.FONT_HERSHEY_DUPLEX
_FONT_SCALE = 1.0
_FONT_THICK = 2
_BOX_THICK  = 2
_TEXT_COLOUR = (0, 0, 0)   # black text on coloured plate

# Plate padding around the rendered text
_PAD_X    = 10
_PAD_Y    = 20
_TEXT_DX  = 5    # text inset from the plate's left edge
_TEXT_DY  = 10   # text baseline above the plate's bottom edge


def format_label(det: Detection) -> str:
    return f"{det.label} {det.confidence:.2f}"


def label_plate(
    box_x: int,
    box_y: int,
    text_w: int,
    text_h: int,
    frame_w: int,
    frame_h: int,
) -> tuple[int, int, int, int]:
    """
    Return the (x, y, w, h) label plate for a box whose top-left is (box_x, box_y).

    The plate sits immediately above the box. Near an edge it is shifted —
    never cropped — so it stays fully inside the frame; it is only shrunk
    when the frame itself is smaller than the plate.
    """
    w = min(text_w + _PAD_X, frame_w)
    h = min(text_h + _PAD_Y, frame_h)
    x = min(max(box_x, 0), frame_w - w)
    y = min(max(box_y - h, 0), frame_h - h)
    return x, y, w, h


def draw(frame: Frame, detections: Iterable[Detection]) -> Frame:
    """
    Draw detections onto frame.data in place and return the same frame.

    frame.meta gains "annotated", "detection_count" and "labels".
    """
    img = frame.data
    h, w = img.shape[:2]
    labels: list[str] = []

    for det in detections:
        x, y, bw, bh = det.box
        if bw <= 0 or bh <= 0:
            continue
        colour = det.color

        # Bounding box — pt2 is inclusive in OpenCV
        cv2.rectangle(img, (x, y), (x + bw - 1, y + bh - 1), colour, _BOX_THICK)

        # Label plate + text
        text = format_label(det)
        (tw, th), _baseline = cv2.getTextSize(text, _FONT, _FONT_SCALE, _FONT_THICK)
        px, py, pw, ph = label_plate(x, y, tw, th, w, h)

        cv2.rectangle(img, (px, py), (px + pw - 1, py + ph - 1), colour, cv2.FILLED)
        cv2.putText(
            img, text,
            (px + _TEXT_DX, py + ph - _TEXT_DY),
            _FONT, _FONT_SCALE,
            _TEXT_COLOUR,
            _FONT_THICK,
        )
        labels.append(text)

    frame.meta.update({
        "annotated": True,
        "detection_count": len(labels),
        "labels": labels,
    })
    return frame
