"""Drawing helpers for the tracking window and annotated output video."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from personreid.types import Point, Rect

LOGGER = logging.getLogger("personreid.viz.overlay")

Color = Tuple[int, int, int]

# BGR
TARGET_COLOR: Color = (0, 0, 255)
SELECTION_COLOR: Color = (0, 255, 0)
STATUS_COLOR: Color = (255, 0, 0)

SELECT_PROMPT = "Draw Bounding Box on Target"
TRACKING_STATUS = "Tracking"


def draw_status(frame: np.ndarray, text: str, color: Color = STATUS_COLOR) -> np.ndarray:
    cv2.putText(frame, text, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)
    return frame


def draw_target(
    frame: np.ndarray,
    rect: Rect,
    label: Optional[str] = "Target",
    color: Color = TARGET_COLOR,
) -> np.ndarray:
    """Outline the matched person and write its label above the box."""
    x, y, w, h = rect
    cv2.rectangle(frame, (x, y), (x + w, y + h), color, 2)
    if label:
        cv2.putText(frame, label, (x, max(15, y - 10)), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 2)
    return frame


def draw_selection(
    frame: np.ndarray,
    anchor: Point,
    current: Point,
    color: Color = SELECTION_COLOR,
) -> np.ndarray:
    """Return a copy of ``frame`` with the in-progress selection drawn on it."""
    preview = frame.copy()
    cv2.rectangle(preview, anchor, current, color, 2)
    return preview
