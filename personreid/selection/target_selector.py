"""Acquire the query crop from a reference image or a box drawn on frame one."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import cv2
import numpy as np

from personreid.errors import SelectionCancelled, StreamError
from personreid.io_utils import load_image
from personreid.types import Point, Rect, clamp_rect, crop, normalize_rect
from personreid.viz.overlay import SELECT_PROMPT, draw_selection, draw_status

LOGGER = logging.getLogger("personreid.selection")


class SelectionPhase(enum.Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    COMMITTED = "committed"


@dataclass
class SelectionState:
    """Press/drag/release state machine behind the selection window.

    ``frame`` is the display image the preview is drawn over; it is never
    modified. ``display`` receives preview images while drawing.
    """

    frame_width: int
    frame_height: int
    frame: Optional[np.ndarray] = None
    display: Any = None
    phase: SelectionPhase = SelectionPhase.IDLE
    anchor: Optional[Point] = None
    current: Optional[Point] = None
    rect: Optional[Rect] = None

    @property
    def committed(self) -> bool:
        return self.phase is SelectionPhase.COMMITTED

    def press(self, x: int, y: int) -> None:
        if self.committed:
            return
        self.phase = SelectionPhase.DRAWING
        self.anchor = (x, y)
        self.current = (x, y)

    def move(self, x: int, y: int) -> None:
        if self.phase is not SelectionPhase.DRAWING:
            return
        self.current = (x, y)
        if self.frame is not None and self.display is not None:
            self.display.show(draw_selection(self.frame, self.anchor, self.current))

    def release(self, x: int, y: int) -> Optional[Rect]:
        if self.phase is not SelectionPhase.DRAWING or self.anchor is None:
            return None
        self.current = (x, y)
        rect = clamp_rect(normalize_rect(self.anchor, self.current), self.frame_width, self.frame_height)
        if rect[2] <= 0 or rect[3] <= 0:
            LOGGER.info("Ignoring empty selection %s; draw the box again", rect)
            self.phase = SelectionPhase.IDLE
            self.anchor = None
            return None
        self.phase = SelectionPhase.COMMITTED
        self.rect = rect
        LOGGER.info("Target selected at x=%d y=%d w=%d h=%d", *rect)
        if self.frame is not None and self.display is not None:
            x0, y0, w, h = rect
            self.display.show(draw_selection(self.frame, (x0, y0), (x0 + w, y0 + h)))
        return rect

    def handle_mouse(self, event: int, x: int, y: int, flags: int = 0, param: Any = None) -> None:
        """OpenCV mouse callback."""
        if event == cv2.EVENT_LBUTTONDOWN:
            self.press(x, y)
        elif event == cv2.EVENT_MOUSEMOVE:
            self.move(x, y)
        elif event == cv2.EVENT_LBUTTONUP:
            self.release(x, y)


def _on_mouse(event: int, x: int, y: int, flags: int, state: SelectionState) -> None:
    state.handle_mouse(event, x, y, flags)


def load_query_image(path: Path) -> np.ndarray:
    image = load_image(path)
    LOGGER.info("Loaded query image %s (%dx%d)", path, image.shape[1], image.shape[0])
    return image


def select_from_stream(capture, display) -> np.ndarray:
    """Read the first frame and let the user draw a box around the target."""
    ret, first_frame = capture.read()
    if not ret or first_frame is None or first_frame.size == 0:
        raise StreamError("Unable to read the first frame for target selection")

    height, width = first_frame.shape[:2]
    prompt_frame = draw_status(first_frame.copy(), SELECT_PROMPT)
    state = SelectionState(frame_width=width, frame_height=height, frame=prompt_frame, display=display)
    display.show(prompt_frame)
    display.set_mouse_callback(_on_mouse, state)

    while not state.committed:
        if display.poll_cancel():
            raise SelectionCancelled("Target selection cancelled by user")
    return crop(first_frame, state.rect).copy()


def acquire_query(query_path: Optional[Path], capture, display) -> np.ndarray:
    """Query crop from ``query_path`` when given, else from interactive selection."""
    if query_path is not None:
        return load_query_image(query_path)
    return select_from_stream(capture, display)
