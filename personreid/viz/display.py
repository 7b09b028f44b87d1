"""Window output and keyboard/mouse polling."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import cv2
import numpy as np

LOGGER = logging.getLogger("personreid.viz.display")

CANCEL_KEYS = frozenset({ord("q"), 27})

MouseCallback = Callable[[int, int, int, int, Any], None]


class WindowDisplay:
    """Single named OpenCV window."""

    def __init__(self, window_name: str = "TRACKING", wait_ms: int = 1) -> None:
        self.window_name = window_name
        self.wait_ms = wait_ms
        self._created = False

    def _ensure_window(self) -> None:
        if not self._created:
            cv2.namedWindow(self.window_name, cv2.WINDOW_AUTOSIZE)
            self._created = True

    def show(self, frame: np.ndarray) -> None:
        self._ensure_window()
        cv2.imshow(self.window_name, frame)

    def set_mouse_callback(self, callback: MouseCallback, param: Optional[Any] = None) -> None:
        self._ensure_window()
        cv2.setMouseCallback(self.window_name, callback, param)

    def poll_cancel(self) -> bool:
        """Pump GUI events once and report whether q or Escape was pressed."""
        key = cv2.waitKey(self.wait_ms)
        return key != -1 and (key & 0xFF) in CANCEL_KEYS

    def close(self) -> None:
        if self._created:
            cv2.destroyAllWindows()
            self._created = False


class HeadlessDisplay:
    """Drop-in display for runs without a window; never cancels."""

    def show(self, frame: np.ndarray) -> None:
        return None

    def set_mouse_callback(self, callback: MouseCallback, param: Optional[Any] = None) -> None:
        raise RuntimeError("Interactive selection requires a window; pass --query when running headless")

    def poll_cancel(self) -> bool:
        return False

    def close(self) -> None:
        return None
