"""Common dataclasses and type aliases used across the personreid package."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np

# Rectangle order: x, y, width, height (pixel coordinates, top-left origin)
Rect = Tuple[int, int, int, int]
Point = Tuple[int, int]


@dataclass
class Detection:
    """Person box decoded from the detector output, in frame coordinates."""

    rect: Rect
    score: float
    class_id: int = 0


@dataclass
class FrameCandidates:
    """Person crops of one frame with their source rectangles.

    The lists are parallel and kept in NMS output order, so a candidate index
    returned by the matcher maps straight back to its rectangle. An instance
    belongs to a single loop iteration and is dropped with its frame.
    """

    crops: List[np.ndarray] = field(default_factory=list)
    rects: List[Rect] = field(default_factory=list)
    scores: List[float] = field(default_factory=list)

    def add(self, crop: np.ndarray, rect: Rect, score: float) -> None:
        self.crops.append(crop)
        self.rects.append(rect)
        self.scores.append(score)

    def rect_for(self, index: int) -> Rect:
        return self.rects[index]

    def __len__(self) -> int:
        return len(self.crops)


@dataclass
class FrameResult:
    """Outcome of matching one frame against the query."""

    frame_idx: int
    num_candidates: int
    rect: Optional[Rect] = None
    similarity: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.rect is not None

    def to_dict(self) -> dict:
        x, y, w, h = self.rect if self.rect is not None else (None, None, None, None)
        return {
            "frame_idx": self.frame_idx,
            "num_candidates": self.num_candidates,
            "matched": self.matched,
            "x": x,
            "y": y,
            "width": w,
            "height": h,
            "similarity": self.similarity,
        }


def l2_normalize(vec: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """L2-normalize the input vector; vectors with norm <= eps are returned as-is."""
    norm = np.linalg.norm(vec)
    if norm <= eps:
        return vec
    return vec / norm


def l2_normalize_rows(matrix: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """L2-normalize every row of a 2-D array."""
    return np.stack([l2_normalize(row, eps) for row in matrix]) if len(matrix) else matrix


def normalize_rect(a: Point, b: Point) -> Rect:
    """Rectangle spanned by two corner points, in any drag direction."""
    x1, x2 = sorted((int(a[0]), int(b[0])))
    y1, y2 = sorted((int(a[1]), int(b[1])))
    return x1, y1, x2 - x1, y2 - y1


def clamp_rect(rect: Rect, frame_width: int, frame_height: int) -> Rect:
    """Move the origin inside the frame and cap the size at the far edges.

    The size is kept when the origin moves, so a box hanging off the left or
    top edge keeps its width or height unless the far edge caps it.
    """
    x, y, w, h = rect
    x = max(0, x)
    y = max(0, y)
    return x, y, min(w, frame_width - x), min(h, frame_height - y)


def crop(frame: np.ndarray, rect: Rect) -> np.ndarray:
    """Return the view of ``frame`` bounded by ``rect``."""
    x, y, w, h = rect
    return frame[y : y + h, x : x + w]


def iter_batches(iterable: Iterable, batch_size: int) -> Iterable[List]:
    """Yield successive batches from an iterable."""
    batch: List = []
    for item in iterable:
        batch.append(item)
        if len(batch) >= batch_size:
            yield batch
            batch = []
    if batch:
        yield batch
