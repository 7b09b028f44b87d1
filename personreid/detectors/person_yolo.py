"""YOLOv8 person detector on top of a raw inference network."""

from __future__ import annotations

import logging
from typing import List, Tuple

import cv2
import numpy as np

from personreid.inference.runtime import InferenceNet
from personreid.types import Detection, FrameCandidates, Rect, clamp_rect, crop

LOGGER = logging.getLogger("personreid.detectors.person")


def letterbox(frame: np.ndarray, input_size: int) -> Tuple[np.ndarray, float]:
    """Pad ``frame`` into a square canvas anchored at the top-left corner.

    Returns the canvas and the factor mapping detector input pixels back to
    canvas (and therefore original frame) pixels.
    """
    height, width = frame.shape[:2]
    side = max(height, width)
    canvas = np.zeros((side, side) + frame.shape[2:], dtype=frame.dtype)
    canvas[:height, :width] = frame
    return canvas, side / float(input_size)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, with .5 going away from zero."""
    return int(np.sign(value) * np.floor(abs(value) + 0.5))


def decode_output(
    output: np.ndarray,
    conf_threshold: float,
    class_id: int,
) -> Tuple[List[List[float]], List[float]]:
    """Turn raw YOLOv8 output into top-left boxes and scores for one class."""
    pred = np.asarray(output, dtype=np.float32)
    if pred.ndim == 3:
        pred = pred[0]
    if pred.ndim != 2 or pred.shape[0] < 5:
        LOGGER.warning("Unexpected detector output shape %s", np.asarray(output).shape)
        return [], []
    # (4 + classes, anchors) -> (anchors, 4 + classes)
    pred = pred.T

    class_scores = pred[:, 4:]
    best_class = class_scores.argmax(axis=1)
    best_score = class_scores[np.arange(class_scores.shape[0]), best_class]
    keep = (best_score >= conf_threshold) & (best_class == class_id)

    boxes: List[List[float]] = []
    scores: List[float] = []
    for row, score in zip(pred[keep], best_score[keep]):
        cx, cy, w, h = (float(v) for v in row[:4])
        boxes.append([cx - 0.5 * w, cy - 0.5 * h, w, h])
        scores.append(float(score))
    return boxes, scores


class YOLOPersonDetector:
    """Letterbox, infer, decode, suppress and crop person candidates."""

    def __init__(
        self,
        net: InferenceNet,
        input_size: int = 640,
        conf_thres: float = 0.25,
        iou_thres: float = 0.45,
        person_class_id: int = 0,
    ) -> None:
        self.net = net
        self.input_size = input_size
        self.conf_thres = conf_thres
        self.iou_thres = iou_thres
        self.person_class_id = person_class_id
        LOGGER.info(
            "Initialised YOLO person detector input=%d conf=%.2f iou=%.2f",
            input_size,
            conf_thres,
            iou_thres,
        )

    def _infer(self, frame: np.ndarray) -> Tuple[np.ndarray, float]:
        canvas, scale = letterbox(frame, self.input_size)
        blob = cv2.dnn.blobFromImage(
            canvas,
            1.0 / 255.0,
            (self.input_size, self.input_size),
            (0.0, 0.0, 0.0),
            swapRB=True,
            crop=False,
            ddepth=cv2.CV_32F,
        )
        return self.net.infer(blob), scale

    def detect_boxes(self, frame: np.ndarray) -> List[Detection]:
        """Person boxes in original frame coordinates, in NMS output order."""
        output, scale = self._infer(frame)
        boxes, scores = decode_output(output, self.conf_thres, self.person_class_id)
        if not boxes:
            return []

        indexes = cv2.dnn.NMSBoxes(boxes, scores, self.conf_thres, self.iou_thres)
        height, width = frame.shape[:2]
        detections: List[Detection] = []
        for index in np.asarray(indexes, dtype=np.int64).reshape(-1):
            x, y, w, h = (round_half_away(v * scale) for v in boxes[index])
            rect: Rect = clamp_rect((x, y, w, h), width, height)
            if rect[2] <= 0 or rect[3] <= 0:
                LOGGER.debug("Dropping box %s outside frame %dx%d", (x, y, w, h), width, height)
                continue
            detections.append(
                Detection(rect=rect, score=scores[index], class_id=self.person_class_id)
            )
        return detections

    def detect(self, frame: np.ndarray) -> FrameCandidates:
        """Crop every surviving person box out of ``frame``."""
        candidates = FrameCandidates()
        for det in self.detect_boxes(frame):
            candidates.add(crop(frame, det.rect), det.rect, det.score)
        return candidates
