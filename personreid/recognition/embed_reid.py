"""Appearance embedding extraction for person crops."""

from __future__ import annotations

import logging
from typing import List, Sequence

import cv2
import numpy as np

from personreid.inference.runtime import InferenceNet
from personreid.types import iter_batches, l2_normalize_rows

LOGGER = logging.getLogger("personreid.recognition.embed")

# ImageNet statistics in RGB order; applied reversed to BGR pixel data.
IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)
_BGR_MEAN = np.array(IMAGENET_MEAN[::-1], dtype=np.float32)
_BGR_STD = np.array(IMAGENET_STD[::-1], dtype=np.float32)


def preprocess(image: np.ndarray) -> np.ndarray:
    """Scale a BGR uint8 crop to [0, 1] and standardise each channel."""
    scaled = image.astype(np.float32) / 255.0
    return (scaled - _BGR_MEAN) / _BGR_STD


class ReIDEmbedder:
    """Runs a ReID network over crops and returns unit-length features."""

    def __init__(
        self,
        net: InferenceNet,
        resize_h: int = 256,
        resize_w: int = 128,
        batch_size: int = 1,
    ) -> None:
        self.net = net
        self.resize_h = resize_h
        self.resize_w = resize_w
        self.batch_size = batch_size
        LOGGER.info(
            "Initialised ReID embedder input=%dx%d batch_size=%d",
            resize_h,
            resize_w,
            batch_size,
        )

    def _embed_batch(self, images: Sequence[np.ndarray]) -> np.ndarray:
        prepared = [preprocess(image) for image in images]
        blob = cv2.dnn.blobFromImages(
            prepared,
            1.0,
            (self.resize_w, self.resize_h),
            (0.0, 0.0, 0.0),
            swapRB=True,
            crop=False,
            ddepth=cv2.CV_32F,
        )
        out = np.asarray(self.net.infer(blob), dtype=np.float32)
        return out.reshape(out.shape[0], -1)

    def embed(self, images: Sequence[np.ndarray]) -> List[np.ndarray]:
        """Compute L2-normalized features, one per image, in input order."""
        features: List[np.ndarray] = []
        for batch in iter_batches(images, self.batch_size):
            features.extend(l2_normalize_rows(self._embed_batch(batch), eps=0.0))
        return features
