"""Per-frame detect, embed, match and annotate loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from personreid.recognition.matcher import QueryMatcher
from personreid.types import FrameResult
from personreid.viz.overlay import TRACKING_STATUS, draw_status, draw_target

LOGGER = logging.getLogger("personreid.tracking")


@dataclass
class TrackingSummary:
    frames_processed: int = 0
    frames_matched: int = 0
    cancelled: bool = False
    results: List[FrameResult] = field(default_factory=list)

    @property
    def match_rate(self) -> float:
        if not self.frames_processed:
            return 0.0
        return self.frames_matched / self.frames_processed


class TrackingLoop:
    """Matches every frame independently against a fixed query embedding."""

    def __init__(
        self,
        detector,
        embedder,
        matcher: QueryMatcher,
        display,
        writer=None,
        target_label: str = "Target",
        progress_every: int = 100,
        record_results: bool = False,
    ) -> None:
        self.detector = detector
        self.embedder = embedder
        self.matcher = matcher
        self.display = display
        self.writer = writer
        self.target_label = target_label
        self.progress_every = max(1, int(progress_every))
        # Per-frame rows are kept only when a results table was requested.
        self.record_results = record_results

    def process_frame(self, frame: np.ndarray, frame_idx: int) -> FrameResult:
        """Run the pipeline on one frame and draw the outcome onto it."""
        candidates = self.detector.detect(frame)
        features = self.embedder.embed(candidates.crops) if len(candidates) else []
        match = self.matcher.match(features)

        result = FrameResult(frame_idx=frame_idx, num_candidates=len(candidates))
        if match is not None:
            result.rect = candidates.rect_for(match.index)
            result.similarity = match.similarity
            draw_target(frame, result.rect, self.target_label)
        LOGGER.debug(
            "Frame %d: candidates=%d match=%s similarity=%s",
            frame_idx,
            result.num_candidates,
            result.rect,
            f"{result.similarity:.3f}" if result.similarity is not None else "n/a",
        )
        draw_status(frame, TRACKING_STATUS)
        return result

    def run(self, capture) -> TrackingSummary:
        summary = TrackingSummary()
        frame_idx = -1
        while True:
            ret, frame = capture.read()
            if not ret or frame is None:
                break
            frame_idx += 1

            result = self.process_frame(frame, frame_idx)
            if self.record_results:
                summary.results.append(result)
            summary.frames_processed += 1
            if result.matched:
                summary.frames_matched += 1

            if self.writer is not None:
                self.writer.write(frame)
            self.display.show(frame)
            if summary.frames_processed % self.progress_every == 0:
                LOGGER.info(
                    "Tracking progress: %d frames processed, %d matched",
                    summary.frames_processed,
                    summary.frames_matched,
                )
            if self.display.poll_cancel():
                LOGGER.info("Tracking cancelled by user at frame %d", frame_idx)
                summary.cancelled = True
                break

        LOGGER.info(
            "Tracking finished: frames=%d matched=%d (%.1f%%) cancelled=%s",
            summary.frames_processed,
            summary.frames_matched,
            summary.match_rate * 100.0,
            summary.cancelled,
        )
        return summary
