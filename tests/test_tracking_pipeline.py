import numpy as np
import pytest

from personreid.recognition.embed_reid import ReIDEmbedder
from personreid.recognition.matcher import QueryMatcher
from personreid.tracking.pipeline import TrackingLoop
from personreid.types import FrameCandidates, crop

PEOPLE = [(200, 100, 40, 80), (300, 100, 40, 80), (400, 100, 40, 80)]
COLORS = [(200, 30, 30), (30, 200, 30), (30, 30, 200)]


class _ChannelMeanNet:
    def infer(self, blob):
        return blob.reshape(blob.shape[0], blob.shape[1], -1).mean(axis=2)


class _FixedBoxDetector:
    """Emits a candidate for every configured rectangle."""

    def __init__(self, rects):
        self.rects = rects

    def detect(self, frame):
        candidates = FrameCandidates()
        for rect in self.rects:
            candidates.add(crop(frame, rect), rect, 0.9)
        return candidates


class _ListCapture:
    def __init__(self, frames):
        self._frames = list(frames)

    def read(self):
        if not self._frames:
            return False, None
        return True, self._frames.pop(0)


class _RecordingDisplay:
    def __init__(self, cancel_after=None):
        self.cancel_after = cancel_after
        self.shown = []

    def show(self, frame):
        self.shown.append(frame.copy())

    def poll_cancel(self):
        return self.cancel_after is not None and len(self.shown) >= self.cancel_after


class _RecordingWriter:
    def __init__(self):
        self.frames = []

    def write(self, frame):
        self.frames.append(frame)


def _scene():
    frame = np.full((300, 500, 3), 90, dtype=np.uint8)
    for (x, y, w, h), color in zip(PEOPLE, COLORS):
        frame[y : y + h, x : x + w] = color
    return frame


def _loop(query_crop, display, detector=None, writer=None, record_results=True):
    embedder = ReIDEmbedder(_ChannelMeanNet(), resize_h=32, resize_w=16)
    matcher = QueryMatcher(embedder.embed([query_crop]))
    return TrackingLoop(
        detector or _FixedBoxDetector(PEOPLE),
        embedder,
        matcher,
        display,
        writer=writer,
        record_results=record_results,
    )


def test_identical_query_crop_is_selected():
    frame = _scene()
    query = crop(frame, PEOPLE[1]).copy()
    summary = _loop(query, _RecordingDisplay()).run(_ListCapture([frame]))

    assert summary.frames_processed == 1
    result = summary.results[0]
    assert result.num_candidates == 3
    assert result.rect == PEOPLE[1]
    assert result.similarity == pytest.approx(1.0, abs=1e-5)


def test_matched_frame_is_annotated_in_red():
    display = _RecordingDisplay()
    query = crop(_scene(), PEOPLE[2]).copy()
    _loop(query, display).run(_ListCapture([_scene()]))
    x, y, _, _ = PEOPLE[2]
    assert tuple(display.shown[0][y, x]) == (0, 0, 255)


def test_frames_without_people_are_shown_unannotated():
    display = _RecordingDisplay()
    query = crop(_scene(), PEOPLE[0]).copy()
    loop = _loop(query, display, detector=_FixedBoxDetector([]))
    summary = loop.run(_ListCapture([_scene(), _scene()]))

    assert summary.frames_processed == 2
    assert summary.frames_matched == 0
    assert all(result.rect is None and result.similarity is None for result in summary.results)
    assert len(display.shown) == 2
    x, y, _, _ = PEOPLE[0]
    assert tuple(display.shown[0][y, x]) == COLORS[0]


def test_cancel_stops_after_current_frame():
    writer = _RecordingWriter()
    query = crop(_scene(), PEOPLE[0]).copy()
    loop = _loop(query, _RecordingDisplay(cancel_after=1), writer=writer)
    summary = loop.run(_ListCapture([_scene(), _scene(), _scene()]))

    assert summary.cancelled
    assert summary.frames_processed == 1
    assert len(writer.frames) == 1


def test_query_stays_fixed_across_frames():
    query = crop(_scene(), PEOPLE[0]).copy()
    loop = _loop(query, _RecordingDisplay())
    before = [vec.copy() for vec in loop.matcher.query]

    # the query person leaves after the first frame
    second = _scene()
    second[100:180, 200:240] = 90
    summary = loop.run(_ListCapture([_scene(), second]))

    for old, new in zip(before, loop.matcher.query):
        np.testing.assert_array_equal(old, new)
    assert summary.results[0].rect == PEOPLE[0]
    assert summary.results[1].rect is not None
    assert summary.results[1].similarity < summary.results[0].similarity
    assert summary.match_rate == 1.0


def test_per_frame_rows_are_not_kept_unless_requested():
    query = crop(_scene(), PEOPLE[1]).copy()
    loop = _loop(query, _RecordingDisplay(), record_results=False)
    summary = loop.run(_ListCapture([_scene() for _ in range(50)]))

    assert summary.frames_processed == 50
    assert summary.frames_matched == 50
    assert summary.results == []
