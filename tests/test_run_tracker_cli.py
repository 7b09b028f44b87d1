from pathlib import Path

import cv2
import numpy as np
import pytest

import scripts.run_tracker as run_tracker
from personreid.errors import LoadError, StreamError
from personreid.inference.runtime import load_network
from scripts.run_tracker import main, open_capture, open_writer, parse_args, resolve_config


class _NullNet:
    def infer(self, blob):
        return np.ones((blob.shape[0], 4), dtype=np.float32)


class _OneFrameCapture:
    def __init__(self):
        self.released = False
        self._frames = [np.zeros((120, 160, 3), dtype=np.uint8)]

    def read(self):
        if not self._frames:
            return False, None
        return True, self._frames.pop(0)

    def get(self, prop):
        return {cv2.CAP_PROP_FPS: 25.0, cv2.CAP_PROP_FRAME_WIDTH: 160, cv2.CAP_PROP_FRAME_HEIGHT: 120}.get(prop, 0.0)

    def release(self):
        self.released = True


class _CancellingDisplay:
    def __init__(self, window_name="TRACKING"):
        self.window_name = window_name
        self.closed = False

    def show(self, frame):
        return None

    def set_mouse_callback(self, callback, param=None):
        return None

    def poll_cancel(self):
        return True

    def close(self):
        self.closed = True


def _base_args(tmp_path, *extra):
    return ["--model", str(tmp_path / "reid.onnx"), "--yolo", str(tmp_path / "yolo.onnx"), *extra]


def test_defaults_follow_config_file(tmp_path):
    cfg = tmp_path / "tracker.yaml"
    cfg.write_text("batch_size: 8\nresize_h: 384\n", encoding="utf-8")
    args = parse_args(_base_args(tmp_path, "--config", str(cfg)))
    config = resolve_config(args)
    assert config.batch_size == 8
    assert config.resize_h == 384
    assert args.video == "vtest.avi"
    assert args.query is None


def test_cli_flags_beat_config_file(tmp_path):
    cfg = tmp_path / "tracker.yaml"
    cfg.write_text("batch_size: 8\nresize_h: 384\n", encoding="utf-8")
    args = parse_args(
        _base_args(tmp_path, "--config", str(cfg), "--batch_size", "2", "--resize-h", "256", "--backend", "3")
    )
    config = resolve_config(args)
    assert config.batch_size == 2
    assert config.resize_h == 256
    assert config.backend == 3


def test_missing_model_exits_with_error(tmp_path):
    args = _base_args(tmp_path, "--config", str(tmp_path / "none.yaml"), "--query", str(tmp_path / "q.png"), "--headless")
    assert main(args) == 1


def test_headless_without_query_is_rejected(tmp_path):
    assert main(_base_args(tmp_path, "--headless")) == 1


def test_query_path_is_parsed_as_path(tmp_path):
    args = parse_args(_base_args(tmp_path, "-q", "person.jpg"))
    assert args.query == Path("person.jpg")


def test_unopenable_video_raises_stream_error(tmp_path):
    with pytest.raises(StreamError):
        open_capture(str(tmp_path / "missing.avi"))


def test_unopenable_video_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.setattr(run_tracker, "load_network", lambda *args, **kwargs: _NullNet())
    args = _base_args(
        tmp_path,
        "--config",
        str(tmp_path / "none.yaml"),
        "--video",
        str(tmp_path / "missing.avi"),
        "--query",
        str(tmp_path / "q.png"),
        "--headless",
    )
    assert main(args) == 1


def test_cancelled_selection_exits_cleanly_and_releases(tmp_path, monkeypatch):
    capture = _OneFrameCapture()
    displays = []

    def _display(window_name):
        displays.append(_CancellingDisplay(window_name))
        return displays[-1]

    monkeypatch.setattr(run_tracker, "load_network", lambda *args, **kwargs: _NullNet())
    monkeypatch.setattr(run_tracker, "open_capture", lambda source: capture)
    monkeypatch.setattr(run_tracker, "WindowDisplay", _display)

    assert main(_base_args(tmp_path, "--config", str(tmp_path / "none.yaml"))) == 0
    assert capture.released
    assert len(displays) == 1 and displays[0].closed


@pytest.mark.parametrize("runtime", ["opencv", "onnxruntime"])
def test_corrupt_model_raises_load_error(tmp_path, runtime):
    if runtime == "onnxruntime":
        pytest.importorskip("onnxruntime")
    model = tmp_path / "broken.onnx"
    model.write_bytes(b"not a model")
    with pytest.raises(LoadError):
        load_network(model, runtime=runtime)


def test_unwritable_output_raises_stream_error(tmp_path):
    blocked = tmp_path / "annotated.mp4"
    blocked.mkdir()
    with pytest.raises(StreamError):
        open_writer(blocked, _OneFrameCapture())
