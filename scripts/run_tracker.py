#!/usr/bin/env python3
"""CLI for tracking one person through a video with YOLO detection and ReID matching."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import cv2

from personreid.config import TrackerConfig, apply_overrides, load_config
from personreid.detectors.person_yolo import YOLOPersonDetector
from personreid.errors import ConfigError, LoadError, SelectionCancelled, StreamError
from personreid.inference.runtime import RUNTIMES, load_network
from personreid.io_utils import ensure_dir, setup_logging, write_table
from personreid.recognition.embed_reid import ReIDEmbedder
from personreid.recognition.matcher import QueryMatcher
from personreid.selection.target_selector import acquire_query
from personreid.tracking.pipeline import TrackingLoop
from personreid.viz.display import HeadlessDisplay, WindowDisplay


LOGGER = logging.getLogger("scripts.run_tracker")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track a query person through a video with ReID matching")
    parser.add_argument("--model", "-m", type=Path, required=True, help="ReID embedding network file")
    parser.add_argument("--yolo", type=Path, required=True, help="YOLOv8 detector network file (e.g. yolov8n.onnx)")
    parser.add_argument(
        "--query",
        "-q",
        type=Path,
        default=None,
        help="Path to target image. Skip this argument to select the target in the first video frame.",
    )
    parser.add_argument("--video", "-v", type=str, default="vtest.avi", help="Video file path or camera index")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("configs/tracker.yaml"),
        help="Tracker configuration YAML",
    )
    parser.add_argument("--batch-size", "--batch_size", dest="batch_size", type=int, default=None)
    parser.add_argument("--resize-h", "--resize_h", dest="resize_h", type=int, default=None, help="ReID input height")
    parser.add_argument("--resize-w", "--resize_w", dest="resize_w", type=int, default=None, help="ReID input width")
    parser.add_argument("--runtime", choices=RUNTIMES, default=None, help="Inference runtime")
    parser.add_argument("--backend", type=int, default=None, help="OpenCV DNN backend id (0 = automatic)")
    parser.add_argument("--target", type=int, default=None, help="OpenCV DNN target device id (0 = CPU)")
    parser.add_argument(
        "--providers",
        type=str,
        nargs="*",
        default=None,
        help="ONNX execution providers (overrides platform defaults)",
    )
    parser.add_argument("--output", type=Path, default=None, help="Optional annotated mp4 output path")
    parser.add_argument("--results", type=Path, default=None, help="Optional per-frame results (.csv or .parquet)")
    parser.add_argument("--headless", action="store_true", help="Run without a window (requires --query)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> TrackerConfig:
    """CLI flags override YAML values, which override built-in defaults."""
    config = load_config(args.config)
    return apply_overrides(
        config,
        batch_size=args.batch_size,
        resize_h=args.resize_h,
        resize_w=args.resize_w,
        runtime=args.runtime,
        backend=args.backend,
        target=args.target,
        providers=args.providers,
    )


def open_capture(source: str) -> cv2.VideoCapture:
    cap = cv2.VideoCapture(int(source) if source.isdigit() else source)
    if not cap.isOpened():
        raise StreamError(f"Unable to open video {source}")
    return cap


def open_writer(path: Path, cap: cv2.VideoCapture) -> cv2.VideoWriter:
    ensure_dir(path.parent)
    fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
    width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
    height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
    writer = cv2.VideoWriter(str(path), fourcc, fps, (width, height))
    if not writer.isOpened():
        writer.release()
        raise StreamError(f"Unable to open output video {path}")
    LOGGER.info("Writing annotated video to %s (%.2f fps, %dx%d)", path, fps, width, height)
    return writer


def run(args: argparse.Namespace) -> int:
    if args.headless and args.query is None:
        raise ConfigError("--headless needs --query because target selection requires a window")

    config = resolve_config(args)
    LOGGER.info(
        "Runtime config: runtime=%s backend=%d target=%d reid_input=%dx%d batch_size=%d",
        config.runtime,
        config.backend,
        config.target,
        config.resize_h,
        config.resize_w,
        config.batch_size,
    )

    reid_net = load_network(args.model, config.runtime, config.backend, config.target, config.providers)
    yolo_net = load_network(args.yolo, config.runtime, config.backend, config.target, config.providers)
    embedder = ReIDEmbedder(reid_net, config.resize_h, config.resize_w, config.batch_size)
    detector = YOLOPersonDetector(
        yolo_net,
        input_size=config.detector_input_size,
        conf_thres=config.conf_threshold,
        iou_thres=config.nms_threshold,
        person_class_id=config.person_class_id,
    )

    display = HeadlessDisplay() if args.headless else WindowDisplay(config.window_name)
    cap = open_capture(args.video)
    writer = None
    try:
        query_crop = acquire_query(args.query, cap, display)
        matcher = QueryMatcher(embedder.embed([query_crop]))
        if args.output is not None:
            writer = open_writer(args.output, cap)

        loop = TrackingLoop(
            detector,
            embedder,
            matcher,
            display,
            writer=writer,
            target_label=config.target_label,
            progress_every=config.progress_every,
            record_results=args.results is not None,
        )
        summary = loop.run(cap)
    finally:
        cap.release()
        if writer is not None:
            writer.release()
        display.close()

    if args.results is not None:
        write_table(args.results, (result.to_dict() for result in summary.results))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        return run(args)
    except SelectionCancelled as exc:
        LOGGER.info("%s; exiting without tracking", exc)
        return 0
    except (StreamError, LoadError, ConfigError) as exc:
        LOGGER.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
