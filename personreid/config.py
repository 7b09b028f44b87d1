"""Tracker configuration: dataclass defaults layered under YAML and CLI values."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional, Sequence

from personreid.errors import ConfigError
from personreid.io_utils import load_yaml

LOGGER = logging.getLogger("personreid.config")


@dataclass(frozen=True)
class TrackerConfig:
    # Embedding network input (height, width)
    resize_h: int = 256
    resize_w: int = 128
    batch_size: int = 1
    # Detector
    detector_input_size: int = 640
    conf_threshold: float = 0.25
    nms_threshold: float = 0.45
    person_class_id: int = 0
    # Inference runtime passthrough
    runtime: str = "opencv"
    backend: int = 0
    target: int = 0
    providers: Optional[Sequence[str]] = None
    # Display
    window_name: str = "TRACKING"
    target_label: str = "Target"
    progress_every: int = 100

    def validate(self) -> "TrackerConfig":
        for name in ("resize_h", "resize_w", "batch_size", "detector_input_size", "progress_every"):
            value = getattr(self, name)
            if int(value) < 1:
                raise ConfigError(f"{name} must be >= 1 (got {value})")
        for name in ("conf_threshold", "nms_threshold"):
            value = getattr(self, name)
            if not 0.0 <= float(value) <= 1.0:
                raise ConfigError(f"{name} must lie in [0, 1] (got {value})")
        return self


def load_config(path: Optional[Path]) -> TrackerConfig:
    """Overlay YAML keys on the dataclass defaults."""
    config = TrackerConfig()
    if path is None or not path.exists():
        if path is not None:
            LOGGER.info("Config %s not found; using built-in defaults", path)
        return config
    data = load_yaml(path)
    known = {f.name for f in fields(TrackerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        LOGGER.warning("Ignoring unknown config keys in %s: %s", path, unknown)
    values = {key: value for key, value in data.items() if key in known}
    return apply_overrides(config, **values)


def apply_overrides(config: TrackerConfig, **values: Any) -> TrackerConfig:
    """Return a copy of ``config`` with every non-None value applied."""
    updates = {key: value for key, value in values.items() if value is not None}
    if "providers" in updates:
        updates["providers"] = tuple(updates["providers"])
    return replace(config, **updates).validate()
