"""I/O helpers shared across CLI entrypoints and pipeline modules."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable

import cv2
import numpy as np
import pandas as pd
import yaml

from personreid.errors import LoadError

LOGGER = logging.getLogger("personreid.io")


def ensure_dir(path: Path) -> Path:
    """Create directory (and parents) if it does not exist."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    LOGGER.debug("Loaded YAML config %s -> keys=%s", path, list(data.keys()))
    return data


def load_image(path: Path) -> np.ndarray:
    """Decode a BGR image, raising ``LoadError`` when nothing comes back."""
    if not path.exists():
        raise LoadError(f"Query image not found: {path}")
    image = cv2.imread(str(path))
    if image is None or image.size == 0:
        raise LoadError(f"Query image could not be decoded: {path}")
    return image


def write_table(path: Path, rows: Iterable[Dict[str, Any]]) -> Path:
    """Write result rows as parquet (by suffix) or CSV."""
    ensure_dir(path.parent)
    df = pd.DataFrame(list(rows))
    if path.suffix.lower() == ".parquet":
        df.to_parquet(path, index=False)
    else:
        df.to_csv(path, index=False)
    LOGGER.info("Wrote %d rows to %s", len(df), path)
    return path


def setup_logging(level: int = logging.INFO) -> None:
    """Configure application logging if not already configured."""
    if logging.getLogger().handlers:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
