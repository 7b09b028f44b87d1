"""Network runtimes hidden behind a single ``infer(blob) -> output`` call."""

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from personreid.errors import LoadError

LOGGER = logging.getLogger("personreid.inference")

RUNTIMES = ("opencv", "onnxruntime")


class InferenceNet(Protocol):
    def infer(self, blob: np.ndarray) -> np.ndarray:
        ...


def _default_providers() -> Tuple[str, ...]:
    """Choose default ONNX providers based on platform."""
    system = platform.system()
    machine = platform.machine().lower()
    if system == "Darwin" and machine in {"arm64", "aarch64"}:
        return ("CoreMLExecutionProvider", "CPUExecutionProvider")
    return ("CPUExecutionProvider",)


class OpenCVNet:
    """OpenCV DNN module network with a preferred backend and target."""

    def __init__(self, model_path: str, backend: int = 0, target: int = 0) -> None:
        self.net = cv2.dnn.readNet(model_path)
        self.net.setPreferableBackend(backend)
        self.net.setPreferableTarget(target)
        self.backend = backend
        self.target = target
        LOGGER.info("Loaded OpenCV DNN model %s backend=%d target=%d", model_path, backend, target)

    def infer(self, blob: np.ndarray) -> np.ndarray:
        self.net.setInput(blob)
        return np.asarray(self.net.forward())


class OnnxRuntimeNet:
    """ONNX Runtime session exposing the first input and first output."""

    def __init__(self, model_path: str, providers: Optional[Sequence[str]] = None) -> None:
        try:
            import onnxruntime as ort
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "onnxruntime is required for the onnxruntime runtime. "
                "Install it via `pip install onnxruntime`."
            ) from exc

        provider_list = tuple(providers) if providers else _default_providers()
        available = set(ort.get_available_providers())
        usable = [p for p in provider_list if p in available] or ["CPUExecutionProvider"]
        self.session = ort.InferenceSession(model_path, providers=usable)
        self.input_name = self.session.get_inputs()[0].name
        self.providers = tuple(self.session.get_providers())
        LOGGER.info("Loaded ONNX Runtime model %s providers=%s", model_path, self.providers)

    def infer(self, blob: np.ndarray) -> np.ndarray:
        outputs = self.session.run(None, {self.input_name: blob.astype(np.float32)})
        return np.asarray(outputs[0])


def load_network(
    model_path: Path,
    runtime: str = "opencv",
    backend: int = 0,
    target: int = 0,
    providers: Optional[Sequence[str]] = None,
) -> InferenceNet:
    if not model_path.exists():
        raise LoadError(f"Model file not found: {model_path}")
    if runtime == "opencv":
        try:
            return OpenCVNet(str(model_path), backend=backend, target=target)
        except cv2.error as exc:
            raise LoadError(f"OpenCV could not read model {model_path}: {exc}") from exc
    if runtime == "onnxruntime":
        try:
            return OnnxRuntimeNet(str(model_path), providers=providers)
        except Exception as exc:
            raise LoadError(f"ONNX Runtime could not load model {model_path}: {exc}") from exc
    raise LoadError(f"Unknown runtime {runtime!r}; expected one of {RUNTIMES}")
