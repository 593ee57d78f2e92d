from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DetectorConfig
from .detector import AnchorDetector
from .letterbox import prepare_input
from .metadata import load_labels
from .types import Detection
from .viewport import input_to_image_matrix, to_image_xyxy


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Walk up from `start` (default: cwd) to the first directory holding a marker.
    Falls back to `start` itself.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        if any((parent / m).exists() for m in markers):
            return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Absolute paths are returned as-is; relative ones resolve against `root`,
    or the project root when `root` is "auto"/None.
    """

    p = Path(path)
    if p.is_absolute():
        return p
    base = find_project_root() if root in ("auto", None) else Path(root).resolve()
    return (base / p).resolve()


@dataclass(frozen=True)
class ImageDetection:
    """A final detection together with its box in original image pixels."""

    detection: Detection
    label_name: str
    xyxy: Tuple[float, float, float, float]


class DetectionPipeline:
    """
    Preprocess (letterbox) -> inference -> anchor decode + NMS.

    `infer_fn` receives the NCHW blob and must return the raw per-anchor tensor.
    """

    def __init__(self, infer_fn: Callable[[np.ndarray], np.ndarray], detector: AnchorDetector, *, backend: Optional[object] = None):
        self._infer_fn = infer_fn
        self.detector = detector
        self.backend = backend

    @property
    def input_size(self) -> Tuple[int, int]:
        return self.detector.cfg.input_width, self.detector.cfg.input_height

    def __call__(self, image_bgr: np.ndarray) -> List[ImageDetection]:
        prep = prepare_input(image_bgr, self.input_size)
        raw = self._infer_fn(prep.blob)
        detections = self.detector.process(raw)

        matrix = input_to_image_matrix(self.input_size, prep.ratio, prep.pad)
        return [
            ImageDetection(
                detection=det,
                label_name=self.detector.label_of(det),
                xyxy=to_image_xyxy(det.rect, matrix, prep.orig_size),
            )
            for det in detections
        ]

    def close(self) -> None:
        self.detector.close()


def load_pipeline(
    model_path: PathLike,
    *,
    cfg: DetectorConfig = DetectorConfig(),
    labels_path: Optional[PathLike] = None,
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
) -> DetectionPipeline:
    """
    Build a pipeline around an ONNX model on disk.

    The model's static input shape overrides `cfg.input_width`/`cfg.input_height`
    so the anchor grid always matches the network.
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    resolved = resolve_path(model_path, root=root)
    backend = OnnxRuntimeBackend(resolved, OnnxRuntimeBackendConfig(providers=onnx_providers))
    logger.info("Loaded %s with providers %s", resolved.name, ", ".join(backend.providers_in_use))

    width, height = backend.input_size
    if (width, height) != (cfg.input_width, cfg.input_height):
        logger.info("Using model input size %dx%d from %s", width, height, resolved.name)
        cfg = dataclasses.replace(cfg, input_width=width, input_height=height)

    labels = load_labels(resolve_path(labels_path, root=root)) if labels_path is not None else None
    detector = AnchorDetector(cfg, labels=labels)
    return DetectionPipeline(backend.infer, detector, backend=backend)
