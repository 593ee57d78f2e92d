from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .anchors import DEFAULT_STRIDES
from .buffers import OVERFLOW_POLICIES
from .errors import ConfigurationError


@dataclass(frozen=True)
class DetectorConfig:
    """
    Settings for `AnchorDetector`.

    Thresholds are compared strictly: a candidate needs probability > prob_threshold,
    and a box is suppressed only when IoU > nms_threshold.
    """

    prob_threshold: float = 0.3
    nms_threshold: float = 0.45
    num_classes: int = 26
    input_width: int = 640
    input_height: int = 640
    strides: Tuple[int, ...] = field(default=DEFAULT_STRIDES)
    max_candidates: int = 100
    max_detections: int = 100
    chunk_size: int = 64
    # None picks a pool size from the CPU count; 0 or 1 decodes on the caller thread.
    workers: Optional[int] = None
    overflow: str = "drop_lowest"

    def __post_init__(self) -> None:
        if not (0.0 <= self.prob_threshold <= 1.0):
            raise ConfigurationError("prob_threshold must be within [0, 1]")
        if not (0.0 <= self.nms_threshold <= 1.0):
            raise ConfigurationError("nms_threshold must be within [0, 1]")
        if self.num_classes < 1:
            raise ConfigurationError("num_classes must be >= 1")
        if self.max_candidates < 1:
            raise ConfigurationError("max_candidates must be >= 1")
        if self.max_detections < 1:
            raise ConfigurationError("max_detections must be >= 1")
        if self.chunk_size < 1:
            raise ConfigurationError("chunk_size must be >= 1")
        if self.workers is not None and self.workers < 0:
            raise ConfigurationError("workers must be >= 0")
        if not self.strides or any(s < 1 for s in self.strides):
            raise ConfigurationError("strides must be a non-empty list of positive integers")
        if self.overflow not in OVERFLOW_POLICIES:
            raise ConfigurationError(f"overflow must be one of {OVERFLOW_POLICIES}")

    @property
    def record_width(self) -> int:
        return 5 + self.num_classes


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer")
    return int(value)


_FLOAT_KEYS = {"prob_threshold", "nms_threshold"}
_INT_KEYS = {"num_classes", "input_width", "input_height", "max_candidates", "max_detections", "chunk_size"}


def detector_config_from_dict(payload: Dict[str, Any]) -> DetectorConfig:
    allowed = _FLOAT_KEYS | _INT_KEYS | {"strides", "workers", "overflow"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ConfigurationError(f"Unknown detector config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in _FLOAT_KEYS & payload.keys():
        kwargs[key] = _require_number(payload, key)
    for key in _INT_KEYS & payload.keys():
        kwargs[key] = _require_int(payload, key)

    if "strides" in payload:
        strides = payload["strides"]
        if not isinstance(strides, list) or not all(isinstance(s, int) and not isinstance(s, bool) for s in strides):
            raise ConfigurationError("strides must be a list of integers")
        kwargs["strides"] = tuple(strides)
    if payload.get("workers") is not None:
        kwargs["workers"] = _require_int(payload, "workers")
    if "overflow" in payload:
        if not isinstance(payload["overflow"], str):
            raise ConfigurationError("overflow must be a string")
        kwargs["overflow"] = payload["overflow"]

    return DetectorConfig(**kwargs)


def load_detector_config(path: Path) -> DetectorConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid detector config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Detector config must be a JSON object")
    return detector_config_from_dict(payload)
