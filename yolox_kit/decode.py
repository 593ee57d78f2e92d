from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .buffers import DetectionBuffer
from .errors import CapacityExceededError


logger = logging.getLogger(__name__)

# Per-anchor record: dx, dy, dw, dh, objectness, then one score per class.
RECORD_HEADER = 5

ChunkResult = Tuple[np.ndarray, np.ndarray, np.ndarray]


def default_workers() -> int:
    return min(8, os.cpu_count() or 1)


def decode_pixels(records: np.ndarray, anchors: np.ndarray) -> np.ndarray:
    """
    Decode box geometry in model input pixels.

    Args:
        records: (N, 5 + C) float32 raw records
        anchors: (N, 3) int32 [grid_x, grid_y, stride] matching `records` row for row

    Returns (N, 4) float32 as cx, cy, w, h.
    """

    grid = anchors[:, 0:2].astype(np.float32)
    stride = anchors[:, 2:3].astype(np.float32)

    out = np.empty((records.shape[0], 4), dtype=np.float32)
    out[:, 0:2] = (records[:, 0:2] + grid) * stride
    out[:, 2:4] = np.exp(records[:, 2:4]) * stride
    return out


def normalize(boxes_px: np.ndarray, width: int, height: int) -> np.ndarray:
    """Scale pixel cx, cy, w, h into normalized [0, 1] input space."""

    scale = np.array([width, height, width, height], dtype=np.float32)
    return boxes_px / scale


def decode_chunk(
    feat: np.ndarray,
    anchors: np.ndarray,
    start: int,
    stop: int,
    num_classes: int,
    width: int,
    height: int,
    prob_threshold: float,
) -> ChunkResult:
    """
    Decode anchors `[start, stop)` and return the accepted candidates.

    Each anchor whose center falls outside [0, 1] x [0, 1] is discarded before
    any class is scored. Every class with objectness * class_score strictly above
    `prob_threshold` yields one candidate.

    Returns (labels int32 (M,), rects float32 (M, 4) as x, y, w, h, probs float32 (M,)).
    """

    records = feat[start:stop]
    boxes = normalize(decode_pixels(records, anchors[start:stop]), width, height)

    cx = boxes[:, 0]
    cy = boxes[:, 1]
    inside = (cx >= 0) & (cx <= 1) & (cy >= 0) & (cy <= 1)

    objectness = records[:, 4:5]
    class_scores = records[:, RECORD_HEADER:RECORD_HEADER + num_classes]
    probs = objectness * class_scores
    accepted = (probs > np.float32(prob_threshold)) & inside[:, None]

    # Row-major nonzero keeps anchor order, then class order within an anchor.
    rows, labels = np.nonzero(accepted)

    rects = np.empty((rows.shape[0], 4), dtype=np.float32)
    rects[:, 0] = boxes[rows, 0] - boxes[rows, 2] * np.float32(0.5)
    rects[:, 1] = boxes[rows, 1] - boxes[rows, 3] * np.float32(0.5)
    rects[:, 2] = boxes[rows, 2]
    rects[:, 3] = boxes[rows, 3]

    return labels.astype(np.int32), rects, probs[rows, labels].astype(np.float32, copy=False)


@dataclass(frozen=True)
class DecoderConfig:
    num_classes: int
    width: int
    height: int
    chunk_size: int = 64
    workers: Optional[int] = None

    def __post_init__(self) -> None:
        if self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if self.workers is not None and self.workers < 0:
            raise ValueError("workers must be >= 0")

    @property
    def record_width(self) -> int:
        return RECORD_HEADER + self.num_classes


class ProposalDecoder:
    """
    Data-parallel decode of a raw per-anchor tensor.

    The anchor range is split into `chunk_size` blocks. Each block is decoded on
    the worker pool into its own local result; the results are merged into the
    destination buffer in block order once every block has finished, so no two
    workers ever write the same storage.
    """

    def __init__(self, anchors: np.ndarray, cfg: DecoderConfig):
        self.anchors = anchors
        self.cfg = cfg
        workers = default_workers() if cfg.workers is None else cfg.workers
        self.workers = workers
        self._pool: Optional[ThreadPoolExecutor] = None
        if workers > 1:
            self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="yolox-decode")

    @property
    def expected_size(self) -> int:
        return int(self.anchors.shape[0]) * self.cfg.record_width

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def chunks(self) -> List[Tuple[int, int]]:
        n = int(self.anchors.shape[0])
        step = self.cfg.chunk_size
        return [(start, min(start + step, n)) for start in range(0, n, step)]

    def as_records(self, feat: np.ndarray) -> np.ndarray:
        """
        View the tensor as (num_anchors, 5 + C) records. Any shape that flattens to
        num_anchors * (5 + C) values is accepted, e.g. (1, N, 5 + C).
        """

        flat = np.asarray(feat).reshape(-1)
        if flat.size != self.expected_size:
            raise ValueError(
                f"Tensor has {flat.size} values, expected {self.expected_size} "
                f"({self.anchors.shape[0]} anchors x {self.cfg.record_width})."
            )
        return flat.reshape(-1, self.cfg.record_width)

    def decode(self, records: np.ndarray, prob_threshold: float, out: DetectionBuffer) -> int:
        """
        Decode every anchor and append the accepted candidates to `out`.

        `out` is cleared first. Blocks until all work units finish.
        Returns the number of candidates the decode produced (before any overflow drop).
        """

        out.clear()
        cfg = self.cfg
        args = (cfg.num_classes, cfg.width, cfg.height, float(prob_threshold))

        spans = self.chunks()
        if self._pool is None or len(spans) <= 1:
            results = [decode_chunk(records, self.anchors, start, stop, *args) for start, stop in spans]
        else:
            futures = [
                self._pool.submit(decode_chunk, records, self.anchors, start, stop, *args) for start, stop in spans
            ]
            # Join barrier: every block must finish before anything is merged.
            results = [f.result() for f in futures]

        produced = 0
        try:
            for labels, rects, probs in results:
                produced += int(probs.shape[0])
                out.extend(labels, rects, probs)
        except CapacityExceededError:
            # A partial cycle is never exposed.
            out.clear()
            raise

        if out.dropped:
            logger.warning(
                "Candidate buffer full (capacity=%d): decoded %d, dropped %d lowest-probability candidates",
                out.capacity,
                produced,
                out.dropped,
            )
        return produced
