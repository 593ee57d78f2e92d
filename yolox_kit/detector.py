"""
Anchor-grid detector for YOLOX-style heads.

Per cycle: decode every anchor in parallel -> sort candidates by probability ->
class-agnostic greedy NMS. The anchor grid and both candidate buffers are built
once and reused for every frame.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from .anchors import generate_anchors
from .buffers import DetectionBuffer
from .config import DetectorConfig
from .decode import DecoderConfig, ProposalDecoder
from .errors import ConfigurationError
from .nms import NMSConfig, nms, sort_by_probability
from .types import Detection


logger = logging.getLogger(__name__)


class AnchorDetector:
    """
    Owns the anchor grid, the unsorted candidate buffer and the final detection
    buffer. Not safe to call `process` from several threads at once.
    """

    def __init__(self, cfg: DetectorConfig = DetectorConfig(), labels: Optional[Sequence[str]] = None):
        self.cfg = cfg

        if labels is not None:
            names = tuple(str(label) for label in labels)
            if len(names) != cfg.num_classes:
                raise ConfigurationError(
                    f"Label list has {len(names)} entries but the model has {cfg.num_classes} classes"
                )
            self.label_names: Optional[Tuple[str, ...]] = names
        else:
            self.label_names = None

        self.anchors = generate_anchors(cfg.input_width, cfg.input_height, cfg.strides)
        self.anchors.flags.writeable = False

        self.decoder = ProposalDecoder(
            self.anchors,
            DecoderConfig(
                num_classes=cfg.num_classes,
                width=cfg.input_width,
                height=cfg.input_height,
                chunk_size=cfg.chunk_size,
                workers=cfg.workers,
            ),
        )
        self._nms_cfg = NMSConfig(iou_threshold=cfg.nms_threshold, max_detections=cfg.max_detections)

        self._proposals = DetectionBuffer(cfg.max_candidates, overflow=cfg.overflow)
        self._detections = DetectionBuffer(cfg.max_detections)
        self._staging: Optional[np.ndarray] = None
        self._cached: Optional[Tuple[Detection, ...]] = None

        logger.info(
            "AnchorDetector ready: input=%dx%d anchors=%d classes=%d workers=%d",
            cfg.input_width,
            cfg.input_height,
            self.anchors.shape[0],
            cfg.num_classes,
            self.decoder.workers,
        )

    def close(self) -> None:
        self.decoder.close()

    def __enter__(self) -> "AnchorDetector":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def num_anchors(self) -> int:
        return int(self.anchors.shape[0])

    @property
    def detections(self) -> Tuple[Detection, ...]:
        """
        Final detections of the latest cycle, by descending probability.
        Replaced on the next call to `process`.
        """

        if self._cached is None:
            self._cached = self._detections.to_detections()
        return self._cached

    @property
    def candidates(self) -> Tuple[Detection, ...]:
        """Unsorted decoded candidates of the latest cycle."""
        return self._proposals.to_detections()

    def detection_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Read-only (labels, rects, probs) views of the final detections."""
        return self._detections.arrays()

    def label_of(self, det: Detection) -> str:
        if self.label_names is None:
            return str(det.label)
        return self.label_names[det.label]

    def process(self, output: np.ndarray) -> Tuple[Detection, ...]:
        """
        Run one decode cycle over the raw network output.

        Args:
            output: raw tensor holding num_anchors * (5 + num_classes) values,
                anchor-major, e.g. shaped (1, N, 5 + C)
        """

        flat = np.asarray(output).reshape(-1)
        if flat.size != self.decoder.expected_size:
            raise ValueError(
                f"Output has {flat.size} values, expected {self.decoder.expected_size} "
                f"({self.num_anchors} anchors x {self.cfg.record_width})."
            )

        self._cached = None
        self._detections.clear()

        if self._staging is None:
            self._staging = np.empty(flat.shape, dtype=np.float32)
        np.copyto(self._staging, flat, casting="unsafe")
        records = self.decoder.as_records(self._staging)

        produced = self.decoder.decode(records, self.cfg.prob_threshold, self._proposals)

        labels, rects, probs = self._proposals.arrays()
        order = sort_by_probability(probs)
        keep = order[nms(rects[order], self._nms_cfg)]
        self._detections.assign(labels[keep], rects[keep], probs[keep])

        logger.debug(
            "cycle: candidates=%d stored=%d detections=%d",
            produced,
            len(self._proposals),
            len(self._detections),
        )
        return self.detections
