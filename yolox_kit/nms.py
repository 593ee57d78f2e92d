from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    max_detections: int = 100


def sort_by_probability(probs: np.ndarray) -> np.ndarray:
    """
    Indices ordering `probs` by descending probability. Ties keep their input
    order so repeated runs give identical output.
    """

    return np.argsort(-np.asarray(probs, dtype=np.float32), kind="stable")


def iou_xywh(a: Sequence[float], b: Sequence[float]) -> float:
    """
    IoU of two (x, y, w, h) rectangles. Zero-area or disjoint pairs give 0.
    """

    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    iw = min(ax + aw, bx + bw) - max(ax, bx)
    ih = min(ay + ah, by + bh) - max(ay, by)
    if iw <= 0 or ih <= 0:
        return 0.0
    inter = iw * ih
    union = aw * ah + bw * bh - inter
    if union <= 0:
        return 0.0
    return float(inter / union)


def _iou_one_to_many(rect: np.ndarray, others: np.ndarray) -> np.ndarray:
    x1 = rect[0]
    y1 = rect[1]
    x2 = rect[0] + rect[2]
    y2 = rect[1] + rect[3]

    ox1 = others[:, 0]
    oy1 = others[:, 1]
    ox2 = others[:, 0] + others[:, 2]
    oy2 = others[:, 1] + others[:, 3]

    w = np.maximum(0.0, np.minimum(x2, ox2) - np.maximum(x1, ox1))
    h = np.maximum(0.0, np.minimum(y2, oy2) - np.maximum(y1, oy1))
    inter = w * h
    union = rect[2] * rect[3] + others[:, 2] * others[:, 3] - inter

    iou = np.zeros_like(inter)
    np.divide(inter, union, out=iou, where=union > 0)
    return iou


def nms(rects: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy class-agnostic NMS over candidates already sorted by descending
    probability. Expects rects shape (N, 4) as x, y, w, h.

    A candidate is kept unless its IoU with an already kept box is strictly
    greater than `cfg.iou_threshold`. Stops once `cfg.max_detections` are kept.
    Returns positions (into `rects`) of the kept candidates, in order.
    """

    if rects.shape[0] == 0 or cfg.max_detections <= 0:
        return np.empty((0,), dtype=np.int32)

    rects = np.asarray(rects, dtype=np.float32)
    order = np.arange(rects.shape[0])
    keep = []

    while order.size > 0 and len(keep) < cfg.max_detections:
        i = order[0]
        keep.append(i)

        iou = _iou_one_to_many(rects[i], rects[order[1:]])
        inds = np.where(iou <= np.float32(cfg.iou_threshold))[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int32)
