from __future__ import annotations

from typing import Tuple

import numpy as np

from .errors import CapacityExceededError
from .types import Detection


OVERFLOW_POLICIES = ("drop_lowest", "raise")


class DetectionBuffer:
    """
    Fixed-capacity, reusable storage for detections.

    Backing arrays are allocated once; `clear()` only resets the length so the
    hot path does not allocate per frame.

    Layout:
    - labels: (capacity,) int32
    - rects:  (capacity, 4) float32 as x, y, w, h
    - probs:  (capacity,) float32
    """

    def __init__(self, capacity: int, overflow: str = "drop_lowest"):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1 (got {capacity})")
        if overflow not in OVERFLOW_POLICIES:
            raise ValueError(f"overflow must be one of {OVERFLOW_POLICIES} (got {overflow!r})")

        self.capacity = int(capacity)
        self.overflow = overflow
        self._labels = np.zeros((self.capacity,), dtype=np.int32)
        self._rects = np.zeros((self.capacity, 4), dtype=np.float32)
        self._probs = np.zeros((self.capacity,), dtype=np.float32)
        self._size = 0
        self.dropped = 0

    def __len__(self) -> int:
        return self._size

    def clear(self) -> None:
        self._size = 0
        self.dropped = 0

    def extend(self, labels: np.ndarray, rects: np.ndarray, probs: np.ndarray) -> int:
        """
        Append a batch of candidates. Returns how many entries the buffer grew by.

        When the batch does not fit, the `drop_lowest` policy keeps the
        highest-probability entries across the stored and incoming sets; the
        `raise` policy raises CapacityExceededError and leaves the buffer as it was.
        """

        n = int(probs.shape[0])
        if n == 0:
            return 0

        free = self.capacity - self._size
        if n <= free:
            end = self._size + n
            self._labels[self._size:end] = labels
            self._rects[self._size:end] = rects
            self._probs[self._size:end] = probs
            self._size = end
            return n

        if self.overflow == "raise":
            raise CapacityExceededError(
                f"Candidate buffer overflow: capacity={self.capacity}, stored={self._size}, incoming={n}. "
                "Raise max_candidates or prob_threshold."
            )

        all_labels = np.concatenate([self._labels[: self._size], labels.astype(np.int32, copy=False)])
        all_rects = np.concatenate([self._rects[: self._size], rects.astype(np.float32, copy=False)])
        all_probs = np.concatenate([self._probs[: self._size], probs.astype(np.float32, copy=False)])

        order = np.argsort(-all_probs, kind="stable")[: self.capacity]
        # Restore arrival order among survivors; sorting happens later.
        order.sort()

        dropped = all_probs.shape[0] - self.capacity
        self._labels[:] = all_labels[order]
        self._rects[:] = all_rects[order]
        self._probs[:] = all_probs[order]
        grown = self.capacity - self._size
        self._size = self.capacity
        self.dropped += dropped
        return grown

    def assign(self, labels: np.ndarray, rects: np.ndarray, probs: np.ndarray) -> None:
        """Replace the whole contents. The input must fit the capacity."""

        n = int(probs.shape[0])
        if n > self.capacity:
            raise CapacityExceededError(f"{n} entries do not fit capacity {self.capacity}")
        self._labels[:n] = labels
        self._rects[:n] = rects
        self._probs[:n] = probs
        self._size = n

    def arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Read-only views of the stored entries, valid until the next mutation.
        """

        labels = self._labels[: self._size]
        rects = self._rects[: self._size]
        probs = self._probs[: self._size]
        for a in (labels, rects, probs):
            a.flags.writeable = False
        return labels, rects, probs

    def to_detections(self) -> Tuple[Detection, ...]:
        labels, rects, probs = self.arrays()
        return tuple(
            Detection(
                label=int(label),
                rect=(float(x), float(y), float(w), float(h)),
                probability=float(prob),
            )
            for label, (x, y, w, h), prob in zip(labels, rects, probs)
        )
