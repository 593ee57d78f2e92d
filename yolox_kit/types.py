from dataclasses import dataclass
from typing import Tuple


Rect = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Anchor:
    """
    One grid cell of one stride level. Index `i` in the anchor grid matches
    record `i` of the network output.
    """

    grid_x: int
    grid_y: int
    stride: int


@dataclass(frozen=True)
class Detection:
    """
    Decoded detection in normalized model input space.

    `rect` is (x, y, w, h) with (x, y) the top-left corner. The center is
    guaranteed to lie in [0, 1] x [0, 1]; the edges are not clipped.
    """

    label: int
    rect: Rect
    probability: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        x, y, w, h = self.rect
        return x, y, x + w, y + h

    def compare(self, other: "Detection") -> int:
        # Descending order: higher probability ranks first.
        if self.probability > other.probability:
            return -1
        if self.probability < other.probability:
            return 1
        return 0


def probability_key(det: Detection) -> float:
    """Sort key that orders detections by descending probability."""
    return -det.probability
