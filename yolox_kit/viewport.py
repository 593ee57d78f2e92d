"""
Stateless mapping of normalized model-space rects into other coordinate spaces.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .types import Rect


def flip_y(rect: Rect) -> Rect:
    """Mirror a top-left-origin rect into bottom-left-origin space (within [0, 1])."""

    x, y, w, h = rect
    return x, 1.0 - y - h, w, h


def to_viewport(rect: Rect, matrix: np.ndarray, flip: bool = True) -> Rect:
    """
    Map a normalized (x, y, w, h) rect through a 3x3 affine matrix.

    The matrix is applied to the rect's min and max corners; the result is
    returned as (x, y, w, h) from the mapped min corner. With `flip=True` the
    rect is first flipped to a bottom-left origin, as viewports usually expect.
    """

    m = np.asarray(matrix, dtype=np.float64)
    if m.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 affine matrix, got shape {m.shape}")

    x, y, w, h = flip_y(rect) if flip else rect
    corners = np.array([[x, y, 1.0], [x + w, y + h, 1.0]], dtype=np.float64)
    mapped = corners @ m.T
    (x0, y0), (x1, y1) = mapped[0, :2], mapped[1, :2]
    return float(x0), float(y0), float(x1 - x0), float(y1 - y0)


def scale_matrix(sx: float, sy: float, tx: float = 0.0, ty: float = 0.0) -> np.ndarray:
    return np.array([[sx, 0.0, tx], [0.0, sy, ty], [0.0, 0.0, 1.0]], dtype=np.float64)


def input_to_image_matrix(
    input_size: Tuple[int, int],
    ratio: Tuple[float, float] = (1.0, 1.0),
    pad: Tuple[float, float] = (0.0, 0.0),
) -> np.ndarray:
    """
    Matrix taking normalized model input coordinates to original image pixels,
    undoing a letterbox resize with `ratio` (rw, rh) and `pad` (dw, dh).
    """

    in_w, in_h = input_size
    rw, rh = ratio
    dw, dh = pad
    return scale_matrix(in_w / rw, in_h / rh, -dw / rw, -dh / rh)


def to_image_xyxy(rect: Rect, matrix: np.ndarray, image_size: Tuple[int, int]) -> Tuple[float, float, float, float]:
    """
    Map a normalized rect to pixel xyxy in the original image, clipped to its bounds.
    """

    x, y, w, h = to_viewport(rect, matrix, flip=False)
    img_w, img_h = image_size
    x1 = float(np.clip(x, 0, img_w - 1))
    y1 = float(np.clip(y, 0, img_h - 1))
    x2 = float(np.clip(x + w, 0, img_w - 1))
    y2 = float(np.clip(y + h, 0, img_h - 1))
    return x1, y1, x2, y2
