from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class PreparedInput:
    blob: np.ndarray
    orig_size: Tuple[int, int]
    ratio: Tuple[float, float]
    pad: Tuple[float, float]


def letterbox(
    image: np.ndarray,
    new_shape: Tuple[int, int] = (640, 640),
    color: Tuple[int, int, int] = (114, 114, 114),
    scaleup: bool = True,
):
    """
    Resize keeping aspect ratio, then pad to `new_shape` (width, height).

    Returns:
        padded: resized + padded image
        ratio: (w_ratio, h_ratio)
        pad: (dw, dh) padding applied on the left/top
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    h, w = image.shape[:2]
    new_w, new_h = new_shape

    r = min(new_w / w, new_h / h)
    if not scaleup:
        r = min(r, 1.0)

    resized_w, resized_h = int(round(w * r)), int(round(h * r))
    dw = (new_w - resized_w) / 2
    dh = (new_h - resized_h) / 2

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    top, bottom = int(round(dh - 0.1)), int(round(dh + 0.1))
    left, right = int(round(dw - 0.1)), int(round(dw + 0.1))
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, (r, r), (float(left), float(top))


def prepare_input(
    image_bgr: np.ndarray,
    input_size: Tuple[int, int],
    *,
    scale: float = 1.0,
    rgb: bool = True,
) -> PreparedInput:
    """
    Turn a BGR image into an NCHW float32 blob for a model of `input_size` (width, height).

    YOLOX exports take raw 0..255 pixel values, so `scale` defaults to 1.0.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    orig_h, orig_w = image_bgr.shape[:2]
    img, ratio, pad = letterbox(image_bgr, new_shape=input_size)

    if rgb:
        img = img[:, :, ::-1]
    blob = img.astype(np.float32) * np.float32(scale)
    blob = np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])

    return PreparedInput(blob=blob, orig_size=(orig_w, orig_h), ratio=ratio, pad=pad)
