from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .types import Anchor


DEFAULT_STRIDES = (8, 16, 32)


def generate_anchors(width: int, height: int, strides: Sequence[int] = DEFAULT_STRIDES) -> np.ndarray:
    """
    Build the anchor grid for a model input of `width` x `height`.

    Returns an (N, 3) int32 array of [grid_x, grid_y, stride]. Stride blocks are
    emitted in the order given; inside a block cells are row-major (grid_y
    outer, grid_x inner). Sizes are not validated: integer division decides
    the grid, and a non-positive size yields an empty block.
    """

    blocks: List[np.ndarray] = []
    for stride in strides:
        num_grid_x = max(0, int(width) // int(stride))
        num_grid_y = max(0, int(height) // int(stride))
        gy, gx = np.meshgrid(np.arange(num_grid_y), np.arange(num_grid_x), indexing="ij")
        block = np.empty((num_grid_x * num_grid_y, 3), dtype=np.int32)
        block[:, 0] = gx.ravel()
        block[:, 1] = gy.ravel()
        block[:, 2] = int(stride)
        blocks.append(block)

    if not blocks:
        return np.empty((0, 3), dtype=np.int32)
    return np.concatenate(blocks, axis=0)


def anchor_count(width: int, height: int, strides: Sequence[int] = DEFAULT_STRIDES) -> int:
    return sum(max(0, int(width) // int(s)) * max(0, int(height) // int(s)) for s in strides)


def anchor_at(anchors: np.ndarray, index: int) -> Anchor:
    gx, gy, stride = anchors[index]
    return Anchor(grid_x=int(gx), grid_y=int(gy), stride=int(stride))
