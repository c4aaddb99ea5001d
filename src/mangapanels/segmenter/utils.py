"""Shared helpers for the segmentation stages."""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

log = logging.getLogger("Panels")


def pdebug(*parts: object) -> None:
    """Debug logger for panel segmentation."""
    if log.isEnabledFor(logging.DEBUG):
        log.debug("[Panels] " + " ".join(map(str, parts)))


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))


def correlate3x3(grid: NDArray, kernel: NDArray) -> NDArray:
    """Apply a 3x3 kernel to every interior pixel of ``grid``.

    Returns an int64 array of shape ``(H-2, W-2)``: entry ``[i, j]`` is the
    weighted sum centred on ``grid[i+1, j+1]``. Grids smaller than 3x3 give
    an empty array.
    """
    h, w = grid.shape[:2]
    if h < 3 or w < 3:
        return np.zeros((max(h - 2, 0), max(w - 2, 0)), dtype=np.int64)

    src = grid.astype(np.int64, copy=False)
    acc = np.zeros((h - 2, w - 2), dtype=np.int64)
    for dy in range(3):
        for dx in range(3):
            weight = int(kernel[dy, dx])
            if weight:
                acc += weight * src[dy:h - 2 + dy, dx:w - 2 + dx]
    return acc
