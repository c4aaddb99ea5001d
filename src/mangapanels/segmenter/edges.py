"""Gradient-magnitude edge extraction.

A single global threshold on the Sobel magnitude; no hysteresis and no
non-maximum suppression, so thick gutter borders give bands of edge
pixels that the line merger folds back together.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .utils import correlate3x3

SOBEL_X = np.array(
    [[-1, 0, 1],
     [-2, 0, 2],
     [-1, 0, 1]],
    dtype=np.int64,
)

SOBEL_Y = np.array(
    [[-1, -2, -1],
     [0, 0, 0],
     [1, 2, 1]],
    dtype=np.int64,
)


def gradient_magnitude(gray: NDArray) -> NDArray:
    """Sobel gradient magnitude on the interior, zero on the 1-px border."""
    h, w = gray.shape
    magnitude = np.zeros((h, w), dtype=np.float64)
    if h < 3 or w < 3:
        return magnitude

    gx = correlate3x3(gray, SOBEL_X)
    gy = correlate3x3(gray, SOBEL_Y)
    magnitude[1:-1, 1:-1] = np.sqrt((gx * gx + gy * gy).astype(np.float64))
    return magnitude


def detect_edges(gray: NDArray, threshold: float = 50.0) -> NDArray:
    """Boolean edge mask: True where the gradient magnitude exceeds ``threshold``.

    Border pixels are never edges.
    """
    return gradient_magnitude(gray) > threshold
