"""Pixel-level preparation stages.

Raster (H, W, 3) uint8 -> contrast stretched raster -> luminance grid
(H, W) -> blurred luminance grid. Every function returns a new array and
never writes into its input.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .utils import correlate3x3

# Rec. 709 luminance weights
LUMA_WEIGHTS = (0.2126, 0.7152, 0.0722)

GAUSSIAN_KERNEL = np.array(
    [[1, 2, 1],
     [2, 4, 2],
     [1, 2, 1]],
    dtype=np.int64,
)
GAUSSIAN_SUM = 16


def stretch_contrast(raster: NDArray, gain: float = 1.2, pivot: int = 128) -> NDArray:
    """Linear contrast stretch around ``pivot``, per channel.

    ``clamp(0, 255, (v - pivot) * gain + pivot)`` truncated to integer.
    """
    stretched = (raster.astype(np.float64) - pivot) * gain + pivot
    return np.clip(stretched, 0, 255).astype(np.uint8)


def to_grayscale(raster: NDArray) -> NDArray:
    """Perceptual luminance of an RGB raster as an int32 grid in [0, 255].

    Weighted rather than averaged so colored gutters on colored art keep
    their contrast.
    """
    rgb = raster.astype(np.float64)
    r_w, g_w, b_w = LUMA_WEIGHTS
    luma = r_w * rgb[:, :, 0] + g_w * rgb[:, :, 1] + b_w * rgb[:, :, 2]
    return np.clip(luma, 0, 255).astype(np.int32)


def smooth(gray: NDArray) -> NDArray:
    """3x3 Gaussian blur of the interior; the 1-px border is copied as is."""
    blurred = np.array(gray, dtype=np.int32, copy=True)
    h, w = blurred.shape
    if h < 3 or w < 3:
        return blurred
    blurred[1:-1, 1:-1] = correlate3x3(gray, GAUSSIAN_KERNEL) // GAUSSIAN_SUM
    return blurred
