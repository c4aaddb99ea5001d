"""Image conversion utilities for mangapanels.

Raster normalisation, OpenCV decoding/encoding, panel crops and debug
overlays. The segmentation stages themselves only see the normalised
read-only RGB raster produced by :func:`as_raster`.
"""

from __future__ import annotations

import os
from typing import List, Sequence, Tuple, TYPE_CHECKING

import cv2
import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from .segmenter.models import Panel, SegmentationResult


def as_raster(image: object) -> NDArray:
    """Normalise an array-like image into a read-only RGB uint8 raster.

    Accepts (H, W) grayscale, (H, W, 1), (H, W, 3) RGB and (H, W, 4) RGBA
    arrays of any numeric dtype. The result is always a fresh copy.

    Raises:
        ValueError: if the input does not have an image shape
    """
    arr = np.asarray(image)

    if arr.ndim == 2:
        arr = np.stack([arr] * 3, axis=-1)
    elif arr.ndim == 3 and arr.shape[2] == 1:
        arr = np.repeat(arr, 3, axis=2)
    elif arr.ndim == 3 and arr.shape[2] == 4:
        arr = arr[:, :, :3]

    if arr.ndim != 3 or arr.shape[2] != 3:
        raise ValueError(f"Unsupported image shape: {arr.shape}")

    if arr.dtype == np.bool_:
        arr = arr.astype(np.uint8) * 255
    elif arr.dtype != np.uint8:
        if np.issubdtype(arr.dtype, np.floating):
            arr = np.nan_to_num(arr, nan=0.0, posinf=255.0, neginf=0.0)
        arr = np.clip(arr, 0, 255)

    raster = np.array(arr, dtype=np.uint8, copy=True, order="C")
    raster.flags.writeable = False
    return raster


def load_raster(path: str) -> NDArray:
    """Decode an image file into an RGB raster.

    Raises:
        FileNotFoundError: if ``path`` does not exist
        ValueError: if OpenCV cannot decode the file
    """
    if not os.path.exists(path):
        raise FileNotFoundError(path)

    bgr = cv2.imread(path, cv2.IMREAD_COLOR)
    if bgr is None:
        raise ValueError(f"Could not decode image: {path}")
    return as_raster(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))


def save_image(path: str, raster: NDArray) -> bool:
    """Encode an RGB raster to ``path``. Returns OpenCV's success flag."""
    return bool(cv2.imwrite(path, cv2.cvtColor(np.ascontiguousarray(raster), cv2.COLOR_RGB2BGR)))


def downscale_raster(raster: NDArray, max_side: int) -> Tuple[NDArray, float, float]:
    """Shrink a raster so its longer side is at most ``max_side``.

    Returns:
        (raster, sx, sy) where sx, sy map downscaled coordinates back to
        the source (1.0 when no resize was needed)
    """
    h, w = raster.shape[:2]
    longest = max(h, w)
    if max_side <= 0 or longest <= max_side:
        return raster, 1.0, 1.0

    scale = max_side / float(longest)
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    small = cv2.resize(raster, (new_w, new_h), interpolation=cv2.INTER_AREA)
    return as_raster(small), w / float(new_w), h / float(new_h)


def crop_panel(raster: NDArray, panel: Panel) -> NDArray:
    """Sub-image of one panel (a copy)."""
    h, w = raster.shape[:2]
    x0 = max(0, min(w, panel.x))
    y0 = max(0, min(h, panel.y))
    x1 = max(x0, min(w, panel.x + panel.width))
    y1 = max(y0, min(h, panel.y + panel.height))
    return np.array(raster[y0:y1, x0:x1], copy=True)


def crop_panels(raster: NDArray, result: SegmentationResult) -> List[NDArray]:
    """Sub-images of all panels, in reading order."""
    ordered = sorted(result.panels, key=lambda p: p.reading_order)
    return [crop_panel(raster, p) for p in ordered]


def draw_panels(
    raster: NDArray,
    panels: Sequence[Panel],
    color: Tuple[int, int, int] = (0, 0, 255),
    thickness: int = 2,
) -> NDArray:
    """BGR overlay with panel boxes and their reading order numbers."""
    canvas = cv2.cvtColor(np.ascontiguousarray(raster), cv2.COLOR_RGB2BGR)
    for p in panels:
        cv2.rectangle(canvas, (p.x, p.y), (p.x + p.width, p.y + p.height), color, thickness)
        cv2.putText(
            canvas,
            str(p.reading_order),
            (p.x + 8, p.y + 32),
            cv2.FONT_HERSHEY_SIMPLEX,
            1.0,
            color,
            thickness,
            cv2.LINE_AA,
        )
    return canvas
