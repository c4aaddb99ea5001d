"""QImage -> raster conversion for Qt front-ends."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from PySide6.QtGui import QImage

from .image_utils import as_raster


def qimage_to_raster(qimg: QImage) -> NDArray:
    """Convert a QImage of any format to a read-only RGB uint8 raster.

    Handles stride padding (bytesPerLine may exceed width * 4).

    Raises:
        ValueError: if the QImage is null
    """
    if qimg.isNull():
        raise ValueError("QImage is null")
    if qimg.format() != QImage.Format.Format_RGBA8888:
        qimg = qimg.convertToFormat(QImage.Format.Format_RGBA8888)

    w, h = qimg.width(), qimg.height()
    bpl = qimg.bytesPerLine()
    buffer = bytes(qimg.constBits())[: bpl * h]
    arr = np.frombuffer(buffer, dtype=np.uint8).reshape(h, bpl)[:, : w * 4]
    rgba = arr.reshape(h, w, 4)
    return as_raster(rgba)
