"""Panel segmentation engine for mangapanels.

Deterministic signal-processing pipeline, one module per concern:
- preprocess.py: Contrast stretch, luminance grayscale, 3x3 blur
- edges.py: Sobel gradient-magnitude edge mask
- line_detection.py: Horizontal/vertical gutter lines and merging
- rectangles.py: Rectangle synthesis and overlap resolution
- reading_order.py: Manga (right-to-left) reading order
- scoring.py: Overall confidence and full-page fallback
- base.py: PanelSegmenter orchestrating the stages
- models.py: Shared value types
"""

from __future__ import annotations

from .base import PanelSegmenter, segment_panels
from .models import (
    LineSegment,
    Orientation,
    Panel,
    PanelRectangle,
    Scored,
    SegmentationDebug,
    SegmentationResult,
)

__all__ = [
    "PanelSegmenter",
    "segment_panels",
    "LineSegment",
    "Orientation",
    "Panel",
    "PanelRectangle",
    "Scored",
    "SegmentationDebug",
    "SegmentationResult",
]
