"""mangapanels - deterministic manga panel segmentation.

Locates the rectangular panels of a manga page with classical image
processing and returns them in right-to-left reading order, with a
self-assessed confidence and a full-page fallback.
"""

__version__ = "1.0.0"

from .config import SegmenterConfig, PRESETS, get_preset, load_config
from .segmenter import (
    PanelSegmenter,
    segment_panels,
    Panel,
    SegmentationResult,
)

__all__ = [
    "SegmenterConfig",
    "PRESETS",
    "get_preset",
    "load_config",
    "PanelSegmenter",
    "segment_panels",
    "Panel",
    "SegmentationResult",
    "__version__",
]
