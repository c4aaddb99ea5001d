"""Configuration dataclasses for mangapanels.

Every threshold of the segmentation pipeline lives here so presets and
YAML files can retune a page style without touching the stages.
"""

from dataclasses import dataclass
from typing import Dict, Any
import copy
import hashlib
import json
import logging

import yaml

log = logging.getLogger("Panels")


@dataclass
class SegmenterConfig:
    """Configuration for the panel segmentation pipeline.

    Pixel thresholds are absolute; fractional ones are relative to the
    page (or to the scanned row/column length).
    """

    # Contrast stretch
    contrast_gain: float = 1.2    # Slope of the linear stretch
    contrast_pivot: int = 128     # Intensity left unchanged by the stretch

    # Edge extraction
    edge_threshold: float = 50.0  # Sobel magnitude above which a pixel is an edge

    # Line detection
    min_line_frac: float = 0.2    # Run must exceed this fraction of the row/column
    min_line_confidence: float = 0.1  # Floor of the length-based line confidence

    # Line merging
    merge_distance: int = 8       # Max gap (px) between parallel lines of one gutter

    # Rectangle synthesis
    rect_line_min_confidence: float = 0.3  # Lines at or below this never bound a panel
    small_area_frac: float = 0.05  # Below this page fraction a panel is implausibly small
    large_area_frac: float = 0.80  # Above this page fraction a panel is implausibly large

    # Reading order
    row_tolerance: int = 50       # Max y difference (px) of panels sharing a row
    reading_rtl: bool = True      # Right-to-left rows (manga)

    # Fallback
    fallback_threshold: float = 0.3   # Overall scores at or below this use the fallback
    fallback_confidence: float = 0.1  # Confidence reported with the full-page panel

    # Limits
    max_image_side: int = 2400    # Larger pages are downscaled before segmentation
    max_lines_per_axis: int = 32  # Merged lines per orientation fed to the synthesizer

    # Debug export
    debug: bool = False
    debug_dir: str = "debug_output"

    def copy(self) -> "SegmenterConfig":
        """Return a deep copy of this configuration."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "contrast_gain": self.contrast_gain,
            "contrast_pivot": self.contrast_pivot,
            "edge_threshold": self.edge_threshold,
            "min_line_frac": self.min_line_frac,
            "min_line_confidence": self.min_line_confidence,
            "merge_distance": self.merge_distance,
            "rect_line_min_confidence": self.rect_line_min_confidence,
            "small_area_frac": self.small_area_frac,
            "large_area_frac": self.large_area_frac,
            "row_tolerance": self.row_tolerance,
            "reading_rtl": self.reading_rtl,
            "fallback_threshold": self.fallback_threshold,
            "fallback_confidence": self.fallback_confidence,
            "max_image_side": self.max_image_side,
            "max_lines_per_axis": self.max_lines_per_axis,
            "debug": self.debug,
            "debug_dir": self.debug_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SegmenterConfig":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def config_hash(self) -> str:
        """Stable digest of the detection parameters (debug fields excluded)."""
        params = self.to_dict()
        params.pop("debug")
        params.pop("debug_dir")
        payload = json.dumps(params, sort_keys=True)
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()


# Preset configurations for different page styles
PRESETS: Dict[str, SegmenterConfig] = {
    "Manga": SegmenterConfig(),
    "Manga-Dense": SegmenterConfig(
        edge_threshold=40.0,
        min_line_frac=0.15,
        merge_distance=6,
        row_tolerance=40,
        max_lines_per_axis=40,
    ),
    "Western": SegmenterConfig(
        edge_threshold=60.0,
        merge_distance=10,
        row_tolerance=60,
        reading_rtl=False,
    ),
}


def get_preset(name: str) -> SegmenterConfig:
    """Return a copy of a named preset (raises KeyError if unknown)."""
    return PRESETS[name].copy()


def load_config(path: str) -> SegmenterConfig:
    """Load a configuration from a YAML file.

    An optional ``preset`` key selects the base preset; the remaining
    keys override its fields. Unreadable files fall back to defaults.
    """
    data: Dict[str, Any] = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        log.warning(f"Could not load config {path}: {e}")
        return SegmenterConfig()

    if not isinstance(data, dict):
        log.warning(f"Config {path} is not a mapping, using defaults")
        return SegmenterConfig()

    preset = data.pop("preset", None)
    if preset and preset not in PRESETS:
        log.warning(f"Unknown preset {preset!r} in {path}, using defaults")
        preset = None
    base = get_preset(preset) if preset else SegmenterConfig()
    merged = base.to_dict()
    merged.update(data)
    config = SegmenterConfig.from_dict(merged)
    log.info(f"CONFIG_APPLIED: {path} | preset={preset} | keys={sorted(data.keys())}")
    return config
