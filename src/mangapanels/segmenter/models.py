"""Value types flowing through the segmentation pipeline.

Contains:
- Scored wrapper carrying a confidence for lines and rectangles
- LineSegment / PanelRectangle geometry
- Panel / SegmentationResult returned to callers
- SegmentationDebug record of the last pass
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class Orientation(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class Scored(Generic[T]):
    """A pipeline value paired with its confidence in [0, 1]."""
    value: T
    confidence: float


@dataclass(frozen=True)
class LineSegment:
    """An axis-aligned run of edge pixels.

    ``start``/``end`` are inclusive coordinates along the dominant axis,
    ``position`` the fixed coordinate on the other axis (row for
    horizontal lines, column for vertical ones).
    """
    start: int
    end: int
    position: int
    orientation: Orientation

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def is_vertical(self) -> bool:
        return self.orientation is Orientation.VERTICAL


@dataclass(frozen=True)
class PanelRectangle:
    """Candidate panel in page pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def overlaps(self, other: "PanelRectangle") -> bool:
        """True when both boxes share some area (touching edges do not count)."""
        return not (
            self.right <= other.x
            or other.right <= self.x
            or self.bottom <= other.y
            or other.bottom <= self.y
        )


@dataclass(frozen=True)
class Panel:
    """Ordered, consumer-facing panel box."""
    id: str
    x: int
    y: int
    width: int
    height: int
    reading_order: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SegmentationResult:
    """Panels in reading order with the overall confidence of the layout."""
    panels: Tuple[Panel, ...]
    confidence: float
    processing_time_ms: float

    def __len__(self) -> int:
        return len(self.panels)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "panels": [p.to_dict() for p in self.panels],
            "confidence": self.confidence,
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass
class SegmentationDebug:
    """Decision context of one segmentation pass."""
    width: int = 0
    height: int = 0
    scale: float = 1.0
    raw_lines: int = 0
    merged_lines: int = 0
    candidates: int = 0
    kept: int = 0
    score: float = 0.0
    fallback: bool = False
    fallback_reason: Optional[str] = None
    stage_ms: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "SegmentationDebug":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
