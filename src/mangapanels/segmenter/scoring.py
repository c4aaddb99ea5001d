"""Overall layout confidence and the full-page fallback."""

from __future__ import annotations

from typing import List, Sequence

from .models import Panel, PanelRectangle, Scored, SegmentationResult
from .utils import clamp

FALLBACK_CONFIDENCE = 0.1


def panel_count_score(n: int) -> float:
    """Plausibility of the number of panels on a manga page."""
    if n == 1:
        return 0.3  # Single panel is usually a degenerate detection
    if 2 <= n <= 6:
        return 0.9
    if 7 <= n <= 12:
        return 0.7
    return 0.4


def line_count_score(n: int) -> float:
    """Plausibility of the number of raw (pre-merge) lines."""
    if 4 <= n <= 20:
        return 0.8
    if 21 <= n <= 40:
        return 0.6
    return 0.4


def aggregate_confidence(rects: Sequence[Scored[PanelRectangle]], raw_line_count: int) -> float:
    """Unweighted mean of rectangle, panel-count and line-count scores.

    Returns 0.0 for an empty layout.
    """
    if not rects:
        return 0.0

    mean_rect = sum(r.confidence for r in rects) / len(rects)
    score = (mean_rect + panel_count_score(len(rects)) + line_count_score(raw_line_count)) / 3
    return clamp(score, 0.0, 1.0)


def build_panels(rects: Sequence[PanelRectangle]) -> List[Panel]:
    """Number already ordered rectangles as output panels."""
    return [
        Panel(
            id=f"panel_{i}",
            x=r.x,
            y=r.y,
            width=r.width,
            height=r.height,
            reading_order=i + 1,
        )
        for i, r in enumerate(rects)
    ]


def fallback_result(
    width: int,
    height: int,
    processing_time_ms: float,
    confidence: float = FALLBACK_CONFIDENCE,
) -> SegmentationResult:
    """Single panel covering the whole page."""
    panel = Panel(
        id="panel_0",
        x=0,
        y=0,
        width=max(0, int(width)),
        height=max(0, int(height)),
        reading_order=1,
    )
    return SegmentationResult(
        panels=(panel,),
        confidence=confidence,
        processing_time_ms=processing_time_ms,
    )
