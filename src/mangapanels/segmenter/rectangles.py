"""Panel rectangles from merged gutter lines.

Every (top, bottom) pair of horizontal lines is combined with every
(left, right) pair of vertical lines; quadruples whose spans cross each
other become scored candidates. The candidate list is then reduced to a
disjoint set, highest confidence first.
"""

from __future__ import annotations

from itertools import combinations
from typing import List

from .models import LineSegment, PanelRectangle, Scored
from .utils import pdebug

ScoredLine = Scored[LineSegment]
ScoredRect = Scored[PanelRectangle]


def size_score(
    rect_w: int,
    rect_h: int,
    page_w: int,
    page_h: int,
    small_area_frac: float = 0.05,
    large_area_frac: float = 0.80,
) -> float:
    """Plausibility of a panel's size relative to the page."""
    page_area = page_w * page_h
    if page_area <= 0:
        return 0.2
    ratio = (rect_w * rect_h) / page_area
    if ratio < small_area_frac:
        return 0.2
    if ratio > large_area_frac:
        return 0.3
    return 0.8


def is_valid_rectangle(
    top: LineSegment,
    bottom: LineSegment,
    left: LineSegment,
    right: LineSegment,
) -> bool:
    """Check that the four lines actually reach each other."""
    top_overlap = max(top.start, left.position) <= min(top.end, right.position)
    bottom_overlap = max(bottom.start, left.position) <= min(bottom.end, right.position)
    left_overlap = max(left.start, top.position) <= min(left.end, bottom.position)
    right_overlap = max(right.start, top.position) <= min(right.end, bottom.position)
    return top_overlap and bottom_overlap and left_overlap and right_overlap


def synthesize_rectangles(
    lines: List[ScoredLine],
    width: int,
    height: int,
    min_line_confidence: float = 0.3,
    small_area_frac: float = 0.05,
    large_area_frac: float = 0.80,
) -> List[ScoredRect]:
    """Build candidate panels from line quadruples.

    Quadratic in both line counts; callers keep the merged lists short.

    Args:
        lines: Merged lines of both orientations
        width, height: Page dimensions in pixels
        min_line_confidence: Lines at or below this are ignored

    Returns:
        Candidate rectangles with confidence
        ``(mean line confidence + size score) / 2``
    """
    h_lines = [s for s in lines if not s.value.is_vertical and s.confidence > min_line_confidence]
    v_lines = [s for s in lines if s.value.is_vertical and s.confidence > min_line_confidence]

    candidates: List[ScoredRect] = []
    for top, bottom in combinations(h_lines, 2):
        if bottom.value.position <= top.value.position:
            continue
        for left, right in combinations(v_lines, 2):
            if right.value.position <= left.value.position:
                continue
            if not is_valid_rectangle(top.value, bottom.value, left.value, right.value):
                continue

            rect = PanelRectangle(
                x=left.value.position,
                y=top.value.position,
                width=right.value.position - left.value.position,
                height=bottom.value.position - top.value.position,
            )
            line_conf = (top.confidence + bottom.confidence + left.confidence + right.confidence) / 4
            size_conf = size_score(rect.width, rect.height, width, height, small_area_frac, large_area_frac)
            candidates.append(Scored(rect, (line_conf + size_conf) / 2))

    pdebug(f"[Rects] {len(candidates)} candidates from H={len(h_lines)} V={len(v_lines)} lines")
    return candidates


def resolve_overlaps(candidates: List[ScoredRect]) -> List[ScoredRect]:
    """Greedy disjoint subset, keeping the most confident rectangles first."""
    kept: List[ScoredRect] = []
    for cand in sorted(candidates, key=lambda s: -s.confidence):
        if any(cand.value.overlaps(k.value) for k in kept):
            continue
        kept.append(cand)

    pdebug(f"[Rects] Kept {len(kept)}/{len(candidates)} non-overlapping")
    return kept
