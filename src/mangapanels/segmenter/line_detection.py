"""Gutter line detection on the binary edge mask.

Finds panel borders as long horizontal and vertical runs of edge pixels,
then folds the parallel runs produced by one thick border into a single
line.

Pipeline:
1. Maximal runs per row / column, kept when longer than a fraction of the axis
2. Confidence from run length relative to the axis
3. Merge consecutive parallel lines closer than a few pixels
4. Cap the number of lines per orientation for rectangle synthesis
"""

from __future__ import annotations

from typing import List, Tuple

import numpy as np
from numpy.typing import NDArray

from .models import LineSegment, Orientation, Scored
from .utils import pdebug, clamp

ScoredLine = Scored[LineSegment]


def _find_runs(mask: NDArray) -> Tuple[NDArray, NDArray, NDArray]:
    """Maximal runs of True along axis 1.

    Returns (row_indices, run_starts, run_lengths) in row-major order.
    """
    h, w = mask.shape
    padded = np.zeros((h, w + 2), dtype=np.int8)
    padded[:, 1:-1] = mask
    diff = np.diff(padded, axis=1)

    start_rows, start_cols = np.nonzero(diff == 1)
    _end_rows, end_cols = np.nonzero(diff == -1)
    return start_rows, start_cols, end_cols - start_cols


def _runs_to_lines(
    mask: NDArray,
    orientation: Orientation,
    min_length_frac: float,
    min_confidence: float,
) -> List[ScoredLine]:
    axis_length = mask.shape[1]
    rows, starts, lengths = _find_runs(mask)

    long_enough = lengths > axis_length * min_length_frac
    rows, starts, lengths = rows[long_enough], starts[long_enough], lengths[long_enough]

    lines: List[ScoredLine] = []
    for position, start, length in zip(rows.tolist(), starts.tolist(), lengths.tolist()):
        confidence = clamp(length / axis_length, min_confidence, 1.0)
        segment = LineSegment(
            start=start,
            end=start + length - 1,
            position=position,
            orientation=orientation,
        )
        lines.append(Scored(segment, confidence))
    return lines


def detect_horizontal_lines(
    mask: NDArray,
    min_length_frac: float = 0.2,
    min_confidence: float = 0.1,
) -> List[ScoredLine]:
    """Horizontal runs longer than ``min_length_frac`` of the row width."""
    return _runs_to_lines(mask, Orientation.HORIZONTAL, min_length_frac, min_confidence)


def detect_vertical_lines(
    mask: NDArray,
    min_length_frac: float = 0.2,
    min_confidence: float = 0.1,
) -> List[ScoredLine]:
    """Vertical runs longer than ``min_length_frac`` of the column height."""
    return _runs_to_lines(mask.T, Orientation.VERTICAL, min_length_frac, min_confidence)


def detect_diagonal_lines(mask: NDArray, positive: bool) -> List[ScoredLine]:
    """Hook for +45/-45 degree gutters.

    Intentionally inert: pages whose gutters are only diagonal are not
    segmented and end up on the full-page fallback.
    """
    return []


def detect_lines(
    mask: NDArray,
    min_length_frac: float = 0.2,
    min_confidence: float = 0.1,
) -> List[ScoredLine]:
    """Detect all gutter line candidates of an edge mask.

    Args:
        mask: Boolean edge mask (H, W)
        min_length_frac: Minimum run length as fraction of the scanned axis
        min_confidence: Floor of the length-based confidence

    Returns:
        Horizontal lines (by row, then column) followed by vertical lines
        (by column, then row)
    """
    lines: List[ScoredLine] = []
    lines.extend(detect_horizontal_lines(mask, min_length_frac, min_confidence))
    lines.extend(detect_vertical_lines(mask, min_length_frac, min_confidence))
    lines.extend(detect_diagonal_lines(mask, positive=True))
    lines.extend(detect_diagonal_lines(mask, positive=False))

    n_h = sum(1 for s in lines if not s.value.is_vertical)
    pdebug(f"[Lines] Detected {len(lines)} runs (H={n_h}, V={len(lines) - n_h})")
    return lines


def _merge_pair(current: ScoredLine, nxt: ScoredLine) -> ScoredLine:
    """Union of two parallel lines; keeps the chain anchor's position."""
    a, b = current.value, nxt.value
    merged = LineSegment(
        start=min(a.start, b.start),
        end=max(a.end, b.end),
        position=a.position,
        orientation=a.orientation,
    )
    return Scored(merged, (current.confidence + nxt.confidence) / 2)


def _merge_parallel_lines(lines: List[ScoredLine], max_distance: int) -> List[ScoredLine]:
    """Merge consecutive parallel lines whose positions are close together."""
    if not lines:
        return []

    ordered = sorted(lines, key=lambda s: s.value.position)

    merged: List[ScoredLine] = []
    current = ordered[0]

    for line in ordered[1:]:
        # Distance to the merged line, which stays at its anchor position
        if abs(line.value.position - current.value.position) <= max_distance:
            current = _merge_pair(current, line)
        else:
            merged.append(current)
            current = line

    merged.append(current)
    return merged


def merge_lines(lines: List[ScoredLine], max_distance: int = 8) -> List[ScoredLine]:
    """Collapse lines that belong to the same gutter.

    Lines are grouped by orientation and sorted by position. Each line
    within ``max_distance`` of the current merged line (measured from its
    anchor position) is folded into it: the span becomes the union and the
    confidence is re-averaged on every merge. A line further away starts a
    new merged line.
    """
    h_lines = [s for s in lines if not s.value.is_vertical]
    v_lines = [s for s in lines if s.value.is_vertical]

    merged = _merge_parallel_lines(h_lines, max_distance) + _merge_parallel_lines(v_lines, max_distance)
    pdebug(f"[Lines] Merged {len(lines)} -> {len(merged)}")
    return merged


def _strongest(lines: List[ScoredLine], limit: int) -> List[ScoredLine]:
    if len(lines) <= limit:
        return list(lines)
    ranked = sorted(range(len(lines)), key=lambda i: -lines[i].confidence)
    keep = sorted(ranked[:limit])
    return [lines[i] for i in keep]


def cap_lines(lines: List[ScoredLine], max_per_axis: int) -> List[ScoredLine]:
    """Keep at most ``max_per_axis`` most confident lines per orientation.

    Survivors keep their relative order.
    """
    h_lines = [s for s in lines if not s.value.is_vertical]
    v_lines = [s for s in lines if s.value.is_vertical]
    capped = _strongest(h_lines, max_per_axis) + _strongest(v_lines, max_per_axis)
    if len(capped) < len(lines):
        pdebug(f"[Lines] Capped {len(lines)} -> {len(capped)} (max {max_per_axis}/axis)")
    return capped
