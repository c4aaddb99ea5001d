"""Manga reading order for disjoint panel rectangles.

Rectangles are grouped into rows by their top edge; rows read top to
bottom and each row right to left, or left to right for western pages.
"""

from __future__ import annotations

from typing import List, Sequence, TypeVar, Union

from .models import PanelRectangle, Scored

R = TypeVar("R")


def _rect(item: Union[PanelRectangle, Scored]) -> PanelRectangle:
    return item.value if isinstance(item, Scored) else item


def sort_reading_order(
    rects: Sequence[R],
    row_tolerance: int = 50,
    rtl: bool = True,
) -> List[R]:
    """Sort rectangles by manga reading order.

    Rows are built top-down: a rectangle whose top is less than
    ``row_tolerance`` px below the first rectangle of the current row joins
    that row. Rows read top-to-bottom, each row right-to-left (or
    left-to-right when ``rtl`` is False). Ties keep insertion order.

    Args:
        rects: PanelRectangle or Scored[PanelRectangle] items
        row_tolerance: Maximum y difference inside a row
        rtl: Right-to-left reading order

    Returns:
        Sorted list of the same items
    """
    if not rects:
        return []

    sorted_by_top = sorted(rects, key=lambda r: _rect(r).y)

    rows = []
    current_row = [sorted_by_top[0]]
    for item in sorted_by_top[1:]:
        if abs(_rect(item).y - _rect(current_row[0]).y) < row_tolerance:
            current_row.append(item)
        else:
            rows.append(current_row)
            current_row = [item]
    rows.append(current_row)

    result = []
    for row in rows:
        if rtl:
            row_sorted = sorted(row, key=lambda r: -_rect(r).x)
        else:
            row_sorted = sorted(row, key=lambda r: _rect(r).x)
        result.extend(row_sorted)

    return result
