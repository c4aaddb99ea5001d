"""Shared fixtures: synthetic manga pages drawn with numpy."""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from mangapanels import SegmenterConfig  # noqa: E402

PAGE_SIZE = 400
BORDER = 4       # Thickness of drawn panel borders
MARGIN = 10      # Offset of the outer frame from the page edge


def make_page(size=PAGE_SIZE, h_cuts=(), v_cuts=()):
    """White RGB page with a black outer frame and optional inner borders.

    ``h_cuts`` / ``v_cuts`` are the top rows / left columns of extra
    horizontal / vertical borders spanning the inside of the frame.
    """
    page = np.full((size, size, 3), 255, dtype=np.uint8)
    lo, hi = MARGIN, size - MARGIN

    page[lo:lo + BORDER, lo:hi] = 0
    page[hi - BORDER:hi, lo:hi] = 0
    page[lo:hi, lo:lo + BORDER] = 0
    page[lo:hi, hi - BORDER:hi] = 0

    for y in h_cuts:
        page[y:y + BORDER, lo:hi] = 0
    for x in v_cuts:
        page[lo:hi, x:x + BORDER] = 0
    return page


@pytest.fixture
def two_column_page():
    """One row of two panels, split by a vertical border in the middle."""
    return make_page(v_cuts=(198,))


@pytest.fixture
def two_row_page():
    """Two stacked panels, split by a horizontal border in the middle."""
    return make_page(h_cuts=(198,))


@pytest.fixture
def grid_page():
    """2x2 grid of panels."""
    return make_page(h_cuts=(198,), v_cuts=(198,))


@pytest.fixture
def blank_page():
    return np.full((120, 160, 3), 255, dtype=np.uint8)


@pytest.fixture
def config():
    return SegmenterConfig()


def assert_valid_result(result, width, height):
    """Invariants every segmentation result must satisfy."""
    assert len(result.panels) >= 1
    assert 0.0 <= result.confidence <= 1.0
    assert result.processing_time_ms >= 0.0

    orders = [p.reading_order for p in result.panels]
    assert orders == list(range(1, len(result.panels) + 1))
    assert [p.id for p in result.panels] == [f"panel_{i}" for i in range(len(result.panels))]

    for p in result.panels:
        assert p.x >= 0 and p.y >= 0
        assert p.width >= 0 and p.height >= 0
        assert p.x + p.width <= width
        assert p.y + p.height <= height

    for i, a in enumerate(result.panels):
        for b in result.panels[i + 1:]:
            disjoint = (
                a.x + a.width <= b.x or b.x + b.width <= a.x
                or a.y + a.height <= b.y or b.y + b.height <= a.y
            )
            assert disjoint, f"{a.id} overlaps {b.id}"
