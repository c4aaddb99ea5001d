"""End-to-end tests for PanelSegmenter."""

import json

import numpy as np
import pytest

from conftest import assert_valid_result, make_page
from mangapanels import PanelSegmenter, SegmenterConfig, segment_panels
from mangapanels.config import load_config
from mangapanels.image_utils import as_raster
from mangapanels.segmenter import base
from mangapanels.segmenter.edges import detect_edges
from mangapanels.segmenter.line_detection import detect_lines, merge_lines
from mangapanels.segmenter.models import PanelRectangle
from mangapanels.segmenter.preprocess import smooth, stretch_contrast, to_grayscale


def _is_fallback(result, width, height):
    return (
        len(result.panels) == 1
        and result.panels[0].box == (0, 0, width, height)
        and result.confidence == 0.1
    )


class TestFallback:

    @pytest.mark.parametrize("value", [0, 255, 128])
    def test_uniform_pages(self, value):
        page = np.full((80, 100, 3), value, dtype=np.uint8)
        segmenter = PanelSegmenter()
        result = segmenter.segment(page)

        assert _is_fallback(result, 100, 80)
        assert segmenter.last_debug.fallback_reason == "no_panels"

    def test_single_pixel(self):
        result = segment_panels(np.zeros((1, 1, 3), dtype=np.uint8))
        assert _is_fallback(result, 1, 1)

    def test_grayscale_and_rgba_inputs(self, blank_page):
        gray = blank_page[:, :, 0]
        rgba = np.dstack([blank_page, np.full(gray.shape, 255, dtype=np.uint8)])

        assert _is_fallback(segment_panels(gray), 160, 120)
        assert _is_fallback(segment_panels(rgba), 160, 120)

    def test_malformed_input(self):
        segmenter = PanelSegmenter()
        result = segmenter.segment(np.zeros((5,), dtype=np.uint8))

        assert _is_fallback(result, 0, 0)
        assert segmenter.last_debug.fallback
        assert segmenter.last_debug.fallback_reason.startswith("error")

    def test_none_input(self):
        assert _is_fallback(segment_panels(None), 0, 0)

    def test_wrong_channel_count_keeps_dimensions(self):
        result = segment_panels(np.zeros((30, 40, 2), dtype=np.uint8))
        assert _is_fallback(result, 40, 30)

    def test_stage_failure_is_contained(self, monkeypatch, grid_page):
        def boom(*args, **kwargs):
            raise RuntimeError("edge stage exploded")

        monkeypatch.setattr(base, "detect_edges", boom)
        segmenter = PanelSegmenter()
        result = segmenter.segment(grid_page)

        assert _is_fallback(result, 400, 400)
        assert "edge stage exploded" in segmenter.last_debug.fallback_reason

    def test_low_confidence_layout(self, monkeypatch, two_column_page):
        monkeypatch.setattr(base, "aggregate_confidence", lambda rects, n: 0.3)
        segmenter = PanelSegmenter()
        result = segmenter.segment(two_column_page)

        assert _is_fallback(result, 400, 400)
        assert segmenter.last_debug.fallback_reason == "low_confidence"

    def test_line_cap_starves_synthesis(self, two_column_page):
        segmenter = PanelSegmenter(SegmenterConfig(max_lines_per_axis=1))
        result = segmenter.segment(two_column_page)

        assert _is_fallback(result, 400, 400)
        assert segmenter.last_debug.merged_lines == 2


class TestLayouts:

    def test_two_columns_read_right_to_left(self, two_column_page):
        result = segment_panels(two_column_page)

        assert_valid_result(result, 400, 400)
        assert len(result.panels) == 2
        assert result.confidence > 0.3
        first, second = result.panels
        assert first.x > second.x
        assert abs(first.y - second.y) < 50

    def test_two_columns_left_to_right(self, two_column_page):
        result = segment_panels(two_column_page, SegmenterConfig(reading_rtl=False))

        assert len(result.panels) == 2
        assert result.panels[0].x < result.panels[1].x

    def test_two_rows_read_top_down(self, two_row_page):
        result = segment_panels(two_row_page)

        assert_valid_result(result, 400, 400)
        assert len(result.panels) == 2
        assert result.panels[0].y < result.panels[1].y

    def test_grid_page(self, grid_page):
        result = segment_panels(grid_page)

        assert_valid_result(result, 400, 400)
        assert len(result.panels) >= 2
        assert result.confidence > 0.3
        assert result.panels[0].y == min(p.y for p in result.panels)

    def test_panels_follow_the_borders(self, two_column_page):
        result = segment_panels(two_column_page)
        right, left = result.panels

        # Merged lines sit on the outer edge band of each drawn border
        assert abs(left.x - 8) <= 2
        assert abs(right.x - 196) <= 2
        assert left.width > 150 and right.width > 150
        assert left.height > 300

    def test_idempotent(self, grid_page):
        segmenter = PanelSegmenter()
        a = segmenter.segment(grid_page)
        b = segmenter.segment(grid_page)

        assert a.panels == b.panels
        assert a.confidence == b.confidence

    def test_input_is_not_modified(self, grid_page):
        before = grid_page.copy()
        segment_panels(grid_page)
        assert (grid_page == before).all()

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_noise_pages_are_valid(self, seed):
        noise = np.random.default_rng(seed).integers(0, 256, size=(60, 80, 3), dtype=np.uint8)
        assert_valid_result(segment_panels(noise), 80, 60)

    @pytest.mark.parametrize("seed", [0, 1])
    def test_random_boxes_are_valid(self, seed):
        rng = np.random.default_rng(seed)
        page = np.full((240, 180, 3), 255, dtype=np.uint8)
        for _ in range(8):
            x, y = rng.integers(0, 150), rng.integers(0, 210)
            w, h = rng.integers(10, 180 - x), rng.integers(10, 240 - y)
            page[y:y + 3, x:x + w] = 0
            page[y + h - 3:y + h, x:x + w] = 0
            page[y:y + h, x:x + 3] = 0
            page[y:y + h, x + w - 3:x + w] = 0
        assert_valid_result(segment_panels(page), 180, 240)


class TestHatching:

    @staticmethod
    def _hatched_page():
        """Three stacked panels; the top one is covered by thin hatching
        every 6 px that runs right up to the first gutter."""
        page = make_page(h_cuts=(130, 260))
        for y in range(20, 123, 6):
            page[y, 14:386] = 0
        return page

    @staticmethod
    def _merged_rows(page):
        gray = smooth(to_grayscale(stretch_contrast(as_raster(page))))
        lines = merge_lines(detect_lines(detect_edges(gray)))
        return [s.value.position for s in lines if not s.value.is_vertical]

    def test_gutter_survives_hatching(self):
        rows = self._merged_rows(self._hatched_page())

        # Frame, first gutter and second gutter each keep their own line
        assert any(abs(y - 8) <= 2 for y in rows)
        assert any(120 <= y <= 128 for y in rows)
        assert any(250 <= y <= 258 for y in rows)

    def test_hatched_page_segments(self):
        segmenter = PanelSegmenter()
        result = segmenter.segment(self._hatched_page())

        assert_valid_result(result, 400, 400)
        assert segmenter.last_debug.merged_lines > 6


class TestScaling:

    def test_large_page_is_mapped_back(self, two_column_page):
        segmenter = PanelSegmenter(SegmenterConfig(max_image_side=200))
        result = segmenter.segment(two_column_page)

        assert segmenter.last_debug.scale == pytest.approx(0.5)
        assert_valid_result(result, 400, 400)
        assert len(result.panels) == 2
        assert result.panels[0].x > 150

    def test_to_source_scales(self):
        rect = PanelRectangle(10, 20, 30, 40)
        assert PanelSegmenter._to_source(rect, 2.0, 2.0, 100, 200) == PanelRectangle(20, 40, 60, 80)

    def test_to_source_clamps(self):
        rect = PanelRectangle(40, 90, 10, 10)
        assert PanelSegmenter._to_source(rect, 2.0, 2.0, 100, 200) == PanelRectangle(80, 180, 19, 19)

    def test_to_source_identity(self):
        rect = PanelRectangle(1, 2, 3, 4)
        assert PanelSegmenter._to_source(rect, 1.0, 1.0, 10, 10) is rect


class TestServices:

    def test_async_matches_sync(self, two_row_page):
        segmenter = PanelSegmenter()
        future = segmenter.segment_async(two_row_page)
        result = future.result(timeout=60)

        assert result.panels == segmenter.segment(two_row_page).panels

    def test_shared_executor(self):
        assert PanelSegmenter.get_executor() is PanelSegmenter.get_executor()

    def test_cache_returns_same_result(self, two_row_page):
        segmenter = PanelSegmenter(cache_size=4)
        first = segmenter.segment(two_row_page)
        assert segmenter.segment(two_row_page) is first

    def test_cache_invalidated_by_config_change(self, two_row_page):
        segmenter = PanelSegmenter(cache_size=4)
        first = segmenter.segment(two_row_page)
        segmenter.config.edge_threshold = 60.0
        assert segmenter.segment(two_row_page) is not first

    def test_last_debug(self, grid_page):
        segmenter = PanelSegmenter()
        assert segmenter.last_debug.width == 0

        result = segmenter.segment(grid_page)
        debug = segmenter.last_debug
        assert (debug.width, debug.height) == (400, 400)
        assert debug.raw_lines >= debug.merged_lines > 0
        assert debug.candidates >= debug.kept == len(result.panels)
        assert not debug.fallback
        assert set(debug.stage_ms) == {"edges", "lines", "rectangles"}

    def test_debug_export(self, tmp_path, two_column_page):
        config = SegmenterConfig(debug=True, debug_dir=str(tmp_path))
        PanelSegmenter(config).segment(two_column_page)

        dirs = list(tmp_path.glob("page_*"))
        assert len(dirs) == 1
        names = sorted(p.name for p in dirs[0].iterdir())
        assert names == ["decision.json", "info.txt", "panels.txt"]

        decision = json.loads((dirs[0] / "decision.json").read_text(encoding="utf-8"))
        assert decision["debug"]["kept"] == 2
        assert decision["config"]["debug_dir"] == str(tmp_path)
        assert "panel_count: 2" in (dirs[0] / "panels.txt").read_text(encoding="utf-8")

    def test_unusable_debug_dir_keeps_result(self, tmp_path, two_column_page):
        path = tmp_path / "panels.yaml"
        path.write_text("debug: true\ndebug_dir: 2024\n", encoding="utf-8")

        segmenter = PanelSegmenter(load_config(str(path)))
        result = segmenter.segment(two_column_page)

        assert len(result.panels) == 2
        assert not segmenter.last_debug.fallback

    def test_result_to_dict(self, two_column_page):
        data = segment_panels(two_column_page).to_dict()
        assert set(data) == {"panels", "confidence", "processing_time_ms"}
        assert data["panels"][0]["id"] == "panel_0"
        json.dumps(data)


def test_make_page_shape():
    page = make_page(size=100)
    assert page.shape == (100, 100, 3)
    assert page[0, 0].tolist() == [255, 255, 255]
    assert page[10, 10].tolist() == [0, 0, 0]
