"""Core PanelSegmenter class with the main segmentation flow.

This is the main entry point for panel segmentation, coordinating:
- Raster normalisation and optional downscaling
- Contrast stretch, grayscale, blur
- Sobel edge extraction
- Line detection and merging
- Rectangle synthesis and overlap resolution
- Reading order and confidence aggregation
- Full-page fallback
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import traceback
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Dict, Optional, Tuple

from numpy.typing import NDArray

from ..cache import ResultCache, raster_key
from ..config import SegmenterConfig
from ..image_utils import as_raster, downscale_raster
from .edges import detect_edges
from .line_detection import cap_lines, detect_lines, merge_lines
from .models import PanelRectangle, SegmentationDebug, SegmentationResult
from .preprocess import smooth, stretch_contrast, to_grayscale
from .reading_order import sort_reading_order
from .rectangles import resolve_overlaps, synthesize_rectangles
from .scoring import aggregate_confidence, build_panels, fallback_result
from .utils import pdebug

log = logging.getLogger("Panels")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _image_size(image: object) -> Tuple[int, int]:
    """Best-effort (width, height) of an input that may not be a valid raster."""
    shape = getattr(image, "shape", None)
    try:
        return int(shape[1]), int(shape[0])
    except (TypeError, IndexError, ValueError):
        return 0, 0


class PanelSegmenter:
    """Deterministic manga panel segmenter.

    Never raises from :meth:`segment`: any failure, or a layout it is not
    confident about, yields a single panel covering the whole page.

    Thread-safe: the pipeline holds no shared state; the debug record and
    the optional cache are guarded internally.
    """

    # Shared thread pool
    _executor: Optional[ThreadPoolExecutor] = None
    _executor_lock = threading.Lock()

    def __init__(self, config: Optional[SegmenterConfig] = None, cache_size: int = 0):
        """Initialize segmenter with configuration.

        Args:
            config: Segmentation parameters. Uses defaults if None.
            cache_size: Number of results to memoise per raster (0 disables)
        """
        self.config = config or SegmenterConfig()
        self._last_debug = SegmentationDebug.empty()
        self._lock = threading.Lock()
        self._cache: Optional[ResultCache] = ResultCache(cache_size) if cache_size > 0 else None

    @classmethod
    def get_executor(cls) -> ThreadPoolExecutor:
        """Get or create shared thread pool executor."""
        with cls._executor_lock:
            if cls._executor is None:
                cls._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="panel_segment")
            return cls._executor

    @property
    def last_debug(self) -> SegmentationDebug:
        """Decision context of the last segmentation pass (thread-safe)."""
        with self._lock:
            return self._last_debug

    def segment_async(self, image: object) -> "Future[SegmentationResult]":
        """Run :meth:`segment` on the shared worker pool."""
        return self.get_executor().submit(self.segment, image)

    def segment(self, image: object) -> SegmentationResult:
        """Segment a manga page into ordered panels.

        Args:
            image: RGB/RGBA/grayscale array (H, W[, C])

        Returns:
            SegmentationResult with panels in reading order
        """
        start = time.perf_counter()
        debug = SegmentationDebug.empty()
        width, height = _image_size(image)

        try:
            raster = as_raster(image)
            height, width = raster.shape[:2]

            key = None
            if self._cache is not None:
                self._cache.set_config_hash(self.config.config_hash())
                key = raster_key(raster)
                cached = self._cache.get(key)
                if cached is not None:
                    pdebug(f"Cache hit for {width}x{height} page")
                    debug.width, debug.height = width, height
                    debug.kept = len(cached.panels)
                    debug.score = cached.confidence
                    self._store_debug(debug)
                    return cached

            result = self._segment_raster(raster, debug, start)

            if key is not None:
                self._cache.put(key, result)

        except Exception as e:
            log.warning(f"[Panels] Segmentation failed, using full page: {e}")
            log.debug(traceback.format_exc())
            debug.fallback = True
            debug.fallback_reason = f"error: {e}"
            result = fallback_result(width, height, _elapsed_ms(start), self.config.fallback_confidence)

        self._store_debug(debug)
        if self.config.debug:
            self._export_debug_info(debug, result)
        return result

    def _store_debug(self, debug: SegmentationDebug) -> None:
        with self._lock:
            self._last_debug = debug

    def _segment_raster(
        self,
        raster: NDArray,
        debug: SegmentationDebug,
        start: float,
    ) -> SegmentationResult:
        """Run stages 1-10 on a normalised raster."""
        c = self.config
        src_h, src_w = raster.shape[:2]
        debug.width, debug.height = src_w, src_h
        pdebug(f"Image size: {src_w}x{src_h}")

        work, sx, sy = downscale_raster(raster, c.max_image_side)
        h, w = work.shape[:2]
        if (sx, sy) != (1.0, 1.0):
            debug.scale = w / float(src_w)
            pdebug(f"Scaling: {src_w}x{src_h} -> {w}x{h}")

        t = time.perf_counter()
        enhanced = stretch_contrast(work, c.contrast_gain, c.contrast_pivot)
        gray = to_grayscale(enhanced)
        blurred = smooth(gray)
        edges = detect_edges(blurred, c.edge_threshold)
        debug.stage_ms["edges"] = _elapsed_ms(t)

        t = time.perf_counter()
        lines = detect_lines(edges, c.min_line_frac, c.min_line_confidence)
        merged = merge_lines(lines, c.merge_distance)
        merged = cap_lines(merged, c.max_lines_per_axis)
        debug.raw_lines = len(lines)
        debug.merged_lines = len(merged)
        debug.stage_ms["lines"] = _elapsed_ms(t)

        t = time.perf_counter()
        candidates = synthesize_rectangles(
            merged, w, h,
            min_line_confidence=c.rect_line_min_confidence,
            small_area_frac=c.small_area_frac,
            large_area_frac=c.large_area_frac,
        )
        kept = resolve_overlaps(candidates)
        ordered = sort_reading_order(kept, row_tolerance=c.row_tolerance, rtl=c.reading_rtl)
        debug.candidates = len(candidates)
        debug.kept = len(ordered)
        debug.stage_ms["rectangles"] = _elapsed_ms(t)

        score = aggregate_confidence(ordered, len(lines))
        debug.score = score

        if not ordered or score <= c.fallback_threshold:
            debug.fallback = True
            debug.fallback_reason = "no_panels" if not ordered else "low_confidence"
            log.info(f"[Panels] Fallback ({debug.fallback_reason}): score={score:.3f}, panels={len(ordered)}")
            return fallback_result(src_w, src_h, _elapsed_ms(start), c.fallback_confidence)

        rects = [self._to_source(s.value, sx, sy, src_w, src_h) for s in ordered]
        panels = build_panels(rects)
        log.info(f"[Panels] Final: {len(panels)} panels, confidence={score:.3f}, RTL={c.reading_rtl}")

        return SegmentationResult(
            panels=tuple(panels),
            confidence=score,
            processing_time_ms=_elapsed_ms(start),
        )

    @staticmethod
    def _to_source(rect: PanelRectangle, sx: float, sy: float, src_w: int, src_h: int) -> PanelRectangle:
        """Map a rectangle from the working raster back to source pixels."""
        if sx == 1.0 and sy == 1.0:
            return rect

        def _map(v: float, s: float, limit: int) -> int:
            return max(0, min(limit - 1, int(round(v * s))))

        x0 = _map(rect.x, sx, src_w)
        y0 = _map(rect.y, sy, src_h)
        x1 = _map(rect.right, sx, src_w)
        y1 = _map(rect.bottom, sy, src_h)
        return PanelRectangle(x=x0, y=y0, width=x1 - x0, height=y1 - y0)

    def _export_debug_info(self, debug: SegmentationDebug, result: SegmentationResult) -> None:
        """Write info.txt, panels.txt and decision.json for this pass."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        try:
            debug_dir = os.path.join(self.config.debug_dir, f"page_{timestamp}")
            os.makedirs(debug_dir, exist_ok=True)
        except Exception as e:
            pdebug(f"[Debug] Could not create debug dir under {self.config.debug_dir!r}: {e}")
            return

        info_data: Dict[str, object] = {
            "timestamp": datetime.now().isoformat(),
            "image_size": {"width": debug.width, "height": debug.height},
            "confidence": result.confidence,
            "processing_time_ms": result.processing_time_ms,
        }

        try:
            with open(os.path.join(debug_dir, "info.txt"), "w", encoding="utf-8") as f:
                for key, value in info_data.items():
                    if isinstance(value, dict):
                        f.write(f"{key}:\n")
                        for k, v in value.items():
                            f.write(f"  {k}: {v}\n")
                    else:
                        f.write(f"{key}: {value}\n")

            with open(os.path.join(debug_dir, "panels.txt"), "w", encoding="utf-8") as f:
                f.write(f"panel_count: {len(result.panels)}\n")
                for p in result.panels:
                    f.write(f"{p.id}: order={p.reading_order}, x={p.x}, y={p.y}, w={p.width}, h={p.height}\n")

            with open(os.path.join(debug_dir, "decision.json"), "w", encoding="utf-8") as f:
                json.dump(
                    {"debug": debug.to_dict(), "config": self.config.to_dict()},
                    f,
                    indent=2,
                )
        except Exception as e:
            pdebug(f"[Debug] Export error: {e}")
            return

        pdebug(f"[Debug] Exported to {debug_dir}")


def segment_panels(image: object, config: Optional[SegmenterConfig] = None) -> SegmentationResult:
    """Segment one page with a throwaway :class:`PanelSegmenter`."""
    return PanelSegmenter(config).segment(image)
