"""Command line entry point.

Usage:
    python -m mangapanels page.png [page2.jpg ...] [--json] [--overlay DIR]
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import cv2

from .config import PRESETS, SegmenterConfig, get_preset, load_config
from .image_utils import crop_panels, draw_panels, load_raster, save_image
from .segmenter import PanelSegmenter

log = logging.getLogger("Panels")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mangapanels",
        description="Segment manga pages into panels in reading order",
    )
    parser.add_argument("images", nargs="+", help="Page image files")
    parser.add_argument("--preset", choices=sorted(PRESETS), default=None,
                        help="Named parameter preset")
    parser.add_argument("--config", type=str, default=None,
                        help="YAML configuration file (may name a preset)")
    parser.add_argument("--ltr", action="store_true",
                        help="Left-to-right reading order")
    parser.add_argument("--json", action="store_true",
                        help="Print results as JSON")
    parser.add_argument("--overlay", type=str, default=None,
                        help="Directory for overlay images with panel boxes")
    parser.add_argument("--crop", type=str, default=None,
                        help="Directory for per-panel crops")
    parser.add_argument("--debug", action="store_true",
                        help="Export decision files to debug_output/")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    return parser


def resolve_config(args: argparse.Namespace) -> SegmenterConfig:
    if args.config:
        config = load_config(args.config)
    elif args.preset:
        config = get_preset(args.preset)
    else:
        config = SegmenterConfig()

    if args.config and args.preset:
        log.warning("--preset ignored when --config is given")
    if args.ltr:
        config.reading_rtl = False
    if args.debug:
        config.debug = True
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    segmenter = PanelSegmenter(resolve_config(args))
    status = 0
    report = []

    for path in args.images:
        try:
            raster = load_raster(path)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: cannot load {path}: {e}", file=sys.stderr)
            status = 1
            continue

        result = segmenter.segment(raster)
        stem = os.path.splitext(os.path.basename(path))[0]

        if args.json:
            report.append({"image": path, **result.to_dict()})
        else:
            h, w = raster.shape[:2]
            print(f"{path}: {w}x{h}, {len(result.panels)} panels, "
                  f"confidence={result.confidence:.3f} ({result.processing_time_ms:.1f} ms)")
            for p in result.panels:
                print(f"  {p.reading_order}. {p.id}: x={p.x}, y={p.y}, w={p.width}, h={p.height}")

        if args.overlay:
            os.makedirs(args.overlay, exist_ok=True)
            out = os.path.join(args.overlay, f"{stem}_panels.png")
            if not cv2.imwrite(out, draw_panels(raster, result.panels)):
                log.warning(f"Could not write overlay {out}")

        if args.crop:
            os.makedirs(args.crop, exist_ok=True)
            for p, crop in zip(sorted(result.panels, key=lambda p: p.reading_order),
                               crop_panels(raster, result)):
                out = os.path.join(args.crop, f"{stem}_{p.reading_order:02d}.png")
                if crop.size == 0 or not save_image(out, crop):
                    log.warning(f"Could not write crop {out}")

    if args.json:
        print(json.dumps(report, indent=2))

    return status


if __name__ == "__main__":
    sys.exit(main())
