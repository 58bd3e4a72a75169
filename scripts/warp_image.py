"""Warp an image file onto a quad, or straighten a quad region into a rectangle."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from quad_warp.canvas import Canvas, WarpPolicy
from quad_warp.config import WarperConfig, load_config
from quad_warp.errors import WarpError
from quad_warp.logging_setup import configure_logging
from quad_warp.utils.image_io import load_image, save_snapshot

POLICIES = {
    "move": WarpPolicy.RESIZE_AND_MOVE_TO_CORRECT_POSITION,
    "fit": WarpPolicy.RESIZE_AND_FIT,
    "keep": WarpPolicy.DONT_RESIZE,
}


def parse_point(text: str) -> Tuple[float, float]:
    try:
        x, y = (float(part) for part in text.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected a point as x,y, got '{text}'") from exc
    return x, y


def parse_size(text: str) -> Tuple[int, int]:
    try:
        width, height = (int(part) for part in text.lower().split("x"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected a size as WIDTHxHEIGHT, got '{text}'") from exc
    return width, height


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Perspective warp an image through four corner points")
    parser.add_argument("--config", type=Path, help="Path to configuration YAML (defaults apply if omitted)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    to_quad = subparsers.add_parser("to-quad", help="Place the whole image onto a quad")
    to_quad.add_argument("input", type=Path, help="Source PNG or JPEG")
    to_quad.add_argument("--quad", type=parse_point, nargs=4, required=True, metavar="X,Y",
                         help="Destination corners clockwise from upper-left")
    to_quad.add_argument("--policy", choices=sorted(POLICIES), default="move",
                         help="How the canvas absorbs the warped image (default: move)")
    to_quad.add_argument("--output", type=Path, help="Output file (default: timestamped PNG in output_dir)")

    to_rect = subparsers.add_parser("to-rect", help="Straighten a quad region into a rectangle")
    to_rect.add_argument("input", type=Path, help="Source PNG or JPEG")
    to_rect.add_argument("--quad", type=parse_point, nargs=4, required=True, metavar="X,Y",
                         help="Region corners clockwise from upper-left")
    to_rect.add_argument("--size", type=parse_size, required=True, metavar="WxH", help="Output size")
    to_rect.add_argument("--output", type=Path, help="Output file (default: timestamped PNG in output_dir)")
    return parser.parse_args(argv)


def run(args: argparse.Namespace, config: WarperConfig) -> Path:
    canvas = Canvas.from_config(load_image(args.input), config)
    quad: List[Tuple[float, float]] = list(args.quad)

    if args.command == "to-quad":
        info = canvas.warp(quad, POLICIES[args.policy])
        logger.info(
            f"Warped to {info.warped_width}x{info.warped_height} at offset ({info.offset_x}, {info.offset_y})"
        )
    else:
        width, height = args.size
        canvas.crop_warp(quad, width, height)
        logger.info(f"Straightened region into {width}x{height}")

    if args.output is not None:
        return canvas.save(args.output)
    return save_snapshot(canvas.buffer, config.project.output_dir, stem=args.input.stem)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config) if args.config else WarperConfig.default()
    configure_logging(config.logging)
    try:
        path = run(args, config)
    except WarpError as exc:
        logger.error(f"Warp failed: {exc}")
        return 1
    logger.info(f"Result written to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
