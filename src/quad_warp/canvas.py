"""Fluent image editing on a canvas that owns exactly one pixel buffer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

import cv2
import numpy as np
from loguru import logger

from quad_warp.config import WarperConfig
from quad_warp.errors import WarpError
from quad_warp.geometry.quad import Point, as_quad, bounding_box, translate
from quad_warp.imaging.compositing import alpha_blend, flatten_alpha, tile
from quad_warp.imaging.pixel_buffer import PixelBuffer
from quad_warp.utils.image_io import load_image, save_image
from quad_warp.warping.engine import WarpEngine


class Anchor(Enum):
    """Point of the placed image that lands on the given coordinates."""

    LEFT_TOP = "left_top"
    CENTER_TOP = "center_top"
    RIGHT_TOP = "right_top"
    LEFT_CENTER = "left_center"
    CENTER = "center"
    RIGHT_CENTER = "right_center"
    LEFT_BOTTOM = "left_bottom"
    CENTER_BOTTOM = "center_bottom"
    RIGHT_BOTTOM = "right_bottom"


class CropPolicy(Enum):
    DONT_CHANGE_SIZE = "dont_change_size"
    FIT_SIZE = "fit_size"


class WarpPolicy(Enum):
    """How the canvas absorbs a warped image.

    RESIZE_AND_MOVE_TO_CORRECT_POSITION grows the canvas to hold the warped
    image at its offset, RESIZE_AND_FIT shrinks it to the warped image alone,
    DONT_RESIZE pastes at the origin and clips.
    """

    RESIZE_AND_MOVE_TO_CORRECT_POSITION = "resize_and_move"
    RESIZE_AND_FIT = "resize_and_fit"
    DONT_RESIZE = "dont_resize"


@dataclass(frozen=True, slots=True)
class CropInfo:
    """Crop corners expressed in the cropped canvas, and where that canvas started."""

    quad: Tuple[Point, Point, Point, Point]
    offset: Tuple[int, int]


@dataclass(frozen=True, slots=True)
class WarpInfo:
    offset_x: int
    offset_y: int
    warped_width: int
    warped_height: int


@dataclass(slots=True)
class GridPosition:
    """Cell of a ``columns x rows`` grid, with margins around the whole grid."""

    columns: int
    rows: int
    column: int = 0
    row: int = 0
    margin_left: int = 0
    margin_top: int = 0
    margin_right: int = 0
    margin_bottom: int = 0

    def __post_init__(self) -> None:
        if self.columns < 1 or self.rows < 1:
            raise ValueError("Grid needs at least one column and one row")

    def at(self, column: int, row: int) -> "GridPosition":
        if not (0 <= column < self.columns and 0 <= row < self.rows):
            raise ValueError(f"Cell ({column}, {row}) outside {self.columns}x{self.rows} grid")
        self.column = column
        self.row = row
        return self

    def set_margin(self, margin: int) -> "GridPosition":
        self.margin_left = self.margin_top = self.margin_right = self.margin_bottom = margin
        return self

    def set_margin_left(self, margin: int) -> "GridPosition":
        self.margin_left = margin
        return self

    def set_margin_top(self, margin: int) -> "GridPosition":
        self.margin_top = margin
        return self

    def set_margin_right(self, margin: int) -> "GridPosition":
        self.margin_right = margin
        return self

    def set_margin_bottom(self, margin: int) -> "GridPosition":
        self.margin_bottom = margin
        return self


ImageLike = Union["Canvas", PixelBuffer]


def _pixels_of(image: ImageLike) -> np.ndarray:
    if isinstance(image, Canvas):
        return image.buffer.pixels
    return image.pixels


def _rgb(color: int) -> Tuple[int, int, int]:
    return (color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF


def _grid_spacing(extent: int, margin_a: int, margin_b: int, size: int, count: int) -> Tuple[int, int]:
    """Return (leading margin, spacing between cells) along one axis."""
    free = extent - margin_a - margin_b - size * count
    if count == 1:
        spacing = int(free / 2)
        return margin_a + spacing, spacing
    return margin_a, int(free / (count - 1))


class Canvas:
    """Single-writer image builder.

    Every editing method swaps in a freshly produced buffer and returns the
    canvas, so calls chain. Pixels from other canvases are always copied in,
    never shared.
    """

    def __init__(
        self,
        buffer: PixelBuffer,
        engine: Optional[WarpEngine] = None,
        jpeg_quality: int = 80,
    ) -> None:
        self._buffer = buffer
        self._engine = engine or WarpEngine()
        self._jpeg_quality = 80
        self.set_jpeg_quality(jpeg_quality)

    @classmethod
    def blank(cls, width: int, height: int, engine: Optional[WarpEngine] = None) -> "Canvas":
        return cls(PixelBuffer.allocate(width, height), engine=engine)

    @classmethod
    def load(cls, path: str | Path, engine: Optional[WarpEngine] = None) -> "Canvas":
        return cls(load_image(path), engine=engine)

    @classmethod
    def from_config(cls, buffer: PixelBuffer, config: WarperConfig) -> "Canvas":
        return cls(
            buffer,
            engine=WarpEngine.from_config(config.warp),
            jpeg_quality=config.output.jpeg_quality,
        )

    @property
    def buffer(self) -> PixelBuffer:
        """The owned buffer. Take ``copy()`` before editing it elsewhere."""
        return self._buffer

    @property
    def width(self) -> int:
        return self._buffer.width

    @property
    def height(self) -> int:
        return self._buffer.height

    @property
    def engine(self) -> WarpEngine:
        return self._engine

    def copy(self) -> "Canvas":
        return Canvas(self._buffer.copy(), engine=self._engine, jpeg_quality=self._jpeg_quality)

    # -- clearing and layering -------------------------------------------------

    def clear(self) -> "Canvas":
        self._buffer = PixelBuffer.allocate(self.width, self.height)
        return self

    def clear_rect(self, x: int, y: int, width: int, height: int) -> "Canvas":
        pixels = self._buffer.pixels.copy()
        pixels[max(y, 0) : max(y + height, 0), max(x, 0) : max(x + width, 0)] = 0
        self._buffer = PixelBuffer(pixels)
        return self

    def put(self, image: ImageLike, left: int = 0, top: int = 0) -> "Canvas":
        """Composite ``image`` over this canvas with its upper-left at (left, top)."""
        pixels = self._buffer.pixels.copy()
        alpha_blend(pixels, _pixels_of(image), left, top)
        self._buffer = PixelBuffer(pixels)
        return self

    def put_anchored(self, image: ImageLike, anchor: Anchor, x: int, y: int) -> "Canvas":
        pixels = _pixels_of(image)
        height, width = pixels.shape[:2]
        horizontal, vertical = anchor.value.split("_") if anchor is not Anchor.CENTER else ("center", "center")
        left = {"left": x, "center": x - width // 2, "right": x - width}[horizontal]
        top = {"top": y, "center": y - height // 2, "bottom": y - height}[vertical]
        return self.put(image, left, top)

    def put_in_center(self, image: ImageLike) -> "Canvas":
        pixels = _pixels_of(image)
        height, width = pixels.shape[:2]
        return self.put(image, self.width // 2 - width // 2, self.height // 2 - height // 2)

    def put_on_grid(self, image: ImageLike, grid: GridPosition) -> "Canvas":
        pixels = _pixels_of(image)
        height, width = pixels.shape[:2]
        margin_left, spacing_x = _grid_spacing(
            self.width, grid.margin_left, grid.margin_right, width, grid.columns
        )
        margin_top, spacing_y = _grid_spacing(
            self.height, grid.margin_top, grid.margin_bottom, height, grid.rows
        )
        left = margin_left + (spacing_x + width) * grid.column
        top = margin_top + (spacing_y + height) * grid.row
        return self.put_anchored(image, Anchor.LEFT_TOP, left, top)

    # -- fills -----------------------------------------------------------------

    def fill(self, color: int) -> "Canvas":
        """Paint every pixel with the opaque ``0xRRGGBB`` color."""
        self._buffer = PixelBuffer.filled(self.width, self.height, _rgb(color) + (255,))
        return self

    def fill_pattern(self, pattern: ImageLike) -> "Canvas":
        """Tile ``pattern`` from the origin over the whole canvas."""
        tile_pixels = _pixels_of(pattern)
        if tile_pixels.shape[0] == 0 or tile_pixels.shape[1] == 0:
            raise ValueError("Pattern image must not be empty")
        return self.put(PixelBuffer(np.ascontiguousarray(tile(tile_pixels, self.width, self.height))))

    def fill_opaque_area(self, color: int) -> "Canvas":
        """Recolor every pixel that is not fully transparent, keeping its alpha."""
        pixels = self._buffer.pixels.copy()
        visible = pixels[:, :, 3] > 0
        pixels[visible, :3] = _rgb(color)
        self._buffer = PixelBuffer(pixels)
        return self

    def fill_opaque_area_force(self, color: int) -> "Canvas":
        """Recolor every pixel that is not fully transparent at full alpha."""
        pixels = self._buffer.pixels.copy()
        visible = pixels[:, :, 3] > 0
        pixels[visible] = _rgb(color) + (255,)
        self._buffer = PixelBuffer(pixels)
        return self

    # -- crops -----------------------------------------------------------------

    def crop(self, quad: Iterable[Iterable[float]], policy: CropPolicy = CropPolicy.FIT_SIZE) -> CropInfo:
        """Clear everything outside ``quad``; with FIT_SIZE also shrink to its bounds.

        Returns the quad in the coordinates of the resulting canvas.
        """
        corners = as_quad(quad)
        if policy is CropPolicy.FIT_SIZE:
            min_x, min_y, max_x, max_y = bounding_box(corners)
            min_x, min_y = max(min_x, 0), max(min_y, 0)
            max_x, max_y = min(max_x, self.width), min(max_y, self.height)
            if max_x <= min_x or max_y <= min_y:
                raise ValueError(f"Crop quad {corners.tolist()} lies outside the {self.width}x{self.height} canvas")

        mask = np.zeros((self.height, self.width), dtype=np.uint8)
        cv2.fillPoly(mask, [np.rint(corners).astype(np.int32).reshape(-1, 1, 2)], 255)
        pixels = self._buffer.pixels.copy()
        pixels[mask == 0] = 0
        self._buffer = PixelBuffer(pixels)

        if policy is not CropPolicy.FIT_SIZE:
            return CropInfo(quad=tuple(map(tuple, corners.tolist())), offset=(0, 0))

        self.crop_rect(min_x, min_y, max_x - min_x, max_y - min_y)
        moved = translate(corners, -min_x, -min_y)
        return CropInfo(quad=tuple(map(tuple, moved.tolist())), offset=(min_x, min_y))

    def crop_rect(self, x: int, y: int, width: int, height: int) -> "Canvas":
        if width <= 0 or height <= 0:
            raise ValueError(f"Crop size must be positive, got {width}x{height}")
        if x < 0 or y < 0 or x + width > self.width or y + height > self.height:
            raise ValueError(
                f"Crop rectangle ({x}, {y}, {width}, {height}) exceeds {self.width}x{self.height} canvas"
            )
        self._buffer = PixelBuffer(self._buffer.pixels[y : y + height, x : x + width].copy())
        return self

    def crop_oval(
        self,
        center_x: float,
        center_y: float,
        radius: float,
        policy: CropPolicy = CropPolicy.FIT_SIZE,
    ) -> "Canvas":
        if radius <= 0:
            raise ValueError("Radius must be positive")
        mask = np.zeros((self.height, self.width), dtype=np.uint8)
        shift = 4
        scale = 1 << shift
        # cv2 draws in pixel-center coordinates.
        center = (int(round((center_x - 0.5) * scale)), int(round((center_y - 0.5) * scale)))
        cv2.circle(mask, center, int(round(radius * scale)), 255, thickness=-1, shift=shift)
        pixels = self._buffer.pixels.copy()
        pixels[mask == 0] = 0
        self._buffer = PixelBuffer(pixels)

        if policy is CropPolicy.FIT_SIZE:
            left = max(int(center_x - radius), 0)
            top = max(int(center_y - radius), 0)
            right = min(int(center_x - radius) + int(radius * 2), self.width)
            bottom = min(int(center_y - radius) + int(radius * 2), self.height)
            self.crop_rect(left, top, right - left, bottom - top)
        return self

    # -- warps -----------------------------------------------------------------

    def crop_warp(self, quad: Iterable[Iterable[float]], dest_width: int, dest_height: int) -> "Canvas":
        """Cut out ``quad`` and straighten it into a ``dest_width x dest_height`` image."""
        previous = self._buffer
        info = self.crop(quad, CropPolicy.FIT_SIZE)
        try:
            result = self._engine.warp_quad_to_rect(self._buffer, info.quad, dest_width, dest_height)
        except (WarpError, ValueError):
            self._buffer = previous
            raise
        self._buffer = result.buffer
        return self

    def warp(
        self,
        quad: Iterable[Iterable[float]],
        policy: WarpPolicy = WarpPolicy.RESIZE_AND_MOVE_TO_CORRECT_POSITION,
    ) -> WarpInfo:
        """Project the whole canvas onto ``quad`` and absorb the result per ``policy``."""
        result = self._engine.warp_rect_to_quad(self._buffer, quad)
        offset_x, offset_y = result.offset
        info = WarpInfo(
            offset_x=offset_x,
            offset_y=offset_y,
            warped_width=result.width,
            warped_height=result.height,
        )

        if policy is WarpPolicy.RESIZE_AND_MOVE_TO_CORRECT_POSITION:
            width = result.width + offset_x
            height = result.height + offset_y
            if width <= 0 or height <= 0:
                raise ValueError(
                    f"Warped image at offset ({offset_x}, {offset_y}) leaves no visible canvas"
                )
            pixels = np.zeros((height, width, 4), dtype=np.uint8)
            alpha_blend(pixels, result.buffer.pixels, offset_x, offset_y)
            self._buffer = PixelBuffer(pixels)
        elif policy is WarpPolicy.RESIZE_AND_FIT:
            self._buffer = result.buffer
        else:
            self.put(result.buffer, 0, 0)

        logger.debug(f"Canvas warp applied with {policy.name} -> {self.width}x{self.height}")
        return info

    # -- geometric edits -------------------------------------------------------

    def rotate(self, degrees: float) -> "Canvas":
        """Rotate clockwise around the center, keeping the canvas size."""
        center = ((self.width - 1) / 2.0, (self.height - 1) / 2.0)
        matrix = cv2.getRotationMatrix2D(center, -degrees, 1.0)
        rotated = cv2.warpAffine(
            self._buffer.pixels,
            matrix,
            (self.width, self.height),
            flags=cv2.INTER_CUBIC,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0),
        )
        self._buffer = PixelBuffer(rotated)
        return self

    def rescale(self, width: int, height: int) -> "Canvas":
        """Change the resolution, stretching the content to ``width x height``."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Target size must be positive, got {width}x{height}")
        resized = cv2.resize(self._buffer.pixels, (width, height), interpolation=cv2.INTER_CUBIC)
        self._buffer = PixelBuffer(resized)
        return self

    def scale(self, x_scale: float, y_scale: float) -> "Canvas":
        return self.rescale(int(x_scale * self.width), int(y_scale * self.height))

    def resize(self, width: int, height: int) -> "Canvas":
        """Change the canvas size, keeping the content centered and unscaled."""
        current = self._buffer
        self._buffer = PixelBuffer.allocate(width, height)
        return self.put_in_center(current)

    def convert_to_rgb(self) -> "Canvas":
        """Flatten alpha onto black, leaving every pixel opaque."""
        self._buffer = PixelBuffer.from_array(flatten_alpha(self._buffer.pixels))
        return self

    # -- output ----------------------------------------------------------------

    def set_jpeg_quality(self, quality: int) -> "Canvas":
        if not 0 <= quality <= 100:
            raise ValueError(f"JPEG quality must be within 0..100, got {quality}")
        self._jpeg_quality = quality
        return self

    def save(self, path: str | Path, jpeg_quality: Optional[int] = None) -> Path:
        quality = self._jpeg_quality if jpeg_quality is None else jpeg_quality
        return save_image(self._buffer, path, jpeg_quality=quality)
