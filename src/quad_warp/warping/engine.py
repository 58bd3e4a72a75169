"""Perspective warps between quads and rectangles by inverse-mapped resampling."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Tuple

import numpy as np
from loguru import logger

from quad_warp.errors import EmptySourceImageError, WarpError
from quad_warp.geometry.homography import (
    DEFAULT_SINGULAR_EPSILON,
    Homography,
    invert,
    solve,
    warp_polygon,
)
from quad_warp.geometry.quad import (
    DEFAULT_DEGENERATE_EPSILON,
    as_quad,
    bounding_box,
    rect_corners,
)
from quad_warp.imaging.pixel_buffer import PixelBuffer
from quad_warp.warping.sampler import INTERPOLATIONS, sample

if TYPE_CHECKING:
    from quad_warp.config import WarpConfig

# Inverse-mapped points with a smaller homogeneous weight lie at infinity.
_HORIZON_EPSILON = 1e-12


@dataclass(frozen=True, slots=True)
class WarpResult:
    """Warped pixels and the integer offset that aligns them with the caller's canvas."""

    buffer: PixelBuffer
    offset: Tuple[int, int]

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height


class WarpEngine:
    """Resamples images through quad-to-quad homographies."""

    def __init__(
        self,
        interpolation: str = "bicubic",
        degenerate_epsilon: float = DEFAULT_DEGENERATE_EPSILON,
        singular_epsilon: float = DEFAULT_SINGULAR_EPSILON,
        workers: int = 1,
    ) -> None:
        if interpolation not in INTERPOLATIONS:
            raise ValueError(f"Unsupported interpolation '{interpolation}', expected one of {INTERPOLATIONS}")
        if workers < 1:
            raise ValueError("WarpEngine requires at least one worker")
        self._interpolation = interpolation
        self._degenerate_epsilon = degenerate_epsilon
        self._singular_epsilon = singular_epsilon
        self._workers = workers

    @classmethod
    def from_config(cls, config: "WarpConfig") -> "WarpEngine":
        return cls(
            interpolation=config.interpolation,
            degenerate_epsilon=config.degenerate_epsilon,
            singular_epsilon=config.singular_epsilon,
            workers=config.workers,
        )

    @property
    def interpolation(self) -> str:
        return self._interpolation

    def warp_quad_to_rect(
        self,
        image: PixelBuffer,
        quad: Iterable[Iterable[float]],
        dest_width: int,
        dest_height: int,
    ) -> WarpResult:
        """Unwarp the region ``quad`` of ``image`` into a ``dest_width x dest_height`` rectangle."""
        self._ensure_source(image)
        if dest_width <= 0 or dest_height <= 0:
            raise ValueError(f"Destination size must be positive, got {dest_width}x{dest_height}")
        _, inverse = self._solve(as_quad(quad), rect_corners(dest_width, dest_height))
        # The destination rectangle is anchored at the origin.
        return self._resample(image, inverse, (0, 0), (dest_width, dest_height))

    def warp_rect_to_quad(self, image: PixelBuffer, quad: Iterable[Iterable[float]]) -> WarpResult:
        """Project the full extent of ``image`` onto ``quad``.

        The output is sized to the bounding box of ``quad`` and the offset is
        that box's upper-left corner.
        """
        self._ensure_source(image)
        src = rect_corners(image.width, image.height)
        forward, inverse = self._solve(src, as_quad(quad))
        min_x, min_y, max_x, max_y = bounding_box(warp_polygon(src, forward))
        return self._resample(image, inverse, (min_x, min_y), (max_x - min_x, max_y - min_y))

    def _solve(self, src: np.ndarray, dst: np.ndarray) -> Tuple[Homography, Homography]:
        try:
            forward = solve(src, dst, epsilon=self._degenerate_epsilon)
            inverse = invert(forward, epsilon=self._singular_epsilon)
        except WarpError as exc:
            logger.debug(f"Warp aborted: {exc}")
            raise
        return forward, inverse

    def _resample(
        self,
        image: PixelBuffer,
        inverse: Homography,
        origin: Tuple[int, int],
        size: Tuple[int, int],
    ) -> WarpResult:
        min_x, min_y = origin
        width, height = size

        output = PixelBuffer.allocate(width, height)
        source = image.pixels.astype(np.float64)
        bands = self._bands(height)
        if self._workers > 1 and len(bands) > 1:
            with ThreadPoolExecutor(max_workers=self._workers) as pool:
                list(
                    pool.map(
                        lambda band: self._fill_rows(source, output.pixels, inverse, (min_x, min_y), band),
                        bands,
                    )
                )
        else:
            for band in bands:
                self._fill_rows(source, output.pixels, inverse, (min_x, min_y), band)

        logger.debug(
            f"Warped {image.width}x{image.height} image into {width}x{height} "
            f"at offset ({min_x}, {min_y}) using {self._interpolation}"
        )
        return WarpResult(buffer=output, offset=(min_x, min_y))

    def _bands(self, height: int) -> List[Tuple[int, int]]:
        if height == 0:
            return []
        count = min(self._workers, height)
        edges = np.linspace(0, height, count + 1).astype(int)
        return [(int(start), int(stop)) for start, stop in zip(edges[:-1], edges[1:]) if stop > start]

    def _fill_rows(
        self,
        source: np.ndarray,
        target: np.ndarray,
        inverse: Homography,
        offset: Tuple[int, int],
        band: Tuple[int, int],
    ) -> None:
        start, stop = band
        src_h, src_w = source.shape[:2]
        width = target.shape[1]
        ys, xs = np.mgrid[start:stop, 0:width]
        # Output pixel centers in the caller's canvas space.
        canvas_x = xs.ravel() + 0.5 + offset[0]
        canvas_y = ys.ravel() + 0.5 + offset[1]

        m = inverse.matrix
        hx = m[0, 0] * canvas_x + m[0, 1] * canvas_y + m[0, 2]
        hy = m[1, 0] * canvas_x + m[1, 1] * canvas_y + m[1, 2]
        hw = m[2, 0] * canvas_x + m[2, 1] * canvas_y + m[2, 2]
        finite = np.abs(hw) > _HORIZON_EPSILON
        with np.errstate(divide="ignore", invalid="ignore"):
            grid_x = hx / hw - 0.5
            grid_y = hy / hw - 0.5
            inside = (
                finite
                & (grid_x >= -0.5)
                & (grid_x < src_w - 0.5)
                & (grid_y >= -0.5)
                & (grid_y < src_h - 0.5)
            )
        samples = np.zeros((grid_x.size, 4), dtype=np.uint8)
        if inside.any():
            samples[inside] = sample(source, grid_x[inside], grid_y[inside], self._interpolation)
        target[start:stop] = samples.reshape(stop - start, width, 4)

    @staticmethod
    def _ensure_source(image: PixelBuffer) -> None:
        if image.is_empty:
            raise EmptySourceImageError(f"Cannot warp an empty {image.width}x{image.height} image")
