"""RGBA pixel storage shared by the warp engine and the canvas."""

from __future__ import annotations

from typing import Tuple

import numpy as np

RGBA = Tuple[int, int, int, int]


class PixelBuffer:
    """A ``height x width`` grid of 8-bit RGBA samples backed by a numpy array.

    The buffer owns its array. Callers that need an independent handle take
    :meth:`copy`.
    """

    __slots__ = ("_pixels",)

    def __init__(self, pixels: np.ndarray) -> None:
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected an (H, W, 4) array, got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 samples, got {pixels.dtype}")
        self._pixels = pixels

    @classmethod
    def allocate(cls, width: int, height: int) -> "PixelBuffer":
        """Fully transparent buffer."""
        if width < 0 or height < 0:
            raise ValueError(f"Buffer size must be non-negative, got {width}x{height}")
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Copy a gray (H, W), RGB (H, W, 3) or RGBA (H, W, 4) uint8 array."""
        array = np.asarray(array)
        if array.dtype != np.uint8:
            raise ValueError(f"Expected uint8 samples, got {array.dtype}")
        if array.ndim == 2:
            array = np.repeat(array[:, :, None], 3, axis=2)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported pixel array shape {array.shape}")
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            return cls(np.concatenate([array, alpha], axis=2))
        return cls(array.copy())

    @classmethod
    def filled(cls, width: int, height: int, rgba: RGBA) -> "PixelBuffer":
        buffer = cls.allocate(width, height)
        buffer._pixels[:, :] = rgba
        return buffer

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def pixels(self) -> np.ndarray:
        """The backing (H, W, 4) array, not a copy."""
        return self._pixels

    def get_pixel(self, x: int, y: int) -> RGBA:
        self._check_bounds(x, y)
        r, g, b, a = (int(value) for value in self._pixels[y, x])
        return r, g, b, a

    def set_pixel(self, x: int, y: int, rgba: RGBA) -> None:
        self._check_bounds(x, y)
        self._pixels[y, x] = rgba

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self._pixels.copy())

    def _check_bounds(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer")

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"
