"""Pixel storage and compositing primitives."""

from .compositing import alpha_blend, flatten_alpha, tile  # noqa: F401
from .pixel_buffer import RGBA, PixelBuffer  # noqa: F401
