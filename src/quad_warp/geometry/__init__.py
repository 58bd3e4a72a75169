"""Quad geometry and the homography solver."""

from .homography import (  # noqa: F401
    Homography,
    invert,
    solve,
    square_to_quad,
    warp_polygon,
)
from .quad import as_quad, bounding_box, is_degenerate, rect_corners  # noqa: F401
