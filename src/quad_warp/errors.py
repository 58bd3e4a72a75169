"""Exceptions raised by the homography solver and the warp engine."""

from __future__ import annotations


class WarpError(Exception):
    """Base class for failures that abort a single warp call."""


class DegenerateQuadError(WarpError, ValueError):
    """A quad has collinear corners or zero area, so no transform can be derived."""


class NonInvertibleTransformError(WarpError, ArithmeticError):
    """A derived homography is numerically singular."""


class EmptySourceImageError(WarpError, ValueError):
    """The source pixel buffer has zero width or height."""
