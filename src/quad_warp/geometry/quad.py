"""Quad normalization, degeneracy checks and pixel-space bounding boxes."""

from __future__ import annotations

import math
from itertools import combinations
from typing import Iterable, Tuple

import numpy as np

Point = Tuple[float, float]
BoundingBox = Tuple[int, int, int, int]

DEFAULT_DEGENERATE_EPSILON = 1e-9

# Transformed corners this close to an integer are treated as that integer.
_SNAP_TOLERANCE = 1e-6


def as_quad(points: Iterable[Iterable[float]]) -> np.ndarray:
    """Return ``points`` as a (4, 2) float64 array, clockwise from upper-left."""
    quad = np.array(points, dtype=np.float64)
    if quad.shape != (4, 2):
        raise ValueError(f"A quad needs exactly four (x, y) points, got shape {quad.shape}")
    if not np.all(np.isfinite(quad)):
        raise ValueError("Quad coordinates must be finite")
    return quad


def rect_corners(width: float, height: float) -> np.ndarray:
    """Corners of the rectangle ``(0, 0)-(width, height)`` in quad order."""
    return np.array(
        [[0.0, 0.0], [width, 0.0], [width, height], [0.0, height]],
        dtype=np.float64,
    )


def signed_area(quad: np.ndarray) -> float:
    """Shoelace area; positive for clockwise order in y-down image space."""
    x = quad[:, 0]
    y = quad[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def is_degenerate(quad: np.ndarray, epsilon: float = DEFAULT_DEGENERATE_EPSILON) -> bool:
    """True when any three corners are collinear or the quad has zero signed area.

    Both tests are scaled by the squared extent of the quad so the tolerance
    does not depend on the coordinate units.
    """
    extent = float(np.ptp(quad, axis=0).max())
    if extent == 0.0:
        return True
    limit = epsilon * extent * extent
    for i, j, k in combinations(range(4), 3):
        ab = quad[j] - quad[i]
        ac = quad[k] - quad[i]
        if abs(ab[0] * ac[1] - ab[1] * ac[0]) <= limit:
            return True
    return abs(signed_area(quad)) <= limit


def is_convex(quad: np.ndarray) -> bool:
    """True when all turns along the closed outline have the same sign."""
    turns = []
    for i in range(4):
        a, b, c = quad[i], quad[(i + 1) % 4], quad[(i + 2) % 4]
        ab = b - a
        bc = c - b
        turns.append(ab[0] * bc[1] - ab[1] * bc[0])
    return all(t > 0 for t in turns) or all(t < 0 for t in turns)


def _snap(value: float) -> float:
    nearest = round(value)
    if abs(value - nearest) <= _SNAP_TOLERANCE:
        return float(nearest)
    return value


def _axis_bounds(values: np.ndarray) -> Tuple[int, int]:
    low = float(values.min())
    high = float(values.max())
    lower = math.floor(_snap(low))
    upper = math.ceil(_snap(high))
    # Snapping must not collapse a positive extent to zero pixels.
    if high > low and upper <= lower:
        upper = lower + 1
    return lower, upper


def bounding_box(points: np.ndarray) -> BoundingBox:
    """Integer pixel bounds ``(min_x, min_y, max_x, max_y)`` enclosing ``points``.

    Minima are floored and maxima ceiled, so the box always covers the
    real-valued extent; a positive extent is at least one pixel wide.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if not np.all(np.isfinite(pts)):
        raise ValueError("Cannot bound points at infinity")
    min_x, max_x = _axis_bounds(pts[:, 0])
    min_y, max_y = _axis_bounds(pts[:, 1])
    return min_x, min_y, max_x, max_y


def translate(quad: np.ndarray, dx: float, dy: float) -> np.ndarray:
    return quad + np.array([dx, dy], dtype=np.float64)
