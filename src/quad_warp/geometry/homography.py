"""Homography utilities for mapping quads to quads."""

from __future__ import annotations

from typing import Iterable

import cv2
import numpy as np
from loguru import logger

from quad_warp.errors import DegenerateQuadError, NonInvertibleTransformError
from quad_warp.geometry.quad import (
    DEFAULT_DEGENERATE_EPSILON,
    as_quad,
    is_convex,
    is_degenerate,
)

DEFAULT_SINGULAR_EPSILON = 1e-12

# Below this magnitude the bottom-right element is not used for normalization.
_NORMALIZE_FLOOR = 1e-15


class Homography:
    """Immutable 3x3 projective transform acting on (x, y, 1) column vectors."""

    __slots__ = ("_matrix",)

    def __init__(self, matrix: np.ndarray) -> None:
        m = np.array(matrix, dtype=np.float64)
        if m.shape != (3, 3):
            raise ValueError(f"Homography matrix must be 3x3, got shape {m.shape}")
        if abs(m[2, 2]) > _NORMALIZE_FLOOR:
            m = m / m[2, 2]
        else:
            m = m / np.linalg.norm(m)
        m.setflags(write=False)
        self._matrix = m

    @classmethod
    def identity(cls) -> "Homography":
        return cls(np.eye(3))

    @property
    def matrix(self) -> np.ndarray:
        """Writable copy of the normalized matrix."""
        return self._matrix.copy()

    def transform(self, points: Iterable[Iterable[float]]) -> np.ndarray:
        """Map (N, 2) points, or a single (2,) point, without rounding.

        Points sent to infinity come back as ``inf``/``nan``.
        """
        pts = np.asarray(points, dtype=np.float64)
        single = pts.ndim == 1
        pts = pts.reshape(-1, 2)
        homogeneous = pts @ self._matrix[:, :2].T + self._matrix[:, 2]
        with np.errstate(divide="ignore", invalid="ignore"):
            mapped = homogeneous[:, :2] / homogeneous[:, 2:3]
        return mapped[0] if single else mapped

    def compose(self, other: "Homography") -> "Homography":
        """Transform applying ``other`` first, then ``self``."""
        return Homography(self._matrix @ other._matrix)

    def __matmul__(self, other: "Homography") -> "Homography":
        return self.compose(other)

    def allclose(self, other: "Homography", rtol: float = 1e-9, atol: float = 1e-9) -> bool:
        return bool(np.allclose(self._matrix, other._matrix, rtol=rtol, atol=atol))

    def __repr__(self) -> str:
        rows = ", ".join(np.array2string(row, precision=6) for row in self._matrix)
        return f"Homography({rows})"


def square_to_quad(quad: np.ndarray) -> Homography:
    """Projective map taking the unit square (0,0),(1,0),(1,1),(0,1) to ``quad``.

    The projective terms g, h come from a 2x2 system; they vanish when the
    quad is a parallelogram, leaving a pure affine map.
    """
    (x0, y0), (x1, y1), (x2, y2), (x3, y3) = quad
    sx = x0 - x1 + x2 - x3
    sy = y0 - y1 + y2 - y3
    system = np.array([[x1 - x2, x3 - x2], [y1 - y2, y3 - y2]], dtype=np.float64)
    try:
        g, h = np.linalg.solve(system, np.array([sx, sy], dtype=np.float64))
    except np.linalg.LinAlgError as exc:
        raise DegenerateQuadError(f"Corners 1, 2, 3 of {quad.tolist()} are collinear") from exc
    return Homography(
        np.array(
            [
                [x1 - x0 + g * x1, x3 - x0 + h * x3, x0],
                [y1 - y0 + g * y1, y3 - y0 + h * y3, y0],
                [g, h, 1.0],
            ],
            dtype=np.float64,
        )
    )


def _checked_quad(points: Iterable[Iterable[float]], role: str, epsilon: float) -> np.ndarray:
    quad = as_quad(points)
    if is_degenerate(quad, epsilon):
        raise DegenerateQuadError(f"The {role} quad {quad.tolist()} is degenerate")
    if not is_convex(quad):
        logger.warning(f"The {role} quad {quad.tolist()} is not convex; the warp may fold over itself")
    return quad


def solve(
    src_quad: Iterable[Iterable[float]],
    dst_quad: Iterable[Iterable[float]],
    epsilon: float = DEFAULT_DEGENERATE_EPSILON,
) -> Homography:
    """Exact homography taking ``src_quad[i]`` to ``dst_quad[i]`` for i in 0..3.

    Built as ``square_to_quad(dst) @ inverse(square_to_quad(src))``.

    Raises:
        DegenerateQuadError: if either quad has collinear corners or zero area.
    """
    src = _checked_quad(src_quad, "source", epsilon)
    dst = _checked_quad(dst_quad, "destination", epsilon)
    to_src = square_to_quad(src)
    to_dst = square_to_quad(dst)
    try:
        from_src = Homography(np.linalg.inv(to_src.matrix))
    except np.linalg.LinAlgError as exc:
        raise DegenerateQuadError(f"The source quad {src.tolist()} is degenerate") from exc
    return to_dst @ from_src


def invert(homography: Homography, epsilon: float = DEFAULT_SINGULAR_EPSILON) -> Homography:
    """Inverse transform.

    Raises:
        NonInvertibleTransformError: if the determinant is within ``epsilon``
            of zero, relative to the squared largest entry of its translation-free
            2x2 part (the cubed largest entry of ``m`` when ``m22`` vanishes).
    """
    m = homography.matrix
    corner = m[2, 2]
    # The Schur complement of m22 has det(m) / m22 as its determinant and no
    # translation terms, so the tolerance does not grow with the offset.
    if abs(corner) > _NORMALIZE_FLOOR:
        block = m[:2, :2] - np.outer(m[:2, 2], m[2, :2]) / corner
        scale = float(np.abs(block).max())
        det = float(np.linalg.det(block))
        limit = epsilon * scale ** 2
    else:
        scale = float(np.abs(m).max())
        det = float(np.linalg.det(m))
        limit = epsilon * scale ** 3
    if scale == 0.0 or abs(det) <= limit:
        raise NonInvertibleTransformError(f"Homography is singular (det={det:.3e})")
    return Homography(np.linalg.inv(m))


def warp_polygon(points: Iterable[Iterable[float]], homography: Homography) -> np.ndarray:
    """Apply homography to polygon vertices."""
    pts = np.array(list(points), dtype=np.float64)
    pts = pts.reshape(-1, 1, 2)
    warped = cv2.perspectiveTransform(pts, homography.matrix)
    return warped.reshape(-1, 2)
