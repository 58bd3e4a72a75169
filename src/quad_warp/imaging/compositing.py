"""Alpha compositing over RGBA numpy arrays."""

from __future__ import annotations

import numpy as np


def alpha_blend(dst: np.ndarray, src: np.ndarray, left: int, top: int) -> None:
    """Composite ``src`` over ``dst`` in place with its top-left at (left, top).

    Both arrays are (H, W, 4) uint8 with straight (non-premultiplied) alpha.
    Parts of ``src`` falling outside ``dst`` are clipped.
    """
    dst_h, dst_w = dst.shape[:2]
    src_h, src_w = src.shape[:2]
    x0, y0 = max(left, 0), max(top, 0)
    x1, y1 = min(left + src_w, dst_w), min(top + src_h, dst_h)
    if x0 >= x1 or y0 >= y1:
        return

    region = dst[y0:y1, x0:x1].astype(np.float64)
    patch = src[y0 - top : y1 - top, x0 - left : x1 - left].astype(np.float64)

    src_alpha = patch[:, :, 3:4] / 255.0
    dst_alpha = region[:, :, 3:4] / 255.0
    out_alpha = src_alpha + dst_alpha * (1.0 - src_alpha)
    weighted = patch[:, :, :3] * src_alpha + region[:, :, :3] * dst_alpha * (1.0 - src_alpha)
    with np.errstate(divide="ignore", invalid="ignore"):
        out_rgb = np.where(out_alpha > 0.0, weighted / out_alpha, 0.0)

    blended = np.concatenate([out_rgb, out_alpha * 255.0], axis=2)
    dst[y0:y1, x0:x1] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def flatten_alpha(pixels: np.ndarray) -> np.ndarray:
    """Composite RGBA onto opaque black and return the (H, W, 3) RGB result."""
    alpha = pixels[:, :, 3:4].astype(np.float64) / 255.0
    rgb = pixels[:, :, :3].astype(np.float64) * alpha
    return np.clip(np.rint(rgb), 0, 255).astype(np.uint8)


def tile(pattern: np.ndarray, width: int, height: int) -> np.ndarray:
    """Repeat ``pattern`` from the origin until it covers ``width x height``."""
    pattern_h, pattern_w = pattern.shape[:2]
    reps_y = -(-height // pattern_h)
    reps_x = -(-width // pattern_w)
    return np.tile(pattern, (reps_y, reps_x, 1))[:height, :width]
