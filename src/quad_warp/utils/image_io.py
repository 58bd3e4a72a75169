"""Image IO helper routines."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from loguru import logger

from quad_warp.imaging.compositing import flatten_alpha
from quad_warp.imaging.pixel_buffer import PixelBuffer

SUPPORTED_SUFFIXES = (".png", ".jpg", ".jpeg")
JPEG_SUFFIXES = (".jpg", ".jpeg")


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(f"Only png or jpg files are supported, got '{path.name}'")
    return suffix


def load_image(path: str | Path) -> PixelBuffer:
    """Read a PNG or JPEG file into an RGBA buffer."""
    path = Path(path)
    _check_suffix(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file missing: {path}")
    raw = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if raw is None:
        raise RuntimeError(f"Failed to read image from {path}")
    if raw.dtype == np.uint16:
        raw = (raw // 257).astype(np.uint8)
    if raw.ndim == 2:
        rgba = cv2.cvtColor(raw, cv2.COLOR_GRAY2RGBA)
    elif raw.shape[2] == 3:
        rgba = cv2.cvtColor(raw, cv2.COLOR_BGR2RGBA)
    else:
        rgba = cv2.cvtColor(raw, cv2.COLOR_BGRA2RGBA)
    logger.info(f"Loaded {rgba.shape[1]}x{rgba.shape[0]} image from {path}")
    return PixelBuffer(rgba)


def save_image(buffer: PixelBuffer, path: str | Path, jpeg_quality: int = 80) -> Path:
    """Persist an RGBA buffer as PNG, or as JPEG with alpha flattened onto black."""
    path = Path(path)
    suffix = _check_suffix(path)
    if not 0 <= jpeg_quality <= 100:
        raise ValueError(f"JPEG quality must be within 0..100, got {jpeg_quality}")
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix in JPEG_SUFFIXES:
        frame = cv2.cvtColor(flatten_alpha(buffer.pixels), cv2.COLOR_RGB2BGR)
        params = [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]
    else:
        frame = cv2.cvtColor(buffer.pixels, cv2.COLOR_RGBA2BGRA)
        params = []
    if not cv2.imwrite(str(path), frame, params):
        raise RuntimeError(f"Failed to write image to {path}")
    logger.info(f"Saved {buffer.width}x{buffer.height} image to {path}")
    return path


def save_snapshot(buffer: PixelBuffer, directory: Path, stem: Optional[str] = None) -> Path:
    """Persist a buffer as a timestamped PNG under ``directory``."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    stem = stem or "warp"
    return save_image(buffer, directory / f"{stem}_{timestamp}.png")
