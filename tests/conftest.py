"""pytest configuration and fixtures for the quad_warp test suite."""

from __future__ import annotations

from typing import Iterator, List

import numpy as np
import pytest
from loguru import logger

from quad_warp.imaging import PixelBuffer


@pytest.fixture
def gradient_image() -> PixelBuffer:
    """Opaque 16x12 image whose red/green channels encode x/y."""
    height, width = 12, 16
    ys, xs = np.mgrid[0:height, 0:width]
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :, 0] = xs * 15
    pixels[:, :, 1] = ys * 20
    pixels[:, :, 2] = 128
    pixels[:, :, 3] = 255
    return PixelBuffer(pixels)


@pytest.fixture
def checker_image() -> PixelBuffer:
    """Opaque 10x10 image with a single white pixel at (2, 3) on black."""
    pixels = np.zeros((10, 10, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    pixels[3, 2, :3] = 255
    return PixelBuffer(pixels)


@pytest.fixture
def log_messages() -> Iterator[List[str]]:
    """Collect loguru records emitted during the test."""
    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
