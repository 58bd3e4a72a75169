"""Tests for reading and writing image files."""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import pytest

from quad_warp.canvas import Canvas
from quad_warp.imaging import PixelBuffer
from quad_warp.utils.image_io import load_image, save_image, save_snapshot


def test_png_round_trip_keeps_alpha(tmp_path: Path, gradient_image: PixelBuffer) -> None:
    pixels = gradient_image.pixels.copy()
    pixels[0, 0, 3] = 0
    pixels[1, 1, 3] = 77
    source = PixelBuffer(pixels)

    path = save_image(source, tmp_path / "nested" / "gradient.png")
    loaded = load_image(path)

    np.testing.assert_array_equal(loaded.pixels, source.pixels)


def test_png_channels_are_stored_in_opencv_order(tmp_path: Path) -> None:
    path = save_image(PixelBuffer.filled(2, 2, (255, 0, 0, 255)), tmp_path / "red.png")

    raw = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)

    assert raw[0, 0].tolist() == [0, 0, 255, 255]


def test_jpeg_drops_alpha_onto_black(tmp_path: Path) -> None:
    pixels = np.zeros((8, 8, 4), dtype=np.uint8)
    pixels[:, :4] = (255, 255, 255, 255)
    pixels[:, 4:] = (255, 255, 255, 0)

    path = save_image(PixelBuffer(pixels), tmp_path / "mixed.jpg", jpeg_quality=100)
    loaded = load_image(path)

    assert loaded.get_pixel(0, 0)[3] == 255
    assert loaded.get_pixel(1, 4)[0] > 200
    assert loaded.get_pixel(7, 4)[0] < 50


def test_unsupported_suffix_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        save_image(PixelBuffer.allocate(1, 1), tmp_path / "image.bmp")
    with pytest.raises(ValueError):
        load_image(tmp_path / "image.gif")


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "absent.png")


def test_gray_file_promoted_to_rgba(tmp_path: Path) -> None:
    path = tmp_path / "gray.png"
    cv2.imwrite(str(path), np.full((3, 4), 90, dtype=np.uint8))

    loaded = load_image(path)

    assert (loaded.width, loaded.height) == (4, 3)
    assert loaded.get_pixel(3, 2) == (90, 90, 90, 255)


def test_snapshot_is_timestamped_png(tmp_path: Path) -> None:
    path = save_snapshot(PixelBuffer.allocate(2, 2), tmp_path, stem="poster")

    assert path.exists()
    assert path.suffix == ".png"
    assert path.name.startswith("poster_")


def test_canvas_save_uses_quality_and_loads_back(tmp_path: Path) -> None:
    canvas = Canvas(PixelBuffer.filled(6, 6, (0, 128, 255, 255))).set_jpeg_quality(90)

    path = canvas.save(tmp_path / "out.jpeg")
    reloaded = Canvas.load(path)

    assert (reloaded.width, reloaded.height) == (6, 6)
    r, g, b, a = reloaded.buffer.get_pixel(3, 3)
    assert a == 255
    assert abs(g - 128) < 10 and b > 240
