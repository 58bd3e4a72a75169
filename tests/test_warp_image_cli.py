"""Smoke tests for the warp_image command line script."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterator

import pytest
from loguru import logger

import warp_image
from quad_warp.imaging import PixelBuffer
from quad_warp.utils.image_io import load_image, save_image


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def source_png(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return save_image(PixelBuffer.filled(8, 8, (10, 200, 30, 255)), tmp_path / "source.png")


def test_parse_point_and_size() -> None:
    assert warp_image.parse_point("1.5,2") == (1.5, 2.0)
    assert warp_image.parse_size("640x480") == (640, 480)
    with pytest.raises(argparse.ArgumentTypeError):
        warp_image.parse_point("1;2")


def test_to_quad_writes_output(source_png: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "moved.png"

    code = warp_image.main(
        ["to-quad", str(source_png), "--quad", "4,4", "12,4", "12,12", "4,12", "--output", str(output)]
    )

    assert code == 0
    result = load_image(output)
    assert (result.width, result.height) == (12, 12)
    assert result.get_pixel(8, 8) == (10, 200, 30, 255)


def test_to_rect_defaults_to_snapshot_in_output_dir(source_png: Path, tmp_path: Path) -> None:
    config = tmp_path / "warp.yaml"
    config.write_text(f"project:\n  output_dir: {tmp_path / 'snaps'}\n")

    code = warp_image.main(
        ["--config", str(config), "to-rect", str(source_png), "--quad", "0,0", "8,0", "8,8", "0,8", "--size", "4x2"]
    )

    assert code == 0
    written = list((tmp_path / "snaps").glob("source_*.png"))
    assert len(written) == 1
    assert (load_image(written[0]).width, load_image(written[0]).height) == (4, 2)


def test_degenerate_quad_exits_non_zero(source_png: Path, tmp_path: Path) -> None:
    code = warp_image.main(
        ["to-quad", str(source_png), "--quad", "0,0", "5,0", "10,0", "3,3", "--output", str(tmp_path / "bad.png")]
    )

    assert code == 1
    assert not (tmp_path / "bad.png").exists()
