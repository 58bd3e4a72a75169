"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest
import yaml

from quad_warp.config import WarperConfig, load_config
from quad_warp.warping import WarpEngine


def test_load_config_creates_directories(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    output_dir = tmp_path / "out" / "warps"
    config_path.write_text(
        yaml.safe_dump(
            {
                "project": {"name": "test", "output_dir": str(output_dir)},
                "logging": {"level": "debug", "output": "stderr"},
                "warp": {
                    "interpolation": "Bilinear",
                    "degenerate_epsilon": 1.0e-6,
                    "singular_epsilon": 1.0e-10,
                    "workers": 3,
                },
                "output": {"jpeg_quality": 95},
            },
        ),
        encoding="utf-8",
    )

    cfg = load_config(config_path)

    assert cfg.project.output_dir.exists()
    assert cfg.logging.level == "DEBUG"
    assert cfg.warp.interpolation == "bilinear"
    assert cfg.warp.workers == 3
    assert cfg.output.jpeg_quality == 95


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("", encoding="utf-8")

    cfg = load_config(config_path)

    assert cfg.warp.interpolation == "bicubic"
    assert cfg.output.jpeg_quality == 80
    assert cfg.logging.output == "stdout"


@pytest.mark.parametrize(
    "section",
    [
        {"warp": {"interpolation": "lanczos"}},
        {"warp": {"workers": 0}},
        {"warp": {"singular_epsilon": 0}},
        {"output": {"jpeg_quality": 101}},
        {"logging": {"level": "VERBOSE"}},
    ],
)
def test_invalid_values_rejected(section: dict) -> None:
    with pytest.raises(pydantic.ValidationError):
        WarperConfig.model_validate(section)


def test_engine_from_config() -> None:
    cfg = WarperConfig.model_validate({"warp": {"interpolation": "nearest", "workers": 2}})

    engine = WarpEngine.from_config(cfg.warp)

    assert engine.interpolation == "nearest"
