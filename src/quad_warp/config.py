"""Configuration schema and loader for quad-warp."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import yaml
from pydantic import BaseModel, Field, field_validator

from quad_warp.geometry.homography import DEFAULT_SINGULAR_EPSILON
from quad_warp.geometry.quad import DEFAULT_DEGENERATE_EPSILON
from quad_warp.warping.sampler import INTERPOLATIONS

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    output: str = Field("stdout")

    @field_validator("level")
    @classmethod
    def ensure_known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{value}', expected one of {LOG_LEVELS}")
        return level


class WarpConfig(BaseModel):
    interpolation: str = Field("bicubic")
    degenerate_epsilon: float = Field(DEFAULT_DEGENERATE_EPSILON, gt=0.0)
    singular_epsilon: float = Field(DEFAULT_SINGULAR_EPSILON, gt=0.0)
    workers: int = Field(1, ge=1)

    @field_validator("interpolation")
    @classmethod
    def ensure_interpolation(cls, value: str) -> str:
        method = value.lower()
        if method not in INTERPOLATIONS:
            raise ValueError(f"Unsupported interpolation '{value}', expected one of {INTERPOLATIONS}")
        return method


class OutputConfig(BaseModel):
    jpeg_quality: int = Field(80, ge=0, le=100)


class ProjectMetadata(BaseModel):
    name: str = Field("quad-warp")
    output_dir: Path = Field(Path("output"))

    @field_validator("output_dir", mode="before")
    @classmethod
    def ensure_output_dir(cls, value: str | Path) -> Path:
        path = Path(value)
        path.mkdir(parents=True, exist_ok=True)
        return path


class WarperConfig(BaseModel):
    project: ProjectMetadata = Field(default_factory=ProjectMetadata)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    warp: WarpConfig = Field(default_factory=WarpConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def default(cls) -> "WarperConfig":
        return cls()


def load_config(path: str | Path) -> WarperConfig:
    """Load configuration from YAML file."""
    with open(path, "r", encoding="utf-8") as handle:
        raw: Dict[str, object] = yaml.safe_load(handle) or {}
    return WarperConfig.model_validate(raw)
