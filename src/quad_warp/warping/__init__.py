"""Inverse-mapped perspective warping."""

from .engine import WarpEngine, WarpResult  # noqa: F401
from .sampler import INTERPOLATIONS, sample  # noqa: F401
