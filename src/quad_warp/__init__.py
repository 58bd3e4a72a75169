"""Perspective warping and canvas compositing for raster images."""

from .config import WarperConfig, load_config  # noqa: F401
from .errors import (  # noqa: F401
    DegenerateQuadError,
    EmptySourceImageError,
    NonInvertibleTransformError,
    WarpError,
)
from .geometry import Homography, invert, solve  # noqa: F401
from .imaging import PixelBuffer  # noqa: F401
from .warping import WarpEngine, WarpResult  # noqa: F401
from .canvas import Anchor, Canvas, CropPolicy, GridPosition, WarpPolicy  # noqa: F401
